"""Match API endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from cinematch.api.errors import to_http_exception
from cinematch.api.schemas.match import (
    ActiveMatchListResponse,
    ActiveMatchResponse,
    CandidateListResponse,
    CandidateResponse,
    MatchRequestBody,
    MatchResultResponse,
    MatchStatusResponse,
)
from cinematch.core.auth_utils import get_current_user_id
from cinematch.core.config import settings
from cinematch.core.errors import CineMatchError
from cinematch.dependencies import get_match_service
from cinematch.services.match_service import MAX_CANDIDATE_TAKE, MatchService

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get(
    "/candidates",
    response_model=CandidateListResponse,
    summary="Find users with overlapping taste",
)
def get_candidates(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    match_service: Annotated[MatchService, Depends(get_match_service)],
    take: Optional[int] = Query(
        None, ge=1, le=MAX_CANDIDATE_TAKE, description="Maximum candidates to return"
    ),
) -> CandidateListResponse:
    """Rank other users by shared liked movies."""
    try:
        candidates = match_service.get_candidates(
            current_user_id, take or settings.CANDIDATE_DEFAULT_TAKE
        )
    except CineMatchError as e:
        raise to_http_exception(e) from e

    responses = [
        CandidateResponse(
            user_id=c.user_id,
            display_name=c.display_name,
            overlap_count=c.overlap_count,
            shared_movie_ids=c.shared_movie_ids,
            match_status=c.status,
            room_id=c.room_id,
        )
        for c in candidates
    ]
    return CandidateListResponse(candidates=responses, total=len(responses))


@router.get(
    "/active",
    response_model=ActiveMatchListResponse,
    summary="List matched users with an open chat room",
)
def get_active_matches(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    match_service: Annotated[MatchService, Depends(get_match_service)],
) -> ActiveMatchListResponse:
    """List the caller's active matches, most recent conversation first."""
    try:
        matches = match_service.get_active_matches(current_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    responses = [
        ActiveMatchResponse(
            user_id=m.user_id,
            display_name=m.display_name,
            room_id=m.room_id,
            matched_at=m.matched_at,
            last_message_preview=m.last_message_preview,
            last_message_at=m.last_message_at,
            shared_movie_ids=m.shared_movie_ids,
        )
        for m in matches
    ]
    return ActiveMatchListResponse(matches=responses, total=len(responses))


@router.post(
    "/request",
    response_model=MatchResultResponse,
    summary="Request to watch a movie with another user",
    description="Completes the match and opens a chat room when the other user "
    "has already requested the same movie.",
)
def request_match(
    request: MatchRequestBody,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    match_service: Annotated[MatchService, Depends(get_match_service)],
) -> MatchResultResponse:
    """Send a match request."""
    try:
        result = match_service.request_match(
            current_user_id, request.target_user_id, request.tmdb_id
        )
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return MatchResultResponse(matched=result.matched, room_id=result.room_id)


@router.get("/status/{target_user_id}", response_model=MatchStatusResponse)
def get_match_status(
    target_user_id: str,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    match_service: Annotated[MatchService, Depends(get_match_service)],
) -> MatchStatusResponse:
    """Get the caller's relationship with one other user."""
    try:
        view = match_service.get_match_status(current_user_id, target_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return MatchStatusResponse(
        status=view.status,
        can_match=view.can_match,
        request_sent_at=view.request_sent_at,
        room_id=view.room_id,
        shared_movie_ids=view.shared_movie_ids,
    )
