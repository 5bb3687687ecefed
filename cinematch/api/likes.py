"""Like API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status

from cinematch.api.errors import to_http_exception
from cinematch.api.schemas.like import LikeListResponse, LikeRequest, LikeResponse
from cinematch.core.auth_utils import get_current_user_id
from cinematch.core.errors import CineMatchError
from cinematch.dependencies import get_like_repo, get_user_repo
from cinematch.models.like import MovieLike
from cinematch.repositories.like_repo import LikeRepo
from cinematch.repositories.user_repo import UserRepo

router = APIRouter(prefix="/likes", tags=["likes"])


def _like_to_response(like: MovieLike) -> LikeResponse:
    """Convert MovieLike model to LikeResponse."""
    return LikeResponse(
        tmdb_id=like.tmdb_id,  # type: ignore[arg-type]
        title=like.title,  # type: ignore[arg-type]
        created_at=like.created_at,  # type: ignore[arg-type]
    )


@router.get("", response_model=LikeListResponse)
def list_likes(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    like_repo: Annotated[LikeRepo, Depends(get_like_repo)],
) -> LikeListResponse:
    """List the caller's liked movies, newest first."""
    try:
        likes = like_repo.get_likes(current_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return LikeListResponse(
        likes=[_like_to_response(like) for like in likes], total=len(likes)
    )


@router.post("", response_model=LikeResponse, status_code=status.HTTP_201_CREATED)
def like_movie(
    request: LikeRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    like_repo: Annotated[LikeRepo, Depends(get_like_repo)],
    user_repo: Annotated[UserRepo, Depends(get_user_repo)],
) -> LikeResponse:
    """Like a movie. Liking it again refreshes the title snapshot."""
    try:
        if user_repo.get_user_by_id(current_user_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User profile not found",
            )
        like = like_repo.upsert_like(current_user_id, request.tmdb_id, request.title)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return _like_to_response(like)


@router.delete("/{tmdb_id}", status_code=status.HTTP_204_NO_CONTENT)
def unlike_movie(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    like_repo: Annotated[LikeRepo, Depends(get_like_repo)],
    tmdb_id: int = Path(..., gt=0),
) -> None:
    """Remove a like. Removing a like that does not exist succeeds."""
    try:
        like_repo.remove_like(current_user_id, tmdb_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e
