"""Chat API endpoints."""

from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from cinematch.api.errors import to_http_exception
from cinematch.api.schemas.chat import (
    MembershipResponse,
    MessageHistoryResponse,
    MessageResponse,
    RoomListResponse,
    RoomResponse,
    SendMessageRequest,
)
from cinematch.core.auth_utils import get_current_user_id
from cinematch.core.errors import CineMatchError
from cinematch.dependencies import get_chat_service
from cinematch.models.membership import ChatMembership
from cinematch.services.chat_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ChatService,
    MessageView,
)

router = APIRouter(prefix="/chats", tags=["chats"])


def _message_to_response(message: MessageView) -> MessageResponse:
    """Convert MessageView to MessageResponse."""
    return MessageResponse(
        id=message.id,
        room_id=message.room_id,
        sender_id=message.sender_id,
        sender_display_name=message.sender_display_name,
        text=message.text,
        sent_at=message.sent_at,
    )


def _membership_to_response(membership: ChatMembership) -> MembershipResponse:
    """Convert ChatMembership model to MembershipResponse."""
    return MembershipResponse(
        room_id=membership.room_id,  # type: ignore[arg-type]
        user_id=membership.user_id,  # type: ignore[arg-type]
        is_active=membership.is_active,  # type: ignore[arg-type]
        joined_at=membership.joined_at,  # type: ignore[arg-type]
        left_at=membership.left_at,  # type: ignore[arg-type]
    )


@router.get("", response_model=RoomListResponse)
def list_rooms(
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> RoomListResponse:
    """List all rooms for the current user."""
    try:
        rooms = chat_service.list_rooms(current_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    responses = [
        RoomResponse(
            room_id=r.room_id,
            other_user_id=r.other_user_id,
            other_display_name=r.other_display_name,
            tmdb_id=r.tmdb_id,
            is_active=r.is_active,
            created_at=r.created_at,
            last_message_preview=r.last_message_preview,
            last_message_at=r.last_message_at,
        )
        for r in rooms
    ]
    return RoomListResponse(rooms=responses, total=len(responses))


@router.get(
    "/{room_id}/messages",
    response_model=MessageHistoryResponse,
    summary="Get room message history",
    description=(
        "Newest first. Pass `next_before` and `next_before_id` back as "
        "`before` and `before_id` for older pages."
    ),
)
def get_room_messages(
    room_id: UUID,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    take: int = Query(
        DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Page size"
    ),
    before: Optional[datetime] = Query(
        None, description="Only messages sent before this timestamp"
    ),
    before_id: Optional[int] = Query(
        None, description="Id of the last message seen, paired with `before`"
    ),
) -> MessageHistoryResponse:
    """Get a page of message history."""
    try:
        messages = chat_service.get_messages(
            room_id, current_user_id, take, before, before_id
        )
    except CineMatchError as e:
        raise to_http_exception(e) from e

    has_more = len(messages) == take
    return MessageHistoryResponse(
        messages=[_message_to_response(m) for m in messages],
        has_more=has_more,
        next_before=messages[-1].sent_at if has_more else None,
        next_before_id=messages[-1].id if has_more else None,
    )


@router.post(
    "/{room_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to a room",
    description="Requires active membership. Connected members receive it live.",
)
def send_message(
    room_id: UUID,
    request: SendMessageRequest,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> MessageResponse:
    """Send a message to a room."""
    try:
        message = chat_service.append(room_id, current_user_id, request.text)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return _message_to_response(message)


@router.post("/{room_id}/join", response_model=MembershipResponse)
def join_room(
    room_id: UUID,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> MembershipResponse:
    """Rejoin a room the caller was matched into."""
    try:
        membership = chat_service.join(room_id, current_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return _membership_to_response(membership)


@router.post("/{room_id}/leave", response_model=MembershipResponse)
def leave_room(
    room_id: UUID,
    current_user_id: Annotated[str, Depends(get_current_user_id)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> MembershipResponse:
    """Soft-leave a room. History stays readable."""
    try:
        membership = chat_service.leave(room_id, current_user_id)
    except CineMatchError as e:
        raise to_http_exception(e) from e

    return _membership_to_response(membership)
