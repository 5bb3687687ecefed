"""Chat API request/response schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# Request Models
class SendMessageRequest(BaseModel):
    """Request model for sending a new message.

    Length and blank checks happen in the service so REST and the live
    gateway reject the same inputs.
    """

    text: str = Field(..., description="Message text")


# Response Models
class RoomResponse(BaseModel):
    """One chat room from the caller's point of view."""

    room_id: uuid.UUID
    other_user_id: str
    other_display_name: str
    tmdb_id: Optional[int] = Field(None, description="Movie whose match created the room")
    is_active: bool = Field(..., description="Whether the caller is an active member")
    created_at: datetime
    last_message_preview: Optional[str] = None
    last_message_at: Optional[datetime] = None


class RoomListResponse(BaseModel):
    """Response model for listing the caller's rooms."""

    rooms: List[RoomResponse] = Field(..., description="Rooms, most recent activity first")
    total: int


class MessageResponse(BaseModel):
    """Message information in API responses."""

    id: int
    room_id: uuid.UUID
    sender_id: str
    sender_display_name: str
    text: str
    sent_at: datetime


class MessageHistoryResponse(BaseModel):
    """Response model for message history."""

    messages: List[MessageResponse] = Field(..., description="Messages, newest first")
    has_more: bool = Field(..., description="Whether an older page may exist")
    next_before: Optional[datetime] = Field(
        None, description="Cursor for the next (older) page"
    )
    next_before_id: Optional[int] = Field(
        None, description="Message id paired with next_before"
    )


class MembershipResponse(BaseModel):
    """Caller's membership state after join/leave."""

    room_id: uuid.UUID
    user_id: str
    is_active: bool
    joined_at: datetime
    left_at: Optional[datetime] = None
