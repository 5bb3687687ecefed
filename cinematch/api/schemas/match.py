"""Match API request/response schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from cinematch.core.enums import MatchStatus


# Request Models
class MatchRequestBody(BaseModel):
    """Request model for expressing interest in watching a movie together."""

    target_user_id: str = Field(..., description="User to match with")
    tmdb_id: int = Field(..., description="Movie the request is about")


# Response Models
class MatchResultResponse(BaseModel):
    """Outcome of a match request."""

    matched: bool = Field(..., description="Whether the handshake completed")
    room_id: Optional[uuid.UUID] = Field(
        None, description="Chat room shared by the pair once matched"
    )


class CandidateResponse(BaseModel):
    """A user who shares liked movies with the caller."""

    user_id: str
    display_name: str
    overlap_count: int = Field(..., description="Number of shared liked movies")
    shared_movie_ids: List[int]
    match_status: MatchStatus
    room_id: Optional[uuid.UUID] = None

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class CandidateListResponse(BaseModel):
    """Response model for candidate discovery."""

    candidates: List[CandidateResponse]
    total: int


class MatchStatusResponse(BaseModel):
    """Relationship between the caller and one other user."""

    status: MatchStatus
    can_match: bool
    request_sent_at: Optional[datetime] = None
    room_id: Optional[uuid.UUID] = None
    shared_movie_ids: List[int] = Field(default_factory=list)

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


class ActiveMatchResponse(BaseModel):
    """A matched user with an open chat room."""

    user_id: str
    display_name: str
    room_id: uuid.UUID
    matched_at: datetime = Field(..., description="When the pair's room was created")
    last_message_preview: Optional[str] = None
    last_message_at: Optional[datetime] = None
    shared_movie_ids: List[int] = Field(default_factory=list)


class ActiveMatchListResponse(BaseModel):
    """Response model for the caller's active matches."""

    matches: List[ActiveMatchResponse]
    total: int
