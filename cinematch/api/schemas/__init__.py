"""API schemas package."""

from .chat import (
    MembershipResponse,
    MessageHistoryResponse,
    MessageResponse,
    RoomListResponse,
    RoomResponse,
    SendMessageRequest,
)
from .like import LikeListResponse, LikeRequest, LikeResponse
from .match import (
    ActiveMatchListResponse,
    ActiveMatchResponse,
    CandidateListResponse,
    CandidateResponse,
    MatchRequestBody,
    MatchResultResponse,
    MatchStatusResponse,
)

__all__ = [
    "ActiveMatchListResponse",
    "ActiveMatchResponse",
    "CandidateListResponse",
    "CandidateResponse",
    "LikeListResponse",
    "LikeRequest",
    "LikeResponse",
    "MatchRequestBody",
    "MatchResultResponse",
    "MatchStatusResponse",
    "MembershipResponse",
    "MessageHistoryResponse",
    "MessageResponse",
    "RoomListResponse",
    "RoomResponse",
    "SendMessageRequest",
]
