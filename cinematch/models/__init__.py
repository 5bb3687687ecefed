"""SQLAlchemy models for CineMatch."""

from typing import Any

from sqlalchemy.orm import declarative_base

# Create the declarative base
Base: Any = declarative_base()

# Import all models so they're registered with Base.metadata
from .chat import ChatRoom  # noqa: E402
from .like import MovieLike  # noqa: E402
from .match_request import MatchRequest  # noqa: E402
from .membership import ChatMembership  # noqa: E402
from .message import ChatMessage  # noqa: E402
from .user import User  # noqa: E402

__all__ = [
    "Base",
    "User",
    "MovieLike",
    "MatchRequest",
    "ChatRoom",
    "ChatMembership",
    "ChatMessage",
]
