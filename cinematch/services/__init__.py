"""Service layer for business logic."""

from .chat_service import ChatService, MessageView
from .match_service import ActiveMatch, MatchResult, MatchService

__all__ = ["ChatService", "MessageView", "MatchService", "MatchResult", "ActiveMatch"]
