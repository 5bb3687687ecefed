"""Repository layer for data access."""

from .chat_repo import ChatRepo
from .like_repo import LikeRepo
from .match_repo import MatchRepo
from .message_repo import MessageRepo
from .transaction import transaction_scope
from .user_repo import UserRepo

__all__ = [
    "UserRepo",
    "LikeRepo",
    "MatchRepo",
    "ChatRepo",
    "MessageRepo",
    "transaction_scope",
]
