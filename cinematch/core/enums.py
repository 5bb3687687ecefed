"""Shared enums used across the application."""

from enum import Enum


class MatchStatus(str, Enum):
    """Relationship between a user and a match candidate."""

    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    MATCHED = "matched"


class NotificationType(str, Enum):
    """Event names pushed over live connections."""

    MATCH_REQUEST = "matchRequest"
    MUTUAL_MATCH = "mutualMatch"
    MESSAGE_RECEIVED = "message.received"
