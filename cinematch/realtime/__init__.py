"""Live-connection presence and push delivery."""

from .notifications import NotificationDispatcher
from .presence import PresenceRegistry

__all__ = ["PresenceRegistry", "NotificationDispatcher"]
