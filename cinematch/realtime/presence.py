"""Presence registry for live connections.

Maps a user id to the handle of that user's current live connection and
tracks which connected users subscribed to which rooms. Nothing here is
durable: it only decides where a push can be delivered right now.

The registry is built once per process and handed to the gateway and the
notification dispatcher. Entries are partitioned over striped locks so
connect/disconnect storms for different users do not contend on one mutex.
Every operation is a few dict operations under a lock, so it is safe to call
from the event loop as well as from worker threads.
"""

import threading
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

from cinematch.core.logging import get_logger
from cinematch.core.observability.metrics import log_connection_event

logger = get_logger(__name__)

DEFAULT_STRIPES = 64


class PresenceRegistry:
    """Process-local map of user id -> live connection handle."""

    def __init__(self, stripes: int = DEFAULT_STRIPES):
        if stripes < 1:
            raise ValueError("stripes must be positive")
        self._stripes = stripes
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._connections: List[Dict[str, Any]] = [{} for _ in range(stripes)]

        self._groups_lock = threading.Lock()
        self._groups: Dict[UUID, Set[str]] = {}
        self._user_groups: Dict[str, Set[UUID]] = {}

    def _stripe(self, user_id: str) -> int:
        return hash(user_id) % self._stripes

    def on_connect(self, user_id: str, handle: Any) -> Optional[Any]:
        """Register a connection; the newest one wins. Returns the displaced handle."""
        index = self._stripe(user_id)
        with self._locks[index]:
            previous = self._connections[index].get(user_id)
            self._connections[index][user_id] = handle

        if previous is not None and previous is not handle:
            logger.info(f"User {user_id} reconnected, replacing previous connection")
        else:
            previous = None
        log_connection_event("connected", user_id, replaced=previous is not None)
        return previous

    def on_disconnect(self, user_id: str, handle: Any) -> bool:
        """
        Remove the entry only if it still points at ``handle``.

        A late disconnect from a superseded connection leaves the newer
        entry (and its room subscriptions) untouched.
        """
        index = self._stripe(user_id)
        with self._locks[index]:
            current = self._connections[index].get(user_id)
            if current is not handle:
                removed = False
            else:
                del self._connections[index][user_id]
                # Still under the stripe lock so a reconnect cannot rejoin in between
                self._drop_user_groups(user_id)
                removed = True

        if removed:
            log_connection_event("disconnected", user_id)
        else:
            logger.debug(f"Ignored stale disconnect for user {user_id}")
        return removed

    def get(self, user_id: str) -> Optional[Any]:
        """Get the user's current connection handle."""
        index = self._stripe(user_id)
        with self._locks[index]:
            return self._connections[index].get(user_id)

    def is_online(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def online_count(self) -> int:
        total = 0
        for index in range(self._stripes):
            with self._locks[index]:
                total += len(self._connections[index])
        return total

    # Room groups

    def join_group(self, room_id: UUID, user_id: str) -> None:
        """Subscribe a connected user to a room's broadcasts."""
        with self._groups_lock:
            self._groups.setdefault(room_id, set()).add(user_id)
            self._user_groups.setdefault(user_id, set()).add(room_id)

    def leave_group(self, room_id: UUID, user_id: str) -> None:
        """Unsubscribe a user from a room's broadcasts."""
        with self._groups_lock:
            members = self._groups.get(room_id)
            if members is not None:
                members.discard(user_id)
                if not members:
                    del self._groups[room_id]
            rooms = self._user_groups.get(user_id)
            if rooms is not None:
                rooms.discard(room_id)
                if not rooms:
                    del self._user_groups[user_id]

    def group_members(self, room_id: UUID) -> List[str]:
        """Get the users subscribed to a room."""
        with self._groups_lock:
            return sorted(self._groups.get(room_id, ()))

    def _drop_user_groups(self, user_id: str) -> None:
        with self._groups_lock:
            for room_id in self._user_groups.pop(user_id, set()):
                members = self._groups.get(room_id)
                if members is None:
                    continue
                members.discard(user_id)
                if not members:
                    del self._groups[room_id]
