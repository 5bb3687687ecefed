"""Best-effort push delivery over live connections."""

import asyncio
from concurrent.futures import Future
from typing import Any, Dict, Optional, Set, Union
from uuid import UUID

from cinematch.core.logging import get_logger
from cinematch.core.observability.metrics import log_notification_event
from cinematch.realtime.presence import PresenceRegistry

logger = get_logger(__name__)

Scheduled = Union["asyncio.Task[bool]", "Future[bool]"]


class NotificationDispatcher:
    """Push payloads to users that currently hold a live connection.

    Connection handles only need an awaitable ``send_json(payload)``.
    Delivery never raises: absent users are skipped and send failures are
    logged, so callers can push after committing without guarding the call.
    """

    def __init__(self, registry: PresenceRegistry):
        self.registry = registry
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set["asyncio.Task[bool]"] = set()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop that owns the live connections."""
        self._loop = loop

    async def _deliver(self, user_id: str, handle: Any, payload: Dict[str, Any]) -> bool:
        notification_type = payload.get("type")
        try:
            await handle.send_json(payload)
        except Exception as e:
            logger.warning(f"Failed to deliver {notification_type} to user {user_id}: {e}")
            log_notification_event(
                "delivery_failed", user_id, notification_type, error=str(e)
            )
            return False

        log_notification_event("delivered", user_id, notification_type)
        return True

    async def notify_async(self, user_id: str, payload: Dict[str, Any]) -> bool:
        """Deliver to one user and report whether the send went through."""
        handle = self.registry.get(user_id)
        if handle is None:
            logger.debug(f"User {user_id} not connected, skipping {payload.get('type')}")
            return False
        return await self._deliver(user_id, handle, payload)

    def notify(self, user_id: str, payload: Dict[str, Any]) -> Optional[Scheduled]:
        """
        Fire-and-forget delivery, callable from the event loop or a worker thread.

        Returns the scheduled task/future (useful for tests and logging) or
        None when nothing was scheduled.
        """
        handle = self.registry.get(user_id)
        if handle is None:
            logger.debug(f"User {user_id} not connected, skipping {payload.get('type')}")
            return None

        coro = self._deliver(user_id, handle, payload)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(coro)
            # Hold a reference until the send finishes
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return task

        if self._loop is None or self._loop.is_closed():
            coro.close()
            logger.warning(f"No event loop bound, dropping notification for {user_id}")
            return None
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    async def broadcast_to_room(self, room_id: UUID, payload: Dict[str, Any]) -> int:
        """Deliver to every connected subscriber of a room. Returns the delivery count."""
        recipients = []
        for user_id in self.registry.group_members(room_id):
            handle = self.registry.get(user_id)
            if handle is not None:
                recipients.append((user_id, handle))
        if not recipients:
            return 0

        results = await asyncio.gather(
            *(self._deliver(user_id, handle, payload) for user_id, handle in recipients)
        )
        delivered = sum(1 for ok in results if ok)
        logger.debug(f"Broadcast to room {room_id}: {delivered}/{len(recipients)} delivered")
        return delivered

    def broadcast_to_room_threadsafe(
        self, room_id: UUID, payload: Dict[str, Any]
    ) -> Optional["Future[int]"]:
        """Schedule a room broadcast from a worker thread."""
        if self._loop is None or self._loop.is_closed():
            logger.warning(f"No event loop bound, dropping broadcast for room {room_id}")
            return None
        return asyncio.run_coroutine_threadsafe(
            self.broadcast_to_room(room_id, payload), self._loop
        )
