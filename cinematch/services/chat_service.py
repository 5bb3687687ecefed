"""Chat service for business logic."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from cinematch.core.enums import NotificationType
from cinematch.core.errors import MembershipError, ValidationError
from cinematch.core.logging import get_logger
from cinematch.models.membership import ChatMembership
from cinematch.models.message import ChatMessage
from cinematch.repositories.chat_repo import ChatRepo, RoomSummary
from cinematch.repositories.message_repo import MessageRepo
from cinematch.repositories.user_repo import UserRepo

logger = get_logger(__name__)

# Business rules constants
MAX_MESSAGE_LENGTH = 2000
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class RoomBroadcaster(Protocol):
    """Fans a payload out to a room's connected members without raising."""

    def broadcast_to_room_threadsafe(self, room_id: UUID, payload: Dict[str, Any]) -> Any:
        ...


@dataclass
class MessageView:
    id: int
    room_id: UUID
    sender_id: str
    sender_display_name: str
    text: str
    sent_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "roomId": str(self.room_id),
            "senderId": self.sender_id,
            "senderDisplayName": self.sender_display_name,
            "text": self.text,
            "sentAt": self.sent_at.isoformat(),
        }


class ChatService:
    """Chat service for business logic."""

    def __init__(
        self,
        chat_repo: ChatRepo,
        message_repo: MessageRepo,
        user_repo: UserRepo,
        broadcaster: Optional[RoomBroadcaster] = None,
    ):
        """Initialize the chat service."""
        self.chat_repo = chat_repo
        self.message_repo = message_repo
        self.user_repo = user_repo
        self.broadcaster = broadcaster

    def list_rooms(self, user_id: str) -> List[RoomSummary]:
        """List the user's rooms, soft-left ones included."""
        logger.debug(f"Listing rooms for user {user_id}")
        return self.chat_repo.list_rooms_for(user_id)

    def join(self, room_id: UUID, user_id: str) -> ChatMembership:
        """Join a room the matching flow placed the user in, reactivating if needed."""
        logger.info(f"User {user_id} joining room {room_id}")

        membership = self.chat_repo.set_membership_active(room_id, user_id, True)
        if membership is None:
            raise MembershipError("User is not a member of this room")
        return membership

    def leave(self, room_id: UUID, user_id: str) -> ChatMembership:
        """Soft-leave a room. Leaving twice is a no-op."""
        logger.info(f"User {user_id} leaving room {room_id}")

        membership = self.chat_repo.set_membership_active(room_id, user_id, False)
        if membership is None:
            raise MembershipError("User is not a member of this room")
        return membership

    def append(self, room_id: UUID, user_id: str, text: str) -> MessageView:
        """Persist a message from an active member and broadcast it."""
        self._validate_message_text(text)

        if not self.chat_repo.is_active_member(room_id, user_id):
            raise MembershipError("User is not an active member of this room")

        message = self.message_repo.create_message(room_id, user_id, text.strip())
        view = self._to_view(message, self.user_repo.resolve(user_id))

        self._broadcast(view)
        return view

    def get_messages(
        self,
        room_id: UUID,
        user_id: str,
        take: int = DEFAULT_PAGE_SIZE,
        before: Optional[datetime] = None,
        before_id: Optional[int] = None,
    ) -> List[MessageView]:
        """
        Get a page of history, newest first. Former members may still read.

        Pass the last message's ``sent_at`` and ``id`` as ``before`` and
        ``before_id`` to fetch the next older page.
        """
        if not self.chat_repo.is_member(room_id, user_id):
            raise MembershipError("User is not a member of this room")

        take = max(1, min(take, MAX_PAGE_SIZE))
        if before is not None and before.tzinfo is not None:
            before = before.astimezone(timezone.utc)

        messages = self.message_repo.get_messages_before(
            room_id, before, take, before_id=before_id
        )
        names = self.user_repo.get_display_names(str(m.sender_id) for m in messages)

        logger.debug(f"Retrieved {len(messages)} messages for room {room_id}")
        return [self._to_view(m, names[str(m.sender_id)]) for m in messages]

    def is_active_member(self, room_id: UUID, user_id: str) -> bool:
        return self.chat_repo.is_active_member(room_id, user_id)

    def _validate_message_text(self, text: Optional[str]) -> None:
        """Validate message text according to business rules."""
        if text is None or not text.strip():
            raise ValidationError("Message text cannot be empty")

        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                f"Message text cannot exceed {MAX_MESSAGE_LENGTH} characters"
            )

    def _broadcast(self, view: MessageView) -> None:
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.broadcast_to_room_threadsafe(
                view.room_id,
                {
                    "type": NotificationType.MESSAGE_RECEIVED.value,
                    "message": view.to_payload(),
                },
            )
        except Exception as e:
            logger.warning(f"Failed to broadcast message {view.id}: {e}")

    @staticmethod
    def _to_view(message: ChatMessage, display_name: str) -> MessageView:
        return MessageView(
            id=message.id,  # type: ignore[arg-type]
            room_id=message.room_id,  # type: ignore[arg-type]
            sender_id=message.sender_id,  # type: ignore[arg-type]
            sender_display_name=display_name,
            text=message.text,  # type: ignore[arg-type]
            sent_at=message.sent_at,  # type: ignore[arg-type]
        )
