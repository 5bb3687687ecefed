"""Message repository."""

from datetime import datetime, timezone
from typing import List, Optional, cast
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from cinematch.core.logging import get_logger
from cinematch.models.message import ChatMessage
from cinematch.repositories.base_repo import BaseRepo

logger = get_logger(__name__)


class MessageRepo(BaseRepo):
    """Message repository."""

    def _create_message_implementation(
        self, session: Session, room_id: UUID, sender_id: str, text: str
    ) -> ChatMessage:
        """Implementation of message creation."""
        message = ChatMessage(
            room_id=room_id,
            sender_id=sender_id,
            text=text,
            sent_at=datetime.now(timezone.utc),
        )
        session.add(message)
        session.flush()

        logger.info(f"Created message: {message.id} in room {room_id} from user {sender_id}")
        return message

    def create_message(
        self,
        room_id: UUID,
        sender_id: str,
        text: str,
        session: Optional[Session] = None,
    ) -> ChatMessage:
        """Create a new message."""
        return cast(
            ChatMessage,
            self._execute_with_session(
                lambda s: self._create_message_implementation(s, room_id, sender_id, text),
                session=session,
                operation_name="create_message",
            ),
        )

    def _get_messages_before_implementation(
        self,
        session: Session,
        room_id: UUID,
        before_timestamp: Optional[datetime],
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[ChatMessage]:
        """Implementation of backward history retrieval."""
        if limit < 0:
            raise ValueError("Limit must be non-negative")
        if limit == 0:
            return []

        query = session.query(ChatMessage).filter(ChatMessage.room_id == room_id)
        if before_timestamp is not None and before_id is not None:
            # Keyset on (sent_at, id)
            query = query.filter(
                or_(
                    ChatMessage.sent_at < before_timestamp,
                    and_(
                        ChatMessage.sent_at == before_timestamp,
                        ChatMessage.id < before_id,
                    ),
                )
            )
        elif before_timestamp is not None:
            query = query.filter(ChatMessage.sent_at < before_timestamp)

        return cast(
            List[ChatMessage],
            query.order_by(ChatMessage.sent_at.desc(), ChatMessage.id.desc())
            .limit(limit)
            .all(),
        )

    def get_messages_before(
        self,
        room_id: UUID,
        before_timestamp: Optional[datetime] = None,
        limit: int = 50,
        before_id: Optional[int] = None,
        session: Optional[Session] = None,
    ) -> List[ChatMessage]:
        """
        Get up to ``limit`` messages older than the cursor, newest first.

        The cursor is ``(before_timestamp, before_id)``. With only a timestamp,
        every message at or after it is excluded.
        """
        return cast(
            List[ChatMessage],
            self._execute_with_session(
                lambda s: self._get_messages_before_implementation(
                    s, room_id, before_timestamp, limit, before_id
                ),
                session=session,
                operation_name="get_messages_before",
            ),
        )
