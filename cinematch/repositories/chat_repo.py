"""Chat room and membership repository."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, cast
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinematch.core.errors import ConflictError
from cinematch.core.logging import get_logger
from cinematch.models.chat import ChatRoom
from cinematch.models.membership import ChatMembership
from cinematch.models.message import ChatMessage
from cinematch.models.user import User
from cinematch.repositories.base_repo import BaseRepo
from cinematch.repositories.user_repo import UNKNOWN_DISPLAY_NAME

logger = get_logger(__name__)

PREVIEW_LENGTH = 120


@dataclass
class RoomSummary:
    """One entry of a user's room list."""

    room_id: UUID
    other_user_id: str
    other_display_name: str
    tmdb_id: Optional[int]
    is_active: bool
    created_at: datetime
    last_message_preview: Optional[str] = None
    last_message_at: Optional[datetime] = None


class ChatRepo(BaseRepo):
    """Chat room and membership repository."""

    def _create_room_with_members_implementation(
        self, session: Session, user_a: str, user_b: str, tmdb_id: Optional[int]
    ) -> ChatRoom:
        """Implementation of room creation."""
        if user_a == user_b:
            raise ValueError("Cannot create a room with the same user twice")

        existing = cast(Optional[ChatRoom], ChatRoom.find_by_users(session, user_a, user_b))
        if existing:
            logger.debug(f"Returning existing room: {existing.id}")
            return existing

        now = datetime.now(timezone.utc)
        room = ChatRoom(
            pair_key=ChatRoom.create_pair_key(user_a, user_b),
            tmdb_id=tmdb_id,
            created_at=now,
        )
        session.add(room)
        session.flush()  # Unique pair_key is checked here

        for user_id in (user_a, user_b):
            session.add(
                ChatMembership(
                    room_id=room.id, user_id=user_id, is_active=True, joined_at=now
                )
            )
        session.flush()

        logger.info(f"Created chat room: {room.id} between {user_a} and {user_b}")
        return room

    def create_room_with_members(
        self,
        user_a: str,
        user_b: str,
        tmdb_id: Optional[int] = None,
        session: Optional[Session] = None,
    ) -> ChatRoom:
        """
        Create the pair's room with both memberships active.

        In auto-commit mode a lost race is resolved by returning the room the
        other writer committed. Inside a caller's session the transaction is
        no longer usable, so ``ConflictError`` is raised instead.
        """
        try:
            return cast(
                ChatRoom,
                self._execute_with_session(
                    lambda s: self._create_room_with_members_implementation(
                        s, user_a, user_b, tmdb_id
                    ),
                    session=session,
                    operation_name="create_room_with_members",
                ),
            )
        except IntegrityError as e:
            if session is not None:
                raise ConflictError(
                    f"Room for {user_a} and {user_b} was created concurrently"
                ) from e
            winner = self.get_room_for_pair(user_a, user_b)
            if winner is None:
                raise
            logger.info(f"Lost room creation race, using room {winner.id}")
            return winner

    def get_room_for_pair(
        self, user_a: str, user_b: str, session: Optional[Session] = None
    ) -> Optional[ChatRoom]:
        """Get the room shared by two users, if any."""
        return cast(
            Optional[ChatRoom],
            self._execute_with_session(
                lambda s: ChatRoom.find_by_users(s, user_a, user_b),
                session=session,
                operation_name="get_room_for_pair",
            ),
        )

    def _get_rooms_with_implementation(
        self, session: Session, user_id: str, other_user_ids: Iterable[str]
    ) -> Dict[str, UUID]:
        """Implementation of bulk pair room lookup."""
        keys = {
            ChatRoom.create_pair_key(user_id, other_id): other_id
            for other_id in other_user_ids
        }
        if not keys:
            return {}

        rows = (
            session.query(ChatRoom.pair_key, ChatRoom.id)
            .filter(ChatRoom.pair_key.in_(list(keys)))
            .all()
        )
        return {keys[row.pair_key]: row.id for row in rows}

    def get_rooms_with(
        self,
        user_id: str,
        other_user_ids: Iterable[str],
        session: Optional[Session] = None,
    ) -> Dict[str, UUID]:
        """Map each other user that shares a room with ``user_id`` to that room id."""
        return cast(
            Dict[str, UUID],
            self._execute_with_session(
                lambda s: self._get_rooms_with_implementation(s, user_id, other_user_ids),
                session=session,
                operation_name="get_rooms_with",
            ),
        )

    def get_room_by_id(
        self, room_id: UUID, session: Optional[Session] = None
    ) -> Optional[ChatRoom]:
        """Get a room by ID."""
        return cast(
            Optional[ChatRoom],
            self._execute_with_session(
                lambda s: s.query(ChatRoom).filter(ChatRoom.id == room_id).one_or_none(),
                session=session,
                operation_name="get_room_by_id",
            ),
        )

    def _list_rooms_for_implementation(
        self, session: Session, user_id: str
    ) -> List[RoomSummary]:
        """Implementation of room listing."""
        mine = (
            session.query(ChatMembership, ChatRoom)
            .join(ChatRoom, ChatRoom.id == ChatMembership.room_id)
            .filter(ChatMembership.user_id == user_id)
            .all()
        )
        if not mine:
            return []

        room_ids = [membership.room_id for membership, _ in mine]

        others = (
            session.query(ChatMembership.room_id, ChatMembership.user_id, User.display_name)
            .outerjoin(User, User.id == ChatMembership.user_id)
            .filter(
                ChatMembership.room_id.in_(room_ids),
                ChatMembership.user_id != user_id,
            )
            .all()
        )
        other_by_room = {row.room_id: row for row in others}

        ranked = (
            session.query(
                ChatMessage.room_id,
                ChatMessage.text,
                ChatMessage.sent_at,
                func.row_number()
                .over(
                    partition_by=ChatMessage.room_id,
                    order_by=(ChatMessage.sent_at.desc(), ChatMessage.id.desc()),
                )
                .label("rn"),
            )
            .filter(ChatMessage.room_id.in_(room_ids))
            .subquery()
        )
        last_by_room = {
            row.room_id: row
            for row in session.query(ranked.c.room_id, ranked.c.text, ranked.c.sent_at)
            .filter(ranked.c.rn == 1)
            .all()
        }

        summaries = []
        for membership, room in mine:
            other = other_by_room.get(room.id)
            last = last_by_room.get(room.id)
            summaries.append(
                RoomSummary(
                    room_id=room.id,
                    other_user_id=other.user_id if other else "",
                    other_display_name=(
                        other.display_name if other and other.display_name else UNKNOWN_DISPLAY_NAME
                    ),
                    tmdb_id=room.tmdb_id,
                    is_active=bool(membership.is_active),
                    created_at=room.created_at,
                    last_message_preview=last.text[:PREVIEW_LENGTH] if last else None,
                    last_message_at=last.sent_at if last else None,
                )
            )

        summaries.sort(key=lambda s: s.last_message_at or s.created_at, reverse=True)
        return summaries

    def list_rooms_for(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[RoomSummary]:
        """List every room the user was placed in, including soft-left ones."""
        return cast(
            List[RoomSummary],
            self._execute_with_session(
                lambda s: self._list_rooms_for_implementation(s, user_id),
                session=session,
                operation_name="list_rooms_for",
            ),
        )

    def _get_membership_implementation(
        self, session: Session, room_id: UUID, user_id: str
    ) -> Optional[ChatMembership]:
        """Implementation of membership lookup."""
        return cast(
            Optional[ChatMembership],
            (
                session.query(ChatMembership)
                .filter(
                    ChatMembership.room_id == room_id, ChatMembership.user_id == user_id
                )
                .one_or_none()
            ),
        )

    def get_membership(
        self, room_id: UUID, user_id: str, session: Optional[Session] = None
    ) -> Optional[ChatMembership]:
        """Get a user's membership row in a room."""
        return cast(
            Optional[ChatMembership],
            self._execute_with_session(
                lambda s: self._get_membership_implementation(s, room_id, user_id),
                session=session,
                operation_name="get_membership",
            ),
        )

    def _set_membership_active_implementation(
        self, session: Session, room_id: UUID, user_id: str, active: bool
    ) -> Optional[ChatMembership]:
        """Implementation of membership activation toggle."""
        membership = self._get_membership_implementation(session, room_id, user_id)
        if membership is None or bool(membership.is_active) == active:
            return membership

        now = datetime.now(timezone.utc)
        membership.is_active = active  # type: ignore[assignment]
        if active:
            membership.joined_at = now  # type: ignore[assignment]
            membership.left_at = None  # type: ignore[assignment]
        else:
            membership.left_at = now  # type: ignore[assignment]
        session.flush()

        logger.info(
            f"Membership of {user_id} in room {room_id} is now "
            f"{'active' if active else 'inactive'}"
        )
        return membership

    def set_membership_active(
        self,
        room_id: UUID,
        user_id: str,
        active: bool,
        session: Optional[Session] = None,
    ) -> Optional[ChatMembership]:
        """Flip a membership's active flag. Returns None when no row exists."""
        return cast(
            Optional[ChatMembership],
            self._execute_with_session(
                lambda s: self._set_membership_active_implementation(
                    s, room_id, user_id, active
                ),
                session=session,
                operation_name="set_membership_active",
            ),
        )

    def is_member(
        self, room_id: UUID, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Check whether a membership row exists, active or not."""
        return self.get_membership(room_id, user_id, session=session) is not None

    def is_active_member(
        self, room_id: UUID, user_id: str, session: Optional[Session] = None
    ) -> bool:
        """Check whether the user currently participates in the room."""
        membership = self.get_membership(room_id, user_id, session=session)
        return bool(membership is not None and membership.is_active)

    def get_active_member_ids(
        self, room_id: UUID, session: Optional[Session] = None
    ) -> List[str]:
        """Get ids of the room's active members."""
        return cast(
            List[str],
            self._execute_with_session(
                lambda s: [
                    row.user_id
                    for row in s.query(ChatMembership.user_id)
                    .filter(
                        ChatMembership.room_id == room_id,
                        ChatMembership.is_active.is_(True),
                    )
                    .order_by(ChatMembership.user_id.asc())
                    .all()
                ],
                session=session,
                operation_name="get_active_member_ids",
            ),
        )
