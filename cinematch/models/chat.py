"""Chat room model."""

import uuid

from sqlalchemy import TIMESTAMP, Column, Integer, String, Uuid, func
from sqlalchemy.orm import relationship

from . import Base


class ChatRoom(Base):
    """Room created by a mutual match, one per unordered user pair."""

    __tablename__ = "chat_room"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pair_key = Column(String(140), nullable=False, unique=True)
    tmdb_id = Column(Integer, nullable=True)  # movie whose mutual match created the room
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    # Relationships
    memberships = relationship(
        "ChatMembership", back_populates="room", cascade="all, delete-orphan"
    )
    messages = relationship(
        "ChatMessage", back_populates="room", cascade="all, delete-orphan"
    )

    @classmethod
    def create_pair_key(cls, user1_id: str, user2_id: str) -> str:
        """Create pair_key from two user IDs ensuring consistent ordering."""
        min_id, max_id = sorted([str(user1_id), str(user2_id)])
        return f"{min_id}::{max_id}"

    @classmethod
    def find_by_users(cls, session, user1_id: str, user2_id: str):
        """Find the existing room between two users."""
        pair_key = cls.create_pair_key(user1_id, user2_id)
        return session.query(cls).filter_by(pair_key=pair_key).first()

    def __repr__(self):
        return f"<ChatRoom(id={self.id}, pair_key='{self.pair_key}')>"
