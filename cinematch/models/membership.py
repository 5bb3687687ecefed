"""Chat membership model."""

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from . import Base


class ChatMembership(Base):
    """Membership of a user in a room.

    Leaving flips ``is_active`` and stamps ``left_at``; the row is kept so
    history stays readable and the user can rejoin.
    """

    __tablename__ = "chat_membership"

    room_id = Column(
        Uuid, ForeignKey("chat_room.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(
        String(64), ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True
    )
    is_active = Column(Boolean, nullable=False, default=True)
    joined_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())
    left_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # Relationships
    room = relationship("ChatRoom", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        Index("ix_chat_membership_user_id", "user_id"),  # For "my rooms" lookup
    )

    def __repr__(self):
        return (
            f"<ChatMembership(room_id={self.room_id}, user_id={self.user_id}, "
            f"is_active={self.is_active})>"
        )
