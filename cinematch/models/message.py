"""Chat message model."""

from sqlalchemy import (
    TIMESTAMP,
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import relationship

from . import Base


class ChatMessage(Base):
    __tablename__ = "chat_message"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    room_id = Column(
        Uuid, ForeignKey("chat_room.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(64), ForeignKey("app_user.id"), nullable=False)
    text = Column(Text, nullable=False)
    sent_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    # Relationships
    room = relationship("ChatRoom", back_populates="messages")

    __table_args__ = (
        Index("ix_chat_message_room_sent", "room_id", "sent_at"),  # Timeline paging
        Index("ix_chat_message_sender", "sender_id"),
    )

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, room_id={self.room_id}, sender_id={self.sender_id})>"
