"""User model.

Identity is owned by the auth service; this table mirrors the id and the
display name used when rendering candidates and messages.
"""

from sqlalchemy import TIMESTAMP, Column, String, func
from sqlalchemy.orm import relationship

from . import Base


class User(Base):
    __tablename__ = "app_user"

    id = Column(String(64), primary_key=True)
    display_name = Column(String(100), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    # Relationships
    likes = relationship("MovieLike", back_populates="user")
    memberships = relationship("ChatMembership", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, display_name='{self.display_name}')>"
