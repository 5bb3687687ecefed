"""Movie like model."""

from sqlalchemy import TIMESTAMP, Column, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import relationship

from . import Base


class MovieLike(Base):
    """A user's "want to watch" mark on a catalog movie."""

    __tablename__ = "movie_like"

    user_id = Column(
        String(64), ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True
    )
    tmdb_id = Column(Integer, primary_key=True)
    title = Column(String(256), nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    # Relationships
    user = relationship("User", back_populates="likes")

    __table_args__ = (
        Index("ix_movie_like_tmdb_id", "tmdb_id"),  # "who liked movie X?"
        Index("ix_movie_like_user_created", "user_id", "created_at"),
    )

    def __repr__(self):
        return f"<MovieLike(user_id={self.user_id}, tmdb_id={self.tmdb_id})>"
