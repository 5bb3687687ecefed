"""Match request model."""

from sqlalchemy import (
    TIMESTAMP,
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)

from . import Base


class MatchRequest(Base):
    """One directed request to match on a movie.

    Rows are append-only. A->B and B->A for the same movie are two rows.
    """

    __tablename__ = "match_request"

    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    requestor_id = Column(
        String(64), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    target_user_id = Column(
        String(64), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
    )
    tmdb_id = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "requestor_id",
            "target_user_id",
            "tmdb_id",
            name="match_request_triple_unique",
        ),
        Index("ix_match_request_target_requestor", "target_user_id", "requestor_id"),
    )

    def __repr__(self):
        return (
            f"<MatchRequest(requestor_id={self.requestor_id}, "
            f"target_user_id={self.target_user_id}, tmdb_id={self.tmdb_id})>"
        )
