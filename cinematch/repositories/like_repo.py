"""Movie like repository."""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, cast

from sqlalchemy.orm import Session

from cinematch.core.logging import get_logger
from cinematch.models.like import MovieLike
from cinematch.repositories.base_repo import BaseRepo

logger = get_logger(__name__)


class LikeRepo(BaseRepo):
    """Movie like repository."""

    def _upsert_like_implementation(
        self, session: Session, user_id: str, tmdb_id: int, title: Optional[str]
    ) -> MovieLike:
        """Implementation of like upsert."""
        like = (
            session.query(MovieLike)
            .filter(MovieLike.user_id == user_id, MovieLike.tmdb_id == tmdb_id)
            .one_or_none()
        )
        if like is None:
            like = MovieLike(
                user_id=user_id,
                tmdb_id=tmdb_id,
                title=title or "",
                created_at=datetime.now(timezone.utc),
            )
            session.add(like)
            logger.info(f"User {user_id} liked movie {tmdb_id}")
        elif title:
            # Keep the latest title snapshot
            like.title = title  # type: ignore[assignment]

        session.flush()
        return like

    def upsert_like(
        self,
        user_id: str,
        tmdb_id: int,
        title: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> MovieLike:
        """Mark a movie as liked by a user."""
        return cast(
            MovieLike,
            self._execute_with_session(
                lambda s: self._upsert_like_implementation(s, user_id, tmdb_id, title),
                session=session,
                operation_name="upsert_like",
            ),
        )

    def _remove_like_implementation(
        self, session: Session, user_id: str, tmdb_id: int
    ) -> None:
        """Implementation of like removal."""
        session.query(MovieLike).filter(
            MovieLike.user_id == user_id, MovieLike.tmdb_id == tmdb_id
        ).delete()

    def remove_like(
        self, user_id: str, tmdb_id: int, session: Optional[Session] = None
    ) -> None:
        """Remove a like. Removing a missing like is a no-op."""
        self._execute_with_session(
            lambda s: self._remove_like_implementation(s, user_id, tmdb_id),
            session=session,
            operation_name="remove_like",
        )

    def _get_likes_implementation(
        self, session: Session, user_id: str
    ) -> List[MovieLike]:
        """Implementation of likes retrieval."""
        return cast(
            List[MovieLike],
            (
                session.query(MovieLike)
                .filter(MovieLike.user_id == user_id)
                .order_by(MovieLike.created_at.desc(), MovieLike.tmdb_id.asc())
                .all()
            ),
        )

    def get_likes(
        self, user_id: str, session: Optional[Session] = None
    ) -> List[MovieLike]:
        """Get a user's likes, newest first."""
        return cast(
            List[MovieLike],
            self._execute_with_session(
                lambda s: self._get_likes_implementation(s, user_id),
                session=session,
                operation_name="get_likes",
            ),
        )

    def get_liked_item_ids(
        self, user_id: str, session: Optional[Session] = None
    ) -> Set[int]:
        """Get the set of movie ids a user has liked."""
        return cast(
            Set[int],
            self._execute_with_session(
                lambda s: {
                    row.tmdb_id
                    for row in s.query(MovieLike.tmdb_id)
                    .filter(MovieLike.user_id == user_id)
                    .all()
                },
                session=session,
                operation_name="get_liked_item_ids",
            ),
        )

    def _get_likers_implementation(
        self, session: Session, tmdb_ids: Iterable[int], exclude_user_id: str
    ) -> Dict[str, List[MovieLike]]:
        """Implementation of overlap lookup."""
        ids = list(tmdb_ids)
        if not ids:
            return {}

        rows = (
            session.query(MovieLike)
            .filter(MovieLike.tmdb_id.in_(ids), MovieLike.user_id != exclude_user_id)
            .all()
        )
        likers: Dict[str, List[MovieLike]] = {}
        for row in rows:
            likers.setdefault(cast(str, row.user_id), []).append(row)
        return likers

    def get_likers(
        self,
        tmdb_ids: Iterable[int],
        exclude_user_id: str,
        session: Optional[Session] = None,
    ) -> Dict[str, List[MovieLike]]:
        """Group other users' likes on the given movies by user id."""
        return cast(
            Dict[str, List[MovieLike]],
            self._execute_with_session(
                lambda s: self._get_likers_implementation(s, tmdb_ids, exclude_user_id),
                session=session,
                operation_name="get_likers",
            ),
        )
