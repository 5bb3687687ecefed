"""User repository."""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, cast

from sqlalchemy.orm import Session

from cinematch.core.logging import get_logger
from cinematch.models.user import User
from cinematch.repositories.base_repo import BaseRepo

logger = get_logger(__name__)

UNKNOWN_DISPLAY_NAME = "Unknown"


class UserRepo(BaseRepo):
    """User repository."""

    def _create_user_implementation(
        self, session: Session, user_id: str, display_name: Optional[str]
    ) -> User:
        """Implementation of user creation."""
        if not user_id or not user_id.strip():
            logger.warning("Attempted to create user with empty id")
            raise ValueError("User id cannot be empty or whitespace-only")

        user = User(
            id=user_id.strip(),
            display_name=display_name,
            created_at=datetime.now(timezone.utc),
        )
        session.add(user)
        session.flush()

        logger.info(f"Created user: {user.id} ({user.display_name})")
        return user

    def create_user(
        self,
        user_id: str,
        display_name: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> User:
        """Create a new user."""
        return cast(
            User,
            self._execute_with_session(
                lambda session: self._create_user_implementation(
                    session, user_id, display_name
                ),
                session=session,
                operation_name="create_user",
            ),
        )

    def _get_user_by_id_implementation(
        self, session: Session, user_id: str
    ) -> Optional[User]:
        """Implementation of user retrieval."""
        return cast(
            Optional[User], session.query(User).filter(User.id == user_id).one_or_none()
        )

    def get_user_by_id(
        self, user_id: str, session: Optional[Session] = None
    ) -> Optional[User]:
        """Get a user by id."""
        return cast(
            Optional[User],
            self._execute_with_session(
                lambda session: self._get_user_by_id_implementation(session, user_id),
                session=session,
                operation_name="get_user_by_id",
            ),
        )

    def _get_display_names_implementation(
        self, session: Session, user_ids: Iterable[str]
    ) -> Dict[str, str]:
        """Implementation of bulk display name resolution."""
        ids = list(set(user_ids))
        if not ids:
            return {}

        rows = session.query(User.id, User.display_name).filter(User.id.in_(ids)).all()
        names = {row.id: row.display_name or UNKNOWN_DISPLAY_NAME for row in rows}
        for user_id in ids:
            names.setdefault(user_id, UNKNOWN_DISPLAY_NAME)
        return names

    def get_display_names(
        self, user_ids: Iterable[str], session: Optional[Session] = None
    ) -> Dict[str, str]:
        """Resolve display names; unknown users resolve to "Unknown"."""
        return cast(
            Dict[str, str],
            self._execute_with_session(
                lambda session: self._get_display_names_implementation(
                    session, user_ids
                ),
                session=session,
                operation_name="get_display_names",
            ),
        )

    def resolve(self, user_id: str, session: Optional[Session] = None) -> str:
        """Resolve a single display name."""
        return self.get_display_names([user_id], session=session)[user_id]
