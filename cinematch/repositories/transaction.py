"""Transaction context manager for coordinated multi-repository operations."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from cinematch.core.errors import StorageUnavailable


@contextmanager
def transaction_scope(session_factory) -> Generator[Session, None, None]:
    """
    Context manager for coordinated multi-repository operations.

    Provides a session that can be shared across multiple repositories
    for atomic operations spanning multiple aggregates.

    Usage:
        with transaction_scope(SessionLocal) as session:
            room = chat_repo.create_room_with_members(..., session=session)
            # Room and both memberships committed together

    Args:
        session_factory: SQLAlchemy session factory (e.g., SessionLocal)

    Yields:
        Session: SQLAlchemy session for coordinated operations

    Raises:
        StorageUnavailable: The database could not be reached
        Exception: Any other exception from repository operations (after rollback)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        raise StorageUnavailable("Storage unavailable") from e
    except Exception:
        session.rollback()
        raise
    finally:
        try:
            session.close()
        except Exception:
            # Ignore close errors - session cleanup is best effort
            pass
