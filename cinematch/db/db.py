"""Database connection manager and session factory."""

from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cinematch.core.config import settings


def build_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine with the configured pool settings.

    SQLite gets a busy timeout and foreign keys instead of pool sizing, so
    several worker threads can share one database file.
    """
    url = database_url or settings.DATABASE_URL
    echo = settings.SQL_ECHO if echo is None else echo

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=echo,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
        pool_timeout=settings.POOL_TIMEOUT,
        pool_pre_ping=True,  # Validates connections before use
        echo=echo,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory shared by repositories and transaction scopes."""
    return sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )


def get_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Yield a session that is rolled back on error and always closed.

    Example:
        for db in get_db(SessionLocal):
            db.query(User).all()
    """
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
