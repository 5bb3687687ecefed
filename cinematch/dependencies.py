"""FastAPI dependencies for dependency injection.

Process-wide objects (session factory, presence registry, dispatcher) live
on ``app.state`` so each app instance, including the ones built in tests,
carries its own set.
"""

from typing import Generator

from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import HTTPConnection

from cinematch.db.db import get_db
from cinematch.realtime import NotificationDispatcher, PresenceRegistry
from cinematch.repositories.chat_repo import ChatRepo
from cinematch.repositories.like_repo import LikeRepo
from cinematch.repositories.match_repo import MatchRepo
from cinematch.repositories.message_repo import MessageRepo
from cinematch.repositories.user_repo import UserRepo
from cinematch.services.chat_service import ChatService
from cinematch.services.match_service import MatchService


def get_session_factory(conn: HTTPConnection) -> sessionmaker:
    """Get the session factory bound to this app."""
    return conn.app.state.session_factory


def get_registry(conn: HTTPConnection) -> PresenceRegistry:
    return conn.app.state.registry


def get_dispatcher(conn: HTTPConnection) -> NotificationDispatcher:
    return conn.app.state.dispatcher


def get_db_session(conn: HTTPConnection) -> Generator[Session, None, None]:
    """FastAPI dependency that provides a database session."""
    yield from get_db(get_session_factory(conn))


def get_user_repo(conn: HTTPConnection) -> UserRepo:
    """Get UserRepo instance with session factory."""
    return UserRepo(get_session_factory(conn))


def get_like_repo(conn: HTTPConnection) -> LikeRepo:
    """Get LikeRepo instance with session factory."""
    return LikeRepo(get_session_factory(conn))


def get_match_service(conn: HTTPConnection) -> MatchService:
    """Get MatchService instance with dependencies."""
    session_factory = get_session_factory(conn)
    return MatchService(
        session_factory,
        MatchRepo(session_factory),
        ChatRepo(session_factory),
        LikeRepo(session_factory),
        UserRepo(session_factory),
        notifier=get_dispatcher(conn),
    )


def get_chat_service(conn: HTTPConnection) -> ChatService:
    """Get ChatService instance with dependencies."""
    session_factory = get_session_factory(conn)
    return ChatService(
        ChatRepo(session_factory),
        MessageRepo(session_factory),
        UserRepo(session_factory),
        broadcaster=get_dispatcher(conn),
    )
