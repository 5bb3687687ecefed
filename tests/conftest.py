"""Main conftest.py shared by all test packages."""

import os

# Settings are read at import time, so the environment goes first
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ.setdefault("ENVIRONMENT", "test")

import threading  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Any, Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from cinematch.db.db import build_engine, build_session_factory  # noqa: E402
from cinematch.main import create_app  # noqa: E402
from cinematch.models import Base  # noqa: E402
from cinematch.models.like import MovieLike  # noqa: E402
from cinematch.repositories import (  # noqa: E402
    ChatRepo,
    LikeRepo,
    MatchRepo,
    MessageRepo,
    UserRepo,
)
from cinematch.services.chat_service import ChatService  # noqa: E402
from cinematch.services.match_service import MatchService  # noqa: E402
from tests.helpers.data_helper import BASE_TIME  # noqa: E402


class RecordingNotifier:
    """Collects match notifications instead of pushing them."""

    def __init__(self):
        self._lock = threading.Lock()
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    def notify(self, user_id: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self.sent.append((user_id, payload))

    def of_type(self, notification_type: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return [(u, p) for u, p in self.sent if p["type"] == notification_type]


class RecordingBroadcaster:
    """Collects room broadcasts instead of pushing them."""

    def __init__(self):
        self.broadcasts: List[Tuple[Any, Dict[str, Any]]] = []

    def broadcast_to_room_threadsafe(self, room_id, payload: Dict[str, Any]) -> None:
        self.broadcasts.append((room_id, payload))


@pytest.fixture
def test_engine(tmp_path):
    """File-backed SQLite database so worker threads get their own connections."""
    engine = build_engine(f"sqlite:///{tmp_path / 'cinematch_test.db'}", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    """Create session factory for tests."""
    return build_session_factory(test_engine)


@pytest.fixture
def test_session(test_session_factory):
    """Create a database session for each test."""
    session = test_session_factory()
    try:
        yield session
    finally:
        # Rollback any uncommitted changes and close
        session.rollback()
        session.close()


# Repository fixtures
@pytest.fixture
def user_repo(test_session_factory):
    """UserRepo instance with test session factory."""
    return UserRepo(test_session_factory)


@pytest.fixture
def like_repo(test_session_factory):
    """LikeRepo instance with test session factory."""
    return LikeRepo(test_session_factory)


@pytest.fixture
def match_repo(test_session_factory):
    """MatchRepo instance with test session factory."""
    return MatchRepo(test_session_factory)


@pytest.fixture
def chat_repo(test_session_factory):
    """ChatRepo instance with test session factory."""
    return ChatRepo(test_session_factory)


@pytest.fixture
def message_repo(test_session_factory):
    """MessageRepo instance with test session factory."""
    return MessageRepo(test_session_factory)


# Service fixtures
@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def match_service(
    test_session_factory, match_repo, chat_repo, like_repo, user_repo, notifier
):
    """MatchService wired to the test database and a recording notifier."""
    return MatchService(
        test_session_factory,
        match_repo,
        chat_repo,
        like_repo,
        user_repo,
        notifier=notifier,
    )


@pytest.fixture
def chat_service(chat_repo, message_repo, user_repo, broadcaster):
    """ChatService wired to the test database and a recording broadcaster."""
    return ChatService(chat_repo, message_repo, user_repo, broadcaster=broadcaster)


# Data fixtures
@pytest.fixture
def sample_users(user_repo):
    """Create alice, bob, carol and dave."""
    return [
        user_repo.create_user("alice", "Alice"),
        user_repo.create_user("bob", "Bob"),
        user_repo.create_user("carol", "Carol"),
        user_repo.create_user("dave", "Dave"),
    ]


@pytest.fixture
def add_like(test_session_factory):
    """Insert a like with a controlled timestamp (minutes after BASE_TIME)."""

    def _add_like(
        user_id: str, tmdb_id: int, minute: int = 0, title: Optional[str] = None
    ) -> MovieLike:
        session = test_session_factory()
        try:
            like = MovieLike(
                user_id=user_id,
                tmdb_id=tmdb_id,
                title=title or f"Movie {tmdb_id}",
                created_at=BASE_TIME + timedelta(minutes=minute),
            )
            session.add(like)
            session.commit()
            return like
        finally:
            session.close()

    return _add_like


@pytest.fixture
def matched_room(match_service, sample_users):
    """Room created by a completed alice/bob handshake on movie 550."""
    match_service.request_match("alice", "bob", 550)
    result = match_service.request_match("bob", "alice", 550)
    return result.room_id


# API fixtures
@pytest.fixture
def app(test_engine):
    """Application bound to the test database."""
    return create_app(test_engine)


@pytest.fixture
def client(app):
    """Create test client with the lifespan running."""
    with TestClient(app) as test_client:
        yield test_client
