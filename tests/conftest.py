"""Shared fixtures: a throwaway SQLite database, local image storage and API helpers."""
from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

# Configuration must be in place before application modules are imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="board-tests-"))
_MEDIA_DIR = _TMP_DIR / "media"
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{_TMP_DIR / 'board.db'}")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("IMAGE_STORAGE", "local")
os.environ.setdefault("MEDIA_ROOT", str(_MEDIA_DIR))

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from board.config import get_settings  # noqa: E402
from board.database import Base, SessionLocal, engine  # noqa: E402
from board.main import app  # noqa: E402
from board.models import Post, PostLike, PostReply, User, UserSession  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    """Create all tables once for the test run."""

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    """Remove persisted rows between tests."""

    with SessionLocal() as session:
        session.execute(delete(PostLike))
        session.execute(delete(PostReply))
        session.execute(delete(Post))
        session.execute(delete(UserSession))
        session.execute(delete(User))
        session.commit()
    yield


@pytest.fixture
def media_root() -> Path:
    return Path(get_settings().media_root)


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_client():
    """Factory for extra clients, each with its own cookie jar."""

    clients: list[TestClient] = []

    def _factory() -> TestClient:
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _factory
    for test_client in clients:
        test_client.__exit__(None, None, None)

