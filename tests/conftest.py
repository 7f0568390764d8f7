"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os
from collections.abc import Iterator
from types import SimpleNamespace

import pytest
from fastapi import Header
from fastapi.testclient import TestClient

ADMIN_ID = "admin-1"


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
    os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
    os.environ.setdefault("ADMIN_USER_IDS", ADMIN_ID)
    os.environ.setdefault("STORAGE_BACKEND", "memory")


# Settings are read at import time by the app modules under test.
_set_default_env()


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a FastAPI test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def session():
    """Fresh in-memory voting session."""
    from app.services.voting_session import VotingSession
    from app.services.voting_store import InMemoryVotingStore

    return VotingSession(InMemoryVotingStore())


@pytest.fixture
def api(session) -> Iterator[TestClient]:
    """Test client whose caller is chosen with the ``X-Test-User`` header."""
    from app.dependencies import get_authenticated_user, get_voting_session
    from app.main import app
    from app.utils.errors import UnauthorizedError

    def _test_user(x_test_user: str | None = Header(None)) -> SimpleNamespace:
        if not x_test_user:
            raise UnauthorizedError("Missing authorization header")
        return SimpleNamespace(id=x_test_user)

    app.dependency_overrides[get_authenticated_user] = _test_user
    app.dependency_overrides[get_voting_session] = lambda: session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
