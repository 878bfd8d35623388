"""
tests/conftest.py -- Shared test fixtures for IssueDesk.

This module provides:
  - user_store / issue_store: stores over a fresh SQLite file per test
  - clock: a controllable UTC clock for expiry tests
  - sessions / identity / auth_service: the auth core wired to those stores
  - make_channel: in-memory RequestChannel instances (one per simulated client)
  - client: TestClient over the assembled ASGI app with a patched lifespan

Design: each test gets its own database file under tmp_path. File-backed
SQLite (not :memory:) is used because TestClient runs route handlers in a
thread pool and the concurrency tests write from several threads; both need
every connection to see the same database with normal locking.

DEBUG, BCRYPT_ROUNDS and ALLOWED_HOSTS must be set before any app import:
get_settings() is cached on first use, auth/tokens.py reads it at import,
and api/main.py installs TrustedHostMiddleware at import.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from api.main import wire_services
from asgi import app
from auth.identity import IdentityResolver
from auth.service import AuthService
from auth.sessions import SessionStore
from auth.store import UserStore
from issues.store import IssueStore

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class MemoryChannel:
    """RequestChannel that keeps the token in memory -- one simulated browser."""

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.max_age: int | None = None
        self.redirected_to: str | None = None

    def get(self) -> str | None:
        return self.token

    def set(self, token: str, max_age: int) -> None:
        self.token = token
        self.max_age = max_age

    def clear(self) -> None:
        self.token = None
        self.max_age = None

    def redirect(self, location: str) -> None:
        self.redirected_to = location


class FakeClock:
    """Callable UTC clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Store and service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'issuedesk_test.db'}"


@pytest.fixture
def user_store(db_url) -> Generator[UserStore, None, None]:
    store = UserStore(db_url=db_url)
    yield store
    store.close()


@pytest.fixture
def issue_store(user_store) -> Generator[IssueStore, None, None]:
    store = IssueStore(engine=user_store.engine)
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(user_store, clock) -> SessionStore:
    return SessionStore(user_store, expire_seconds=3600, clock=clock)


@pytest.fixture
def identity(sessions, user_store) -> IdentityResolver:
    return IdentityResolver(sessions, user_store)


@pytest.fixture
def auth_service(user_store, sessions) -> AuthService:
    return AuthService(user_store, sessions)


@pytest.fixture
def make_channel():
    return MemoryChannel


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, issue_store: IssueStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the test stores into app.state through the same wire_services()
    the real lifespan uses. The purge_task is a long-sleeping coroutine so
    shutdown has a real asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, user_store, issue_store)
        purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        purge_task.cancel()

    return test_lifespan


@pytest.fixture
def make_client(user_store, issue_store):
    """Factory for TestClients over the assembled app and the per-test stores.

    follow_redirects=False so tests can assert on redirect locations.
    """
    app.router.lifespan_context = _patch_lifespan(user_store, issue_store)
    clients: list[TestClient] = []

    def _make(raise_server_exceptions: bool = True) -> TestClient:
        client = TestClient(app, follow_redirects=False, raise_server_exceptions=raise_server_exceptions)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
