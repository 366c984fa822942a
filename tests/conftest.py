"""
tests/conftest.py -- Shared test fixtures.

This module provides:
  - _make_test_stores(): isolated in-memory DBs for users + sessions
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - user_store / session_store / strategy / make_user: unit-level fixtures
  - api_client: TestClient for JSON API tests
  - web_client: TestClient with follow_redirects=False for web route tests

Named shared-memory SQLite URIs (not plain :memory:) are required because
TestClient runs sync route handlers in a thread pool. Plain :memory: DBs are
per-connection and would present a blank schema to each worker thread.

DEBUG and ALLOWED_HOSTS must be set before any app import so get_settings()
auto-generates SECRET_KEY and TrustedHostMiddleware accepts "testserver".
"""

from __future__ import annotations

import asyncio
import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.hasher import calc_hash, generate_salt
from auth.models import UserRecord
from auth.store import SessionStore, UserStore
from auth.strategy import LocalStrategy

_db_counter = itertools.count()


def _db_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"


def _make_user(store: UserStore, name: str, password: str, **extra) -> int:
    """Insert a user with a properly hashed password and return its id."""
    salt = generate_salt()
    return store.create_user(UserRecord(name=name, password_digest=calc_hash(password, salt), salt=salt, **extra))


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, SessionStore]:
    """Create a user store and session store sharing one named in-memory DB."""
    url = _db_url(f"test_auth_{db_suffix}")
    return UserStore(url), SessionStore(url, expire_seconds=3600)


def _patch_lifespan(user_store: UserStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a real
    asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.strategy = LocalStrategy(user_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit fixtures -- a fresh database per test
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(_db_url("unit_users"))
    yield store
    store.close()


@pytest.fixture
def session_store() -> Generator[SessionStore, None, None]:
    store = SessionStore(_db_url("unit_sessions"), expire_seconds=3600)
    yield store
    store.close()


@pytest.fixture
def make_user():
    """Return the helper that inserts a hashed-password user into a store."""
    return _make_user


@pytest.fixture
def strategy(user_store: UserStore) -> LocalStrategy:
    return LocalStrategy(user_store)


# ---------------------------------------------------------------------------
# Client fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, user_store) for JSON API tests.

    A user "testuser" / "testpass123" exists before the client starts.
    """
    user_store, session_store = _make_test_stores("api")
    _make_user(user_store, "testuser", "testpass123")

    app.router.lifespan_context = _patch_lifespan(user_store, session_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store

    session_store.close()
    user_store.close()


@pytest.fixture(scope="module")
def web_client() -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, user_store) for web route tests.

    follow_redirects=False is essential: tests assert on redirect Location
    headers, which disappear once the client follows the redirect.
    A user "webuser" / "webpass123" exists before the client starts.
    """
    user_store, session_store = _make_test_stores("web")
    _make_user(user_store, "webuser", "webpass123")

    app.router.lifespan_context = _patch_lifespan(user_store, session_store)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, user_store

    session_store.close()
    user_store.close()
