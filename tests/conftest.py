"""
tests/conftest.py -- Shared test fixtures for CredKeep unit and integration tests.

This module provides:
  - hasher / store / service / sessions: isolated core objects for unit tests
  - FakeClock: a settable clock for session expiry tests
  - api_client: TestClient over the JSON API with isolated in-memory state
  - api_client_no_raise: same, but unhandled errors come back as 500 responses
  - web_client: TestClient with follow_redirects=False for web route tests
  - reset_enabled: turns PASSWORD_RESET_ENABLED on for one test

Design: Named shared-memory SQLite URIs (not plain :memory:) are used for the
HTTP clients because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each client gets its own DB name so tests never share
accounts, and its own cookie jar.

The environment must be set before any app import: DEBUG=true lets
BCRYPT_ROUNDS=4 through the config validator (fast hashes), and the
TrustedHost allow-list must include TestClient's "testserver" host.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost", "127.0.0.1"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.store import AccountStore
from core.config import get_settings
from web.routes import router as web_router

# Mount the web router once, the same way asgi.py does.
if not any(getattr(r, "path", None) == "/profile" for r in app.router.routes):
    app.include_router(web_router, tags=["Web UI"])


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def service(store: AccountStore, hasher: PasswordHasher) -> AccountService:
    return AccountService(store, hasher)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(clock: FakeClock) -> SessionManager:
    return SessionManager(ttl_seconds=3600, clock=clock)


@pytest.fixture
def reset_enabled(monkeypatch) -> Generator[None, None, None]:
    monkeypatch.setenv("PASSWORD_RESET_ENABLED", "true")
    get_settings.cache_clear()
    yield
    monkeypatch.delenv("PASSWORD_RESET_ENABLED")
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# HTTP client fixtures
# ---------------------------------------------------------------------------


def _make_test_store() -> AccountStore:
    name = f"test_auth_{uuid.uuid4().hex}"
    return AccountStore(db_url=f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: AccountStore, sessions: SessionManager):
    """Return an async context manager that replaces the real lifespan.

    Wires test objects into app.state so routes see isolated state rather than
    the production database. The purge_task is a long-sleeping coroutine so
    shutdown can cancel a real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.accounts = AccountService(store, PasswordHasher(rounds=4))
        app.state.sessions = sessions
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


@pytest.fixture
def api_client(sessions: SessionManager) -> Generator[TestClient, None, None]:
    """TestClient over the real app with a fresh account DB and session table."""
    store = _make_test_store()
    app.router.lifespan_context = _patch_lifespan(store, sessions)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
    store.close()


@pytest.fixture
def api_client_no_raise(sessions: SessionManager) -> Generator[TestClient, None, None]:
    """Like api_client, but server exceptions go through the app's handlers.

    With raise_server_exceptions=True the client re-raises instead of
    returning the catch-all 500 response.
    """
    store = _make_test_store()
    app.router.lifespan_context = _patch_lifespan(store, sessions)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
    store.close()


@pytest.fixture
def web_client(sessions: SessionManager) -> Generator[TestClient, None, None]:
    """Like api_client, but redirects are returned rather than followed.

    Web route tests assert on redirect Location headers, which are invisible
    once the client follows the redirect.
    """
    store = _make_test_store()
    app.router.lifespan_context = _patch_lifespan(store, sessions)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client
    store.close()
