"""
auth/sessions.py -- In-process session table mapping opaque tokens to usernames.

Lifecycle:
  One SessionManager is created in the app lifespan on startup and cleared on
  shutdown. Sessions are process-local and do not survive a restart; every
  client has to log in again after a deploy.

Expiry:
  Absolute from creation (expires_at = created + ttl). resolve() never extends
  a session. Expired entries are evicted lazily by resolve() and in bulk by
  purge_expired(), which the lifespan calls on a timer so abandoned sessions
  do not accumulate.

Tokens:
  secrets.token_urlsafe(32) -- 256 bits from the OS CSPRNG.

Concurrency:
  The table is a dict guarded by one threading.Lock. Every critical section is
  a single dict operation except the sweeps, which are linear in table size.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable

from auth.models import Identity, Session

logger = logging.getLogger("credkeep.sessions")

_TOKEN_BYTES = 32


class SessionManager:
    """Issue, resolve, and destroy session tokens.

    Usage:
        sessions = SessionManager(ttl_seconds=3600)
        token = sessions.create_session("alice")
        sessions.resolve(token)   # Identity(username="alice")
        sessions.destroy(token)
        sessions.resolve(token)   # None

    clock is injectable so tests can move time forward without sleeping.
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create_session(self, username: str) -> str:
        """Bind a new unpredictable token to username and return it."""
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        session = Session(token=token, username=username, expires_at=self._clock() + self.ttl_seconds)
        with self._lock:
            self._sessions[token] = session
        logger.info("Session created for %s", username)
        return token

    def resolve(self, token: str | None) -> Identity | None:
        """Return the Identity bound to token, or None if unknown or expired."""
        if not token:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if now >= session.expires_at:
                del self._sessions[token]
                return None
        return Identity(username=session.username)

    def destroy(self, token: str | None) -> None:
        """Drop a session. Unknown or already-expired tokens are ignored."""
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def destroy_user_sessions(self, username: str) -> int:
        """Drop every session bound to username. Returns the number removed.

        Called when an account is renamed or its password reset, so a session
        issued under the old credentials cannot outlive them.
        """
        with self._lock:
            stale = [t for t, s in self._sessions.items() if s.username == username]
            for token in stale:
                del self._sessions[token]
        if stale:
            logger.info("Destroyed %d session(s) for %s", len(stale), username)
        return len(stale)

    def purge_expired(self) -> int:
        """Delete all sessions past their expiry. Returns number removed."""
        now = self._clock()
        with self._lock:
            expired = [t for t, s in self._sessions.items() if now >= s.expires_at]
            for token in expired:
                del self._sessions[token]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
