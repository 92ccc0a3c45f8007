"""Unit tests for auth/sessions.py -- the in-process session table.

Covers:
- create_session() + resolve() round-trip and token unpredictability
- absolute expiry at exactly TTL, with lazy eviction
- expiry is not extended by activity
- destroy() is idempotent
- destroy_user_sessions() and purge_expired()
- concurrent create/resolve/destroy from many threads
"""

import threading

from auth.models import Identity
from auth.sessions import SessionManager


def test_resolve_returns_bound_identity(sessions):
    token = sessions.create_session("alice")
    assert sessions.resolve(token) == Identity(username="alice")


def test_tokens_are_unique_and_long(sessions):
    tokens = {sessions.create_session("alice") for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 43 for t in tokens)


def test_unknown_and_empty_tokens_are_invalid(sessions):
    assert sessions.resolve("no-such-token") is None
    assert sessions.resolve("") is None
    assert sessions.resolve(None) is None


def test_session_valid_until_ttl(sessions, clock):
    token = sessions.create_session("alice")
    clock.advance(3599)
    assert sessions.resolve(token) == Identity(username="alice")


def test_session_invalid_at_ttl(sessions, clock):
    token = sessions.create_session("alice")
    clock.advance(3600)
    assert sessions.resolve(token) is None
    # Lazily evicted on that lookup.
    assert len(sessions) == 0


def test_activity_does_not_extend_expiry(sessions, clock):
    token = sessions.create_session("alice")
    for _ in range(5):
        clock.advance(700)
        sessions.resolve(token)
    clock.advance(100)  # 3600s after creation
    assert sessions.resolve(token) is None


def test_destroy_then_resolve_is_invalid(sessions):
    token = sessions.create_session("alice")
    sessions.destroy(token)
    assert sessions.resolve(token) is None


def test_destroy_is_idempotent(sessions, clock):
    token = sessions.create_session("alice")
    sessions.destroy(token)
    sessions.destroy(token)
    sessions.destroy("never-issued")
    sessions.destroy(None)

    expired = sessions.create_session("bob")
    clock.advance(4000)
    sessions.destroy(expired)


def test_destroy_user_sessions_only_hits_that_user(sessions):
    a1 = sessions.create_session("alice")
    a2 = sessions.create_session("alice")
    b1 = sessions.create_session("bob")

    assert sessions.destroy_user_sessions("alice") == 2
    assert sessions.resolve(a1) is None
    assert sessions.resolve(a2) is None
    assert sessions.resolve(b1) == Identity(username="bob")
    assert sessions.destroy_user_sessions("alice") == 0


def test_purge_expired_removes_only_expired(sessions, clock):
    sessions.create_session("old1")
    sessions.create_session("old2")
    clock.advance(3000)
    fresh = sessions.create_session("fresh")
    clock.advance(600)

    assert sessions.purge_expired() == 2
    assert len(sessions) == 1
    assert sessions.resolve(fresh) == Identity(username="fresh")


def test_clear_drops_everything(sessions):
    token = sessions.create_session("alice")
    sessions.clear()
    assert len(sessions) == 0
    assert sessions.resolve(token) is None


def test_ttl_is_configurable(clock):
    short = SessionManager(ttl_seconds=10, clock=clock)
    token = short.create_session("alice")
    clock.advance(10)
    assert short.resolve(token) is None


def test_concurrent_access_keeps_table_consistent():
    manager = SessionManager(ttl_seconds=3600)
    errors: list[Exception] = []

    def worker(n: int) -> None:
        try:
            for i in range(200):
                token = manager.create_session(f"user{n}")
                assert manager.resolve(token) == Identity(username=f"user{n}")
                if i % 2:
                    manager.destroy(token)
        except Exception as exc:  # surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(manager) == 8 * 100
