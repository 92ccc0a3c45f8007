"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, service and session manager do the work.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A registered identity.

    username is case-sensitive: "Bob" and "bob" are different accounts.
    password_hash is a bcrypt digest and never the plaintext.
    """

    username: str
    password_hash: str
    id: int | None = None


@dataclass(frozen=True)
class Identity:
    """The authenticated username a request is acting as."""

    username: str


@dataclass(frozen=True)
class Session:
    """A token bound to a username until expires_at (UNIX seconds).

    Sessions are never mutated. Expiry is absolute from creation.
    """

    token: str
    username: str
    expires_at: float
