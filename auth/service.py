"""
auth/service.py -- Account business logic composed from AccountStore and PasswordHasher.

Security:
  authenticate() raises the same AuthFailed for an unknown username, a wrong
  password, and empty fields. An unknown username still pays one bcrypt
  verify (PasswordHasher.verify_dummy) so response time does not reveal
  whether the account exists. Empty fields fail before the lookup and run no
  bcrypt at all, whether or not the username exists.

  reset_password() returns the generated plaintext to its caller exactly once.
  It is never logged or stored.

  Log lines name the username and the outcome, never a password or a hash.

Threading:
  Every method here that hashes or verifies is CPU-bound for ~100ms+ at the
  production work factor. Call it from a worker thread (FastAPI sync route
  handlers already run in the threadpool), never from the event loop.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging

from auth.errors import AuthFailed, InvalidInput
from auth.models import Identity
from auth.passwords import PasswordHasher, generate_password
from auth.store import AccountStore

logger = logging.getLogger("credkeep.auth")


class AccountService:
    """Register, authenticate, update, and reset accounts."""

    def __init__(self, store: AccountStore, hasher: PasswordHasher, reset_password_bytes: int = 16) -> None:
        self.store = store
        self.hasher = hasher
        self.reset_password_bytes = reset_password_bytes

    def register(self, username: str, password: str) -> int:
        """Create an account and return its ID.

        Raises InvalidInput for an empty username or password and
        DuplicateUsername if the name is taken.
        """
        username = _clean_username(username)
        if not username or not password:
            raise InvalidInput()
        account_id = self.store.create(username, self.hasher.hash(password))
        logger.info("Registered account %s (id=%d)", username, account_id)
        return account_id

    def authenticate(self, username: str, password: str) -> Identity:
        """Return the Identity for valid credentials, raise AuthFailed otherwise."""
        username = _clean_username(username)
        if not username or not password:
            # Neither branch hashes, so an empty field says nothing about the username.
            logger.info("Login failed")
            raise AuthFailed()
        account = self.store.find_by_username(username)
        if account is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify_dummy(password)
            logger.info("Login failed")
            raise AuthFailed()
        if not self.hasher.verify(password, account.password_hash):
            logger.info("Login failed")
            raise AuthFailed()
        logger.info("Login succeeded for %s", account.username)
        return Identity(username=account.username)

    def has_account(self, username: str) -> bool:
        """Return True if an account is currently stored under username."""
        return self.store.find_by_username(username) is not None

    def update_credentials(self, current: Identity, new_username: str, new_password: str) -> Identity:
        """Rename the current account and set a new password in one write.

        current must come from a resolved session; it is not re-checked here.
        Raises InvalidInput, DuplicateUsername, or AccountNotFound (the account
        disappeared between session resolution and this call).
        """
        new_username = _clean_username(new_username)
        if not new_username or not new_password:
            raise InvalidInput("New username and new password are required.")
        self.store.update_credentials(current.username, new_username, self.hasher.hash(new_password))
        if new_username != current.username:
            logger.info("Account %s renamed to %s", current.username, new_username)
        else:
            logger.info("Credentials updated for %s", new_username)
        return Identity(username=new_username)

    def reset_password(self, username: str) -> str:
        """Replace the password with a random one and return it once.

        Raises AccountNotFound for an unknown username.
        """
        username = _clean_username(username)
        if not username:
            raise InvalidInput("Username is required.")
        new_password = generate_password(self.reset_password_bytes)
        self.store.set_password(username, self.hasher.hash(new_password))
        logger.info("Password reset for %s", username)
        return new_password


def _clean_username(username: str | None) -> str:
    return (username or "").strip()
