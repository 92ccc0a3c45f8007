"""
auth/passwords.py -- bcrypt password hashing and reset-password generation.

Security design decisions:
  Hashing: bcrypt directly (no passlib wrapper). Each hash() call draws a
       fresh salt from bcrypt.gensalt(), and the salt and cost are embedded in
       the 60-char digest, so the same plaintext never hashes the same twice.

  Verification: the digest is recomputed from the embedded salt and compared
       with hmac.compare_digest, never with ==, so the comparison time does not
       depend on how many leading bytes match.

  72-byte limit: bcrypt only looks at the first 72 bytes of its input and
       current releases raise on longer input. hash() rejects such plaintexts
       as PasswordTooLong rather than truncating silently; verify() returns False.

  Timing equalization: verify_dummy() runs a full verify against a hash
       computed when the hasher is built, so a login for an unknown username
       costs the same as one with a wrong password.

  Reset passwords: secrets.token_urlsafe, never a fixed constant.

Nothing in this module logs, stores, or returns a plaintext it was given.
"""

from __future__ import annotations

import hmac
import secrets

import bcrypt

from auth.errors import InvalidInput, PasswordTooLong

_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted one-way password hashing with a fixed bcrypt work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("s3cret")
        hasher.verify("s3cret", digest)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: str = bcrypt.hashpw(b"credkeep_timing_dummy", bcrypt.gensalt(rounds=rounds)).decode("utf-8")

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest of plaintext using a freshly generated salt."""
        encoded = plaintext.encode("utf-8")
        if not encoded:
            raise InvalidInput("Password must not be empty.")
        if len(encoded) > _BCRYPT_MAX_BYTES:
            raise PasswordTooLong(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext matches digest. Malformed digests return False."""
        encoded = plaintext.encode("utf-8")
        if not encoded or len(encoded) > _BCRYPT_MAX_BYTES:
            return False
        try:
            expected = digest.encode("utf-8")
            recomputed = bcrypt.hashpw(encoded, expected)
        except ValueError:
            return False
        return hmac.compare_digest(recomputed, expected)

    def verify_dummy(self, plaintext: str) -> None:
        """Burn one verify against a throwaway hash and discard the result."""
        self.verify(plaintext or "x", self._dummy_hash)


def generate_password(nbytes: int = 16) -> str:
    """Return a random url-safe password carrying nbytes of entropy.

    16 bytes gives a 22-character string, well under bcrypt's 72-byte limit.
    """
    return secrets.token_urlsafe(nbytes)
