"""Unit tests for auth/passwords.py -- bcrypt hashing and reset-password generation.

Covers:
- hash() salts every call; both digests verify
- verify_dummy() costs exactly one bcrypt run, from the first call on
- verify() rejects wrong, empty, over-long passwords and malformed digests
- hash() rejects empty and over-72-byte plaintexts
- the configured work factor is embedded in the digest
- generate_password() returns distinct high-entropy strings
"""

import bcrypt
import pytest

from auth.errors import InvalidInput, PasswordTooLong
from auth.passwords import PasswordHasher, generate_password


def test_same_plaintext_hashes_differently(hasher):
    first = hasher.hash("s3cret")
    second = hasher.hash("s3cret")
    assert first != second
    assert hasher.verify("s3cret", first)
    assert hasher.verify("s3cret", second)


def test_digest_never_contains_plaintext(hasher):
    digest = hasher.hash("correct horse battery staple")
    assert "correct horse" not in digest
    assert len(digest) == 60


def test_wrong_password_does_not_verify(hasher):
    digest = hasher.hash("s3cret")
    assert not hasher.verify("s3cretx", digest)
    assert not hasher.verify("", digest)


def test_malformed_digest_returns_false(hasher):
    assert not hasher.verify("s3cret", "not-a-bcrypt-hash")
    assert not hasher.verify("s3cret", "")


def test_work_factor_is_embedded():
    digest = PasswordHasher(rounds=5).hash("pw")
    assert digest.startswith("$2b$05$")


def test_digest_from_other_cost_still_verifies(hasher):
    # Existing digests carry their own cost, so changing BCRYPT_ROUNDS
    # does not lock anyone out.
    digest = PasswordHasher(rounds=5).hash("pw")
    assert hasher.verify("pw", digest)


def test_empty_plaintext_rejected(hasher):
    with pytest.raises(InvalidInput):
        hasher.hash("")


def test_over_72_bytes_rejected(hasher):
    with pytest.raises(PasswordTooLong):
        hasher.hash("a" * 73)
    # Multi-byte characters count by encoded length.
    with pytest.raises(InvalidInput):
        hasher.hash("é" * 37)
    assert hasher.verify("a" * 72, hasher.hash("a" * 72))


def test_over_72_bytes_never_verifies(hasher):
    digest = hasher.hash("a" * 72)
    assert not hasher.verify("a" * 73, digest)


def test_verify_dummy_returns_nothing(hasher):
    assert hasher.verify_dummy("anything") is None
    assert hasher.verify_dummy("") is None


def test_dummy_hash_is_built_with_the_hasher(monkeypatch):
    hasher = PasswordHasher(rounds=4)
    calls = []
    original = bcrypt.hashpw

    def counting_hashpw(password, salt):
        calls.append(salt)
        return original(password, salt)

    monkeypatch.setattr(bcrypt, "hashpw", counting_hashpw)
    hasher.verify_dummy("first")
    hasher.verify_dummy("second")
    # One verify each, no lazy setup on the first call.
    assert len(calls) == 2


def test_generate_password_is_random_and_long():
    values = {generate_password() for _ in range(20)}
    assert len(values) == 20
    assert all(len(v) >= 22 for v in values)


def test_generate_password_respects_entropy():
    assert len(generate_password(32)) >= 43
