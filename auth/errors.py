"""
auth/errors.py -- Exception hierarchy for account operations.

Every error carries a stable machine-readable code. The HTTP layers map the
code to a status and a fixed message; exception text never reaches a client.

None of these exceptions ever carry a password or a password hash.
"""

from __future__ import annotations


class AccountError(Exception):
    code = "account_error"
    message = "Account operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidInput(AccountError):
    code = "invalid_input"
    message = "Username and password are required."


class PasswordTooLong(InvalidInput):
    # bcrypt ignores input past 72 bytes; such passwords are refused.
    message = "Password must be at most 72 bytes."


class DuplicateUsername(AccountError):
    code = "duplicate_username"
    message = "That username is already taken."


class AccountNotFound(AccountError):
    code = "not_found"
    message = "Account not found."


class AuthFailed(AccountError):
    # One message for unknown user and wrong password.
    code = "bad_credentials"
    message = "Invalid username or password."
