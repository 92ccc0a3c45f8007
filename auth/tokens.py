"""
auth/tokens.py -- Session token transport: cookie writing and request extraction.

Tokens are opaque. They are minted by SessionManager.create_session() and
carry no claims; everything a token means lives in the server-side session
table.

Two carriers are accepted, checked in priority order:
  1. Cookie "session_id" -- set by the web UI and the JSON login route.
  2. Authorization: Bearer <token> header -- API clients.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

from core.config import get_settings

SESSION_COOKIE = "session_id"


def get_request_token(request) -> str | None:
    """Return the session token carried by request, or None."""
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def set_session_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the session TTL so both expire together.
    """
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_ttl_seconds,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
