"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

try_get_current_identity() is the soft variant (returns None on failure).
get_current_identity() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/ or web/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Identity
from auth.tokens import get_request_token


def try_get_current_identity(request: Request) -> Identity | None:
    """Resolve the request's session token to an Identity.

    Returns None for a missing, unknown, or expired token. Never raises.
    """
    return request.app.state.sessions.resolve(get_request_token(request))


def get_current_identity(request: Request) -> Identity:
    """Require a live session. Raises HTTP 401 if the request has none.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_identity)): ...
    """
    identity = try_get_current_identity(request)
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return identity
