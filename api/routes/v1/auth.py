"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/signup              -- create an account
  POST /api/v1/auth/login               -- password login; sets session cookie
  POST /api/v1/auth/logout              -- destroys the session; clears cookie
  GET  /api/v1/auth/me                  -- current identity (requires auth)
  PUT  /api/v1/auth/me/credentials      -- rename + new password (requires auth)
  POST /api/v1/auth/reset-password      -- random new password, shown once

Errors:
  AccountError subclasses propagate out of the handlers and are turned into
  the ErrorResponse envelope by the handler registered in api/main.py.

Threading:
  Handlers that hash or verify passwords are plain `def`, so FastAPI runs them
  in its worker threadpool and bcrypt never blocks the event loop.

Security:
  Login returns the same "bad_credentials" error for wrong username and wrong
  password. Login and reset responses carry Cache-Control: no-store.
  A credentials change or reset destroys every session of the old username.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import (
    AccountCreatedResponse,
    Credentials,
    CredentialsUpdate,
    LoginResponse,
    MeResponse,
    MessageResponse,
    PasswordResetRequest,
    PasswordResetResponse,
)
from auth.dependencies import get_current_identity
from auth.errors import AuthFailed
from auth.models import Identity
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.tokens import clear_session_cookie, get_request_token, set_session_cookie
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/signup:            public
# - POST /api/v1/auth/login:             public
# - POST /api/v1/auth/logout:            public -- destroying an unknown session is a no-op
# - GET  /api/v1/auth/me:                requires session (get_current_identity)
# - PUT  /api/v1/auth/me/credentials:    requires session (get_current_identity)
# - POST /api/v1/auth/reset-password:    public, disabled unless PASSWORD_RESET_ENABLED=true
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=AccountCreatedResponse, status_code=201)
def signup(request: Request, body: Credentials) -> AccountCreatedResponse:
    """Register a new account. 409 if the username is taken."""
    service: AccountService = request.app.state.accounts
    account_id = service.register(body.username, body.password)
    return AccountCreatedResponse(id=account_id, username=body.username.strip())


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: Credentials) -> JSONResponse:
    """Authenticate with username and password; start a session."""
    service: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions

    identity = service.authenticate(body.username, body.password)
    token = sessions.create_session(identity.username)
    if not service.has_account(identity.username):
        # Renamed away after authenticate(); no session may outlive the old name.
        sessions.destroy(token)
        raise AuthFailed()
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- token type, not a password
            expires_in=sessions.ttl_seconds,
            username=identity.username,
        ).model_dump(),
    )
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(request: Request) -> JSONResponse:
    """Destroy the current session (if any) and clear the cookie."""
    request.app.state.sessions.destroy(get_request_token(request))
    resp = JSONResponse(content={"message": "Logged out."})
    clear_session_cookie(resp)
    return resp


@router.post("/auth/reset-password", response_model=PasswordResetResponse)
def reset_password(request: Request, body: PasswordResetRequest) -> JSONResponse:
    """Replace the account's password with a random one and return it once.

    The response body is the delivery channel; the password is not stored
    anywhere else in plaintext and cannot be fetched again.
    """
    if not get_settings().password_reset_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "reset_disabled", "message": "Password reset is disabled."},
        )
    service: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions

    username = body.username.strip()
    new_password = service.reset_password(username)
    sessions.destroy_user_sessions(username)
    resp = JSONResponse(content=PasswordResetResponse(username=username, new_password=new_password).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(identity: Identity = Depends(get_current_identity)) -> MeResponse:
    """Return the username the current session is bound to."""
    return MeResponse(username=identity.username)


@router.put("/auth/me/credentials", response_model=LoginResponse)
def update_credentials(
    request: Request,
    body: CredentialsUpdate,
    identity: Identity = Depends(get_current_identity),
) -> JSONResponse:
    """Change username and password together; rotate the session.

    Sessions are immutable, so the old username's sessions are destroyed and
    a fresh one is issued for the new username.
    """
    service: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions

    new_identity = service.update_credentials(identity, body.new_username, body.new_password)
    # Sweep after the rename. A login racing it re-checks the account in login().
    sessions.destroy_user_sessions(identity.username)
    token = sessions.create_session(new_identity.username)
    resp = JSONResponse(
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106
            expires_in=sessions.ttl_seconds,
            username=new_identity.username,
        ).model_dump(),
    )
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp
