"""
web/routes.py -- Jinja2 template routes for the CredKeep web UI.

These routes serve server-rendered HTML forms. They share app.state with the
API routes (same account service, same session table) but answer with pages
and redirects instead of JSON.

Routes:
  GET  /                -- login / signup / reset page (redirects to /profile if logged in)
  POST /signup          -- create account, redirect /
  POST /login           -- password login, set cookie, redirect /profile
  GET  /profile         -- show identity + update form (session required)
  POST /update          -- change username and password, rotate session
  POST /logout          -- destroy session, clear cookie, redirect /
  POST /reset-password  -- random new password, rendered once

Every failure redirects with ?error=<code>. The code is looked up in a
whitelist; the raw query string is never rendered.

Handlers that hash or verify passwords are plain `def` so they run in the
threadpool.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import try_get_current_identity
from auth.errors import AccountNotFound, AuthFailed, DuplicateUsername, InvalidInput, PasswordTooLong
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.tokens import clear_session_cookie, get_request_token, set_session_cookie
from core.config import get_settings

logger = logging.getLogger("credkeep.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# ---------------------------------------------------------------------------
# Message whitelists
# ---------------------------------------------------------------------------

_ERROR_MESSAGES: dict[str, str] = {
    "empty": "Username and password are required.",
    "too_long": "Password must be at most 72 bytes.",
    "exists": "That username is already taken.",
    "invalid": "Invalid username or password.",
    "not_found": "No account with that username.",
    "reset_disabled": "Password reset is disabled.",
}

_NOTICE_MESSAGES: dict[str, str] = {
    "registered": "Account created. You can log in now.",
    "updated": "Your credentials were updated.",
    "logged_out": "You have been logged out.",
}


def _page_messages(request: Request) -> dict[str, Optional[str]]:
    return {
        "error_msg": _ERROR_MESSAGES.get(request.query_params.get("error", "")),
        "notice_msg": _NOTICE_MESSAGES.get(request.query_params.get("notice", "")),
    }


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    """Render the login / signup page."""
    if try_get_current_identity(request) is not None:
        return _redirect("/profile")
    context = _page_messages(request)
    context["reset_enabled"] = get_settings().password_reset_enabled
    return templates.TemplateResponse(request, "index.html", context)


@router.post("/signup")
def signup(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    service: AccountService = request.app.state.accounts
    try:
        service.register(username, password)
    except PasswordTooLong:
        return _redirect("/?error=too_long")
    except InvalidInput:
        return _redirect("/?error=empty")
    except DuplicateUsername:
        return _redirect("/?error=exists")
    return _redirect("/?notice=registered")


@router.post("/login")
def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    """Handle the login form. Unknown user and wrong password look the same."""
    if not username.strip() or not password:
        return _redirect("/?error=empty")
    service: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions
    try:
        identity = service.authenticate(username, password)
    except AuthFailed:
        return _redirect("/?error=invalid")

    token = sessions.create_session(identity.username)
    if not service.has_account(identity.username):
        # Renamed away after authenticate(); no session may outlive the old name.
        sessions.destroy(token)
        return _redirect("/?error=invalid")

    resp = _redirect("/profile")
    set_session_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/profile", response_class=HTMLResponse)
def profile(request: Request) -> HTMLResponse:
    identity = try_get_current_identity(request)
    if identity is None:
        return _redirect("/")
    context = _page_messages(request)
    context["username"] = identity.username
    resp = templates.TemplateResponse(request, "profile.html", context)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/update")
def update(
    request: Request,
    new_username: str = Form("", alias="newUsername"),
    new_password: str = Form("", alias="newPassword"),
) -> RedirectResponse:
    """Change the logged-in account's username and password.

    Sessions of the old username are destroyed and a new one is issued, so the
    browser keeps working under the new name.
    """
    identity = try_get_current_identity(request)
    if identity is None:
        return _redirect("/")
    service: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions
    try:
        new_identity = service.update_credentials(identity, new_username, new_password)
    except PasswordTooLong:
        return _redirect("/profile?error=too_long")
    except InvalidInput:
        return _redirect("/profile?error=empty")
    except DuplicateUsername:
        return _redirect("/profile?error=exists")
    except AccountNotFound:
        # Account renamed from another session; this one is stale.
        logger.info("Dropping stale session for %s", identity.username)
        sessions.destroy(get_request_token(request))
        resp = _redirect("/")
        clear_session_cookie(resp)
        return resp

    # Sweep after the rename. A login racing it re-checks the account in login().
    sessions.destroy_user_sessions(identity.username)
    resp = _redirect("/profile?notice=updated")
    set_session_cookie(resp, sessions.create_session(new_identity.username))
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    request.app.state.sessions.destroy(get_request_token(request))
    resp = _redirect("/?notice=logged_out")
    clear_session_cookie(resp)
    return resp


@router.post("/reset-password", response_class=HTMLResponse)
def reset_password(request: Request, username: str = Form("")) -> HTMLResponse:
    """Reset a password and show the generated one on this response only."""
    if not get_settings().password_reset_enabled:
        return _redirect("/?error=reset_disabled")
    service: AccountService = request.app.state.accounts
    try:
        new_password = service.reset_password(username)
    except InvalidInput:
        return _redirect("/?error=empty")
    except AccountNotFound:
        return _redirect("/?error=not_found")

    request.app.state.sessions.destroy_user_sessions(username.strip())
    resp = templates.TemplateResponse(
        request,
        "reset.html",
        {"username": username.strip(), "new_password": new_password},
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
