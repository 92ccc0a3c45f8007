"""
api/main.py -- FastAPI application entry point for CredKeep.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins

Lifespan handles startup (account store, hasher, session table, purge task)
and shutdown (cancel purge task, clear sessions, close DB) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AccountError, AccountNotFound, AuthFailed, DuplicateUsername, InvalidInput, PasswordTooLong
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.sessions import SessionManager
from auth.store import AccountStore
from core.config import get_settings

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credkeep.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Sweep expired sessions every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.sessions.purge_expired()
        if removed:
            logger.info("Purged %d expired session(s)", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the account core on startup and tear it down on shutdown.

    Startup order matters: the service needs the store and hasher, and the
    purge task references app.state.sessions, so it starts last.
    """
    logger.info("CredKeep API starting up")
    app.state.account_store = AccountStore(_settings.database_url)
    app.state.accounts = AccountService(
        app.state.account_store,
        PasswordHasher(rounds=_settings.bcrypt_rounds),
        reset_password_bytes=_settings.reset_password_bytes,
    )
    app.state.sessions = SessionManager(ttl_seconds=_settings.session_ttl_seconds)
    logger.info(
        "Auth initialized (bcrypt_rounds=%d, session_ttl=%ds)",
        _settings.bcrypt_rounds,
        _settings.session_ttl_seconds,
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app, _settings.session_purge_interval_seconds))

    yield

    app.state.purge_task.cancel()
    app.state.sessions.clear()
    app.state.account_store.close()
    logger.info("CredKeep API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CredKeep API",
    description="Account registration, password login, and server-side sessions.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_ACCOUNT_ERROR_STATUS: dict[type[AccountError], int] = {
    InvalidInput: 422,
    PasswordTooLong: 422,
    DuplicateUsername: 409,
    AccountNotFound: 404,
    AuthFailed: 401,
}


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Map account errors to a status and the error's fixed message.

    AuthFailed always carries the class message, so the body for an unknown
    username is byte-identical to the body for a wrong password.
    """
    status = _ACCOUNT_ERROR_STATUS.get(type(exc), 400)
    message = exc.message if isinstance(exc, AuthFailed) else str(exc)
    response = JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=message)).model_dump(),
    )
    if isinstance(exc, AuthFailed):
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation.

    Only field locations and error types are echoed back; submitted values
    (which may be passwords) are not.
    """
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) + f" ({err.get('type')})" for err in exc.errors())
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=fields,
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors, storage failures included.

    The raw exception is written to the log only, never to the response body.
    SQLAlchemy errors get a one-line log entry because their message can embed
    bound statement parameters, which include password hashes.
    """
    if isinstance(exc, SQLAlchemyError):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, type(exc).__name__)
    else:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, current version, and whether the account DB answers."""
    try:
        request.app.state.account_store.has_accounts()
        database = "ok"
    except SQLAlchemyError:
        logger.error("Health check: account database unavailable")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
