"""
API request and response models for CredKeep REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models do not enforce non-empty fields: emptiness is an account rule
owned by AccountService, and the route maps its InvalidInput to the same 422
envelope Pydantic validation errors use.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /api/v1/auth/signup and POST /api/v1/auth/login."""

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


class CredentialsUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/me/credentials.

    Accepts the browser form names (newUsername, newPassword) as well as
    snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    new_username: str = Field(default="", max_length=255, alias="newUsername")
    new_password: str = Field(default="", max_length=255, alias="newPassword")


class PasswordResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password."""

    username: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountCreatedResponse(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    """Returned by POST /login. The same token is also set as the session cookie."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str


class MeResponse(BaseModel):
    username: str


class PasswordResetResponse(BaseModel):
    """The only place a generated password ever appears. Not retrievable again."""

    username: str
    new_password: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = {}


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every handler: {"error": {...}}."""

    error: ErrorDetail
