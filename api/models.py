"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import PublicUser
from auth.tokens import PASSWORD_MAX_BYTES, password_fits

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", no whitespace, a dot in the domain. Delivery
# of the reset link is the real proof of ownership.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

PASSWORD_MIN = 6
PASSWORD_MAX = 72


# Every request model that carries an email trims it the same way, so the
# address a user signs up with is the one login and reset look up.
# Passwords are never trimmed.
def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _check_password_bytes(value: str) -> str:
    if not password_fits(value):
        raise ValueError(f"must be at most {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignUpRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    confirm_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)
    name: str = Field(min_length=1, max_length=255)

    @field_validator("email", "name", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("password", "confirm_password")
    @classmethod
    def password_bytes(cls, v: str) -> str:
        return _check_password_bytes(v)

    @model_validator(mode="after")
    def passwords_match(self) -> "SignUpRequest":
        if self.password != self.confirm_password:
            raise ValueError("password and confirm_password do not match")
        return self


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return _strip(v)


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/auth/refresh and /auth/logout."""

    model_config = ConfigDict(str_strip_whitespace=True)

    refresh_token: str = Field(min_length=1, max_length=255)


class PasswordResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/password-reset/request."""

    email: str = Field(min_length=1, max_length=255)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v):
        return _strip(v)


class PasswordResetConfirm(BaseModel):
    """Request body for POST /api/v1/auth/password-reset/confirm."""

    token: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)

    @field_validator("new_password")
    @classmethod
    def password_bytes(cls, v: str) -> str:
        return _check_password_bytes(v)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    name: str
    created_at: str = ""

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, created_at=user.created_at or "")


class TokenPairResponse(BaseModel):
    """Response for POST /api/v1/auth/refresh."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenPairResponse):
    """Response for POST /api/v1/auth/login."""

    user: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
