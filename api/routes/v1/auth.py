"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/signup                  -- create an account; 201
  POST /api/v1/auth/login                   -- email/password; access + refresh tokens
  POST /api/v1/auth/refresh                 -- rotate a refresh token
  POST /api/v1/auth/logout                  -- revoke the caller's refresh tokens
  POST /api/v1/auth/password-reset/request  -- email a reset link
  POST /api/v1/auth/password-reset/confirm  -- consume a reset token
  GET  /api/v1/auth/me                      -- current user (requires Bearer access token)

Every handler is a thin adapter: map the request model onto an AuthService
call and the result onto a response model. AuthError subclasses raised by the
service are turned into status codes by the handler in api/main.py.

Security:
  [H2] POST /login is rate-limited per IP (Settings.login_rate_limit).
  [C1] Timing equalization for unknown emails lives in AuthService.login().
  [M5] Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter, login_rate_limit
from api.models import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    SignUpRequest,
    TokenPairResponse,
    UserResponse,
)
from auth.dependencies import get_auth_service, get_current_user
from auth.models import PublicUser, SignUpData
from auth.service import AuthService

# Auth policy:
# - POST /auth/signup, /login, /refresh, /logout, /password-reset/*: public
# - GET  /auth/me: requires a valid access token (get_current_user)
router = APIRouter()


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"  # [M5]


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
async def signup(body: SignUpRequest, service: AuthService = Depends(get_auth_service)) -> UserResponse:
    """Create an account. 400 if the email is already registered."""
    user = await service.sign_up(
        SignUpData(
            email=body.email,
            password=body.password,
            confirm_password=body.confirm_password,
            name=body.name,
        )
    )
    return UserResponse.from_public(user.to_public())


@limiter.limit(login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 so the endpoint does
    not leak which accounts exist.
    """
    result = await service.login(body.email, body.password)
    _no_store(response)
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=service.settings.access_token_expire_seconds,
        user=UserResponse.from_public(result.user),
    )


@router.post("/auth/refresh", response_model=TokenPairResponse)
async def refresh(
    response: Response,
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    """Trade a refresh token for a new pair. The presented token is spent."""
    pair = await service.refresh(body.refresh_token)
    _no_store(response)
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=service.settings.access_token_expire_seconds,
    )


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(body: RefreshRequest, service: AuthService = Depends(get_auth_service)) -> MessageResponse:
    """Revoke all of the token owner's sessions. Always 200."""
    await service.logout(body.refresh_token)
    return MessageResponse(message="Logged out.")


@router.post("/auth/password-reset/request", response_model=MessageResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Send a password-reset link. 404 if no account uses the email."""
    await service.request_password_reset(body.email)
    return MessageResponse(message="Password reset email sent.")


@router.post("/auth/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Set a new password using a reset token. 401 if the token is invalid."""
    await service.reset_password(body.token, body.new_password)
    return MessageResponse(message="Password updated.")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: PublicUser = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the currently authenticated user."""
    return UserResponse.from_public(current_user)
