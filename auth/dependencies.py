"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The AuthService instance is built once in the api/main.py lifespan and kept
on app.state. get_auth_service() hands it to route functions;
get_current_user() resolves an "Authorization: Bearer <access token>" header
to the caller's PublicUser and raises UnauthorizedError otherwise. The
api/main.py exception handler turns that into a 401.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import UnauthorizedError
from auth.models import PublicUser
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """Return the process-wide AuthService stored on app.state."""
    return request.app.state.auth_service


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


async def get_current_user(request: Request) -> PublicUser:
    """Require a valid access token. Raises UnauthorizedError otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: PublicUser = Depends(get_current_user)): ...
    """
    token = _bearer_token(request)
    if token is None:
        raise UnauthorizedError("Authentication required.")
    return await get_auth_service(request).authenticate(token)
