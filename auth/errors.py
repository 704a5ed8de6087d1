"""
auth/errors.py -- Typed failure variants raised by the auth core.

Every variant carries the HTTP status code and a stable machine-readable
code. The API layer maps them onto the shared ErrorResponse envelope in one
exception handler, so route functions never translate errors themselves.

UnauthorizedError is deliberately uninformative: an unknown email, a wrong
password, a revoked refresh token and a forged reset token all surface the
same way so responses cannot be used as an enumeration or signature oracle.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all failures the auth core signals on purpose."""

    status_code: int = 500
    code: str = "auth_error"
    default_message: str = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(AuthError):
    """Malformed or conflicting input (e.g. the email is already registered)."""

    status_code = 400
    code = "bad_request"
    default_message = "Bad request."


class UnauthorizedError(AuthError):
    """Failed credential check or an invalid, expired or revoked token."""

    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class NotFoundError(AuthError):
    """No such user. Only raised where existence disclosure is accepted."""

    status_code = 404
    code = "not_found"
    default_message = "Not found."
