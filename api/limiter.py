"""
api/limiter.py -- The process-wide slowapi Limiter and the limits it applies.

api/main.py mounts it through SlowAPIMiddleware; api/routes/v1/auth.py puts
@limiter.limit(login_rate_limit) on the credential-checking endpoint.

Counters live in memory and are keyed by client IP, so they reset on restart
and are not shared between worker processes.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Limit string for POST /auth/login, e.g. "10/minute".

    Read per request so LOGIN_RATE_LIMIT set in the environment or .env is
    honoured without touching the decorator.
    """
    return get_settings().login_rate_limit
