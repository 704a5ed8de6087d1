"""
auth/notifier.py -- Delivery of password-reset links.

The auth core only builds the link; getting it to the user is an external
channel (email, SMS). LoggingResetLinkSender is the default channel: it
writes the link to the log, which is enough for local development. A real
deployment passes its own ResetLinkSender to AuthService.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from auth.models import User

logger = logging.getLogger("authgate.notifier")


def build_reset_link(base_url: str, token: str) -> str:
    """Append the reset token as a query parameter, preserving any existing query."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


class LoggingResetLinkSender:
    """ResetLinkSender that logs the link instead of delivering it."""

    async def send_reset_link(self, user: User, link: str) -> None:
        logger.info("Password reset link for user %s: %s", user.id, link)
