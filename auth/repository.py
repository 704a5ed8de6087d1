"""
auth/repository.py -- Async persistence facade consumed by AuthService.

UserStore (auth/store.py) is a synchronous SQLAlchemy Core repository. Each
method here runs the matching store call in a worker thread via
asyncio.to_thread, so a slow database round trip suspends only the request
that issued it, never the event loop.

This is also where the refresh-token expiry window is applied: the service
asks to save a token, the repository stamps expires_at = now + lifetime.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError

from auth.errors import BadRequestError
from auth.models import RefreshToken, SignUpData, User
from auth.store import UserStore


class UserRepository:
    """Implements auth.protocols.UserRepository on top of a UserStore.

    Args:
        store:                        The synchronous store to delegate to.
        refresh_token_expire_seconds: Lifetime stamped onto saved refresh tokens.
    """

    def __init__(self, store: UserStore, refresh_token_expire_seconds: int) -> None:
        self._store = store
        self._refresh_ttl = timedelta(seconds=refresh_token_expire_seconds)

    async def get_user_by_email(self, email: str) -> User | None:
        return await asyncio.to_thread(self._store.get_by_email, email)

    async def get_user_by_id(self, user_id: int) -> User | None:
        return await asyncio.to_thread(self._store.get_by_id, user_id)

    async def create_user(self, data: SignUpData) -> User:
        """Persist a user. data.password must already be hashed.

        A UNIQUE(email) violation (a concurrent sign-up won the race) is
        reported as BadRequestError, same as the service's own pre-check.
        """
        try:
            return await asyncio.to_thread(self._store.create_user, data.email, data.name, data.password)
        except IntegrityError as exc:
            raise BadRequestError("Email is already in use") from exc

    async def update_user(self, user_id: int, **fields: Any) -> User | None:
        """Apply fields and return the fresh record (None if the user is gone)."""
        updated = await asyncio.to_thread(self._store.update_user, user_id, **fields)
        if not updated:
            return None
        return await asyncio.to_thread(self._store.get_by_id, user_id)

    async def save_refresh_token(self, token: str, user_id: int) -> None:
        expires_at = datetime.now(timezone.utc) + self._refresh_ttl
        await asyncio.to_thread(self._store.create_refresh_token, token, user_id, expires_at)

    async def get_refresh_token_with_user(self, token: str) -> tuple[RefreshToken, User] | None:
        return await asyncio.to_thread(self._store.get_refresh_token_with_user, token)

    async def delete_refresh_token(self, token_id: int) -> RefreshToken | None:
        return await asyncio.to_thread(self._store.delete_refresh_token, token_id)

    async def claim_refresh_token(self, token_id: int) -> bool:
        return await asyncio.to_thread(self._store.claim_refresh_token, token_id)

    async def revoke_all_user_refresh_tokens(self, user_id: int) -> None:
        await asyncio.to_thread(self._store.revoke_all_user_refresh_tokens, user_id)
