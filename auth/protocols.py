"""
auth/protocols.py -- Capability interfaces consumed by AuthService.

Each Protocol names one narrow capability. AuthService depends only on these,
so any library or algorithm can back them without touching orchestration:

  Hasher / HashComparer    -- BcryptHasher (auth/tokens.py)
  Encrypter / Decrypter /
  Decoder                  -- JwtCodec (auth/tokens.py)
  RefreshTokenGenerator    -- SecureTokenGenerator (auth/tokens.py)
  UserRepository           -- UserRepository (auth/repository.py) over UserStore
  ResetLinkSender          -- LoggingResetLinkSender (auth/notifier.py)

Password hashing and persistence are coroutines because both block (bcrypt
cost factor, database round trip). Token signing is plain HMAC and stays
synchronous.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from typing import Any, Protocol

from auth.models import RefreshToken, SignUpData, User


class Hasher(Protocol):
    async def hash(self, plaintext: str) -> str: ...


class HashComparer(Protocol):
    async def compare(self, plaintext: str, hashed: str) -> bool: ...


class Encrypter(Protocol):
    def sign(self, payload: dict[str, Any], expires_in: int | None = None, secret: str | None = None) -> str:
        """Sign payload into a bearer token.

        expires_in defaults to the access-token lifetime and secret to the
        server-wide secret.
        """
        ...


class Decrypter(Protocol):
    def verify(self, token: str, secret: str | None = None) -> dict[str, Any]:
        """Return the payload, or raise on a bad signature or expired token."""
        ...


class Decoder(Protocol):
    def decode(self, token: str) -> dict[str, Any] | None:
        """Return the payload WITHOUT verifying it, or None if unreadable."""
        ...


class RefreshTokenGenerator(Protocol):
    def generate(self) -> str: ...


class UserRepository(Protocol):
    """Persistence contract for users and refresh-token records."""

    async def get_user_by_email(self, email: str) -> User | None: ...

    async def get_user_by_id(self, user_id: int) -> User | None: ...

    async def create_user(self, data: SignUpData) -> User: ...

    async def update_user(self, user_id: int, **fields: Any) -> User | None: ...

    async def save_refresh_token(self, token: str, user_id: int) -> None: ...

    async def get_refresh_token_with_user(self, token: str) -> tuple[RefreshToken, User] | None: ...

    async def delete_refresh_token(self, token_id: int) -> RefreshToken | None: ...

    async def claim_refresh_token(self, token_id: int) -> bool:
        """Atomically revoke one record if it is still unrevoked.

        Returns True only for the single caller that flipped it.
        """
        ...

    async def revoke_all_user_refresh_tokens(self, user_id: int) -> None: ...


class ResetLinkSender(Protocol):
    async def send_reset_link(self, user: User, link: str) -> None: ...
