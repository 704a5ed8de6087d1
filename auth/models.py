"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store persists them and the service orchestrates them.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered identity.

    password always holds the bcrypt hash, never the plaintext. It is the
    only field that changes after sign-up (via password reset). Callers
    outside the auth core receive a PublicUser instead.
    """

    email: str  # unique, case-sensitive as stored
    name: str
    password: str  # bcrypt hash
    id: int | None = None
    created_at: str | None = None

    def to_public(self) -> PublicUser:
        return PublicUser(id=self.id, email=self.email, name=self.name, created_at=self.created_at)


@dataclass
class PublicUser:
    """User view with the password field stripped."""

    id: int | None
    email: str
    name: str
    created_at: str | None = None


@dataclass
class RefreshToken:
    """A persisted, revocable refresh-token record.

    revoked is monotonic: once True it is never set back to False. One user
    accumulates many records over time (one per issued session).
    """

    token: str  # opaque, unique
    user_id: int
    expires_at: datetime  # timezone-aware UTC
    id: int | None = None
    revoked: bool = False
    created_at: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass
class SignUpData:
    """Sign-up input. confirm_password is never persisted."""

    email: str
    password: str
    confirm_password: str
    name: str


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class LoginResult:
    access_token: str
    refresh_token: str
    user: PublicUser
