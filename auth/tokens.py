"""
auth/tokens.py -- Concrete crypto adapters: password hashing, JWT, opaque tokens.

Security design decisions:
  JWT: python-jose with HS256. JwtCodec signs any payload with an explicit
       expiry and an optional per-call secret. The per-call secret is what
       makes password-reset tokens self-invalidating: the service signs them
       with SECRET_KEY + the user's current password hash, so once the hash
       changes the old tokens no longer verify.

  Passwords: bcrypt used directly (no passlib wrapper). bcrypt's cost factor
       makes brute-force expensive, and also makes each call slow enough to
       block an event loop, so BcryptHasher runs it via asyncio.to_thread.
       DUMMY_HASH enables timing equalization in AuthService.login() so
       response time does not reveal whether an email exists [C1].

  Refresh tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. They
       are opaque (not JWTs) because they are looked up and revoked in the
       store, never verified cryptographically.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

logger = logging.getLogger("authgate.tokens")

ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


# bcrypt only reads the first 72 bytes of a password and bcrypt>=5 refuses
# anything longer, so the limit is enforced in bytes before hashing.
PASSWORD_MAX_BYTES = 72


def password_fits(plain: str) -> bool:
    """Return True if the UTF-8 encoding of plain is within bcrypt's limit."""
    return len(plain.encode("utf-8")) <= PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt>=5 raises ValueError for passwords over PASSWORD_MAX_BYTES.
    Callers check password_fits() first; the API schemas and AuthService
    both do.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long plaintext: a mismatch, never a match.
        return False


# Timing equalization dummy hash [C1].
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
DUMMY_HASH: str = hash_password("authgate_timing_dummy")


class BcryptHasher:
    """Hasher + HashComparer backed by bcrypt, run off the event loop."""

    async def hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(hash_password, plaintext)

    async def compare(self, plaintext: str, hashed: str) -> bool:
        return await asyncio.to_thread(verify_password, plaintext, hashed)


# ---------------------------------------------------------------------------
# JWT encode / verify / decode
# ---------------------------------------------------------------------------


class JwtCodec:
    """Encrypter + Decrypter + Decoder backed by python-jose (HS256).

    Args:
        secret:             Server-wide signing secret (Settings.secret_key).
        default_expires_in: Lifetime in seconds used when sign() is called
                            without expires_in (the access-token lifetime).
    """

    def __init__(self, secret: str, default_expires_in: int) -> None:
        if not secret:
            raise ValueError("JwtCodec requires a non-empty secret")
        self._secret = secret
        self._default_expires_in = default_expires_in

    def sign(self, payload: dict[str, Any], expires_in: int | None = None, secret: str | None = None) -> str:
        """Encode payload with iat/exp claims added. The input dict is not mutated."""
        now = datetime.now(timezone.utc)
        lifetime = expires_in if expires_in is not None else self._default_expires_in
        claims = dict(payload)
        claims["iat"] = now
        claims["exp"] = now + timedelta(seconds=lifetime)
        return jwt.encode(claims, secret or self._secret, algorithm=ALGORITHM)

    def verify(self, token: str, secret: str | None = None) -> dict[str, Any]:
        """Verify signature and expiry. Raises jose.JWTError on any failure."""
        return jwt.decode(token, secret or self._secret, algorithms=[ALGORITHM])

    def decode(self, token: str) -> dict[str, Any] | None:
        """Read the claims without verifying anything.

        The result is a hint only (e.g. which user a reset token names) and
        must never drive an authorization decision on its own.
        """
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return None
        return claims if isinstance(claims, dict) else None


# ---------------------------------------------------------------------------
# Opaque refresh tokens
# ---------------------------------------------------------------------------


class SecureTokenGenerator:
    """RefreshTokenGenerator backed by the secrets module (256-bit tokens)."""

    def __init__(self, nbytes: int = 32) -> None:
        self._nbytes = nbytes

    def generate(self) -> str:
        return secrets.token_urlsafe(self._nbytes)
