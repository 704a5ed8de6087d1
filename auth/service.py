"""
auth/service.py -- AuthService: the session-lifecycle core.

Orchestrates sign-up, login, refresh-token rotation, logout and the
password-reset exchange over injected capabilities (auth/protocols.py). It
holds no state of its own between calls; every operation is a short ordered
sequence of awaited collaborator calls.

Token model:
  Access token   -- JWT {"id": user_id}, short lifetime, verified by
                    signature + expiry only, never looked up.
  Refresh token  -- opaque random string, persisted and revocable. Every
                    successful refresh revokes ALL of the user's outstanding
                    refresh tokens and issues a single fresh one, so a token
                    can be redeemed at most once.
  Reset token    -- JWT {"email", "id"} signed with SECRET_KEY + the user's
                    current password hash. Changing the password changes the
                    secret, which invalidates every outstanding reset token
                    without any bookkeeping.

Failure policy:
  Failures detected here raise BadRequestError / UnauthorizedError /
  NotFoundError (auth/errors.py). Collaborator exceptions propagate
  unchanged -- no retries, no local recovery, no compensating writes. If
  revocation commits and a later step fails, the user simply logs in again.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from jose import JWTError

from auth.errors import BadRequestError, NotFoundError, UnauthorizedError
from auth.models import LoginResult, PublicUser, SignUpData, TokenPair, User
from auth.notifier import LoggingResetLinkSender, build_reset_link
from auth.protocols import (
    Decoder,
    Decrypter,
    Encrypter,
    HashComparer,
    Hasher,
    RefreshTokenGenerator,
    ResetLinkSender,
    UserRepository,
)
from auth.tokens import DUMMY_HASH, PASSWORD_MAX_BYTES, password_fits
from core.config import Settings

logger = logging.getLogger("authgate.service")

_INVALID_TOKEN = "Invalid token"
_PASSWORD_TOO_LONG = f"Password must be at most {PASSWORD_MAX_BYTES} bytes"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Authentication core. Construct once at startup and share across requests.

    Args:
        repository:        Users and refresh-token records.
        hasher:            Password hashing.
        hash_comparer:     Password verification.
        encrypter:         Token signing.
        decrypter:         Token verification.
        decoder:           Unverified token decoding (reset-token user hint).
        token_generator:   Opaque refresh-token source.
        settings:          Secret and token lifetimes.
        reset_link_sender: Delivery channel for reset links. Defaults to
                           logging the link.
        clock:             Returns the current aware UTC datetime. Tests
                           override it to control refresh-token expiry.
    """

    def __init__(
        self,
        *,
        repository: UserRepository,
        hasher: Hasher,
        hash_comparer: HashComparer,
        encrypter: Encrypter,
        decrypter: Decrypter,
        decoder: Decoder,
        token_generator: RefreshTokenGenerator,
        settings: Settings,
        reset_link_sender: ResetLinkSender | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.hasher = hasher
        self.hash_comparer = hash_comparer
        self.encrypter = encrypter
        self.decrypter = decrypter
        self.decoder = decoder
        self.token_generator = token_generator
        self.settings = settings
        self.reset_link_sender = reset_link_sender or LoggingResetLinkSender()
        self.clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Sign-up
    # ------------------------------------------------------------------

    async def sign_up(self, data: SignUpData) -> User:
        """Create a user. Returns the stored record (password holds the hash).

        Raises BadRequestError if the passwords differ, the password is over
        bcrypt's byte limit, or the email is taken. Nothing is written then.
        """
        if data.password != data.confirm_password:
            raise BadRequestError("Passwords do not match")
        if not password_fits(data.password):
            raise BadRequestError(_PASSWORD_TOO_LONG)

        existing = await self.repository.get_user_by_email(data.email)
        if existing is not None:
            raise BadRequestError("Email is already in use")

        hashed = await self.hasher.hash(data.password)
        user = await self.repository.create_user(dataclasses.replace(data, password=hashed, confirm_password=""))
        logger.info("User %s signed up", user.id)
        return user

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResult:
        """Verify credentials and open a new session.

        Unknown email and wrong password raise the identical UnauthorizedError.
        An unknown email still pays for one hash comparison against
        DUMMY_HASH so response time does not reveal which case occurred [C1].
        """
        user = await self.repository.get_user_by_email(email)
        if user is None:
            await self.hash_comparer.compare(password, DUMMY_HASH)
            logger.warning("Rejected login for unknown email")
            raise UnauthorizedError()

        if not await self.hash_comparer.compare(password, user.password):
            logger.warning("Rejected login for user %s: bad password", user.id)
            raise UnauthorizedError()

        access_token = self._issue_access_token(user.id)
        refresh_token = self.token_generator.generate()
        await self.repository.save_refresh_token(refresh_token, user.id)

        logger.info("User %s logged in", user.id)
        return LoginResult(access_token=access_token, refresh_token=refresh_token, user=user.to_public())

    # ------------------------------------------------------------------
    # Refresh (rotation)
    # ------------------------------------------------------------------

    async def refresh(self, token: str) -> TokenPair:
        """Redeem a refresh token for a new access/refresh pair.

        Raises UnauthorizedError if the token is unknown, revoked or expired.
        An expired record is deleted before the error is raised, so retrying
        with it fails the same way.

        On success the presented record is claimed first, so of several
        concurrent redemptions only one proceeds. Then every other unrevoked
        refresh token of the user is revoked and one fresh token is persisted.
        """
        found = await self.repository.get_refresh_token_with_user(token)
        if found is None:
            logger.warning("Rejected refresh: unknown token")
            raise UnauthorizedError()

        record, user = found
        if record.revoked:
            logger.warning("Rejected refresh for user %s: token %s already revoked", user.id, record.id)
            raise UnauthorizedError()

        if record.is_expired(self.clock()):
            await self.repository.delete_refresh_token(record.id)
            logger.warning("Rejected refresh for user %s: token %s expired and deleted", user.id, record.id)
            raise UnauthorizedError()

        if not await self.repository.claim_refresh_token(record.id):
            logger.warning("Rejected refresh for user %s: token %s redeemed concurrently", user.id, record.id)
            raise UnauthorizedError()

        await self.repository.revoke_all_user_refresh_tokens(user.id)

        access_token = self._issue_access_token(user.id)
        refresh_token = self.token_generator.generate()
        await self.repository.save_refresh_token(refresh_token, user.id)

        logger.info("Rotated refresh tokens for user %s", user.id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------

    async def logout(self, token: str) -> None:
        """End every session of the token's owner.

        Idempotent and silent: unknown, revoked or expired tokens are ignored
        so the response never reveals token state.
        """
        found = await self.repository.get_refresh_token_with_user(token)
        if found is None:
            return
        record, user = found
        if record.revoked or record.is_expired(self.clock()):
            return
        await self.repository.revoke_all_user_refresh_tokens(user.id)
        logger.info("User %s logged out", user.id)

    # ------------------------------------------------------------------
    # Access-token authentication
    # ------------------------------------------------------------------

    async def authenticate(self, access_token: str) -> PublicUser:
        """Resolve a bearer access token to its user.

        Raises UnauthorizedError on a bad signature, an expired token, a
        payload without an id, or an id that no longer exists.
        """
        try:
            payload = self.decrypter.verify(access_token)
        except JWTError as exc:
            raise UnauthorizedError() from exc

        user_id = payload.get("id")
        if user_id is None:
            raise UnauthorizedError()

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise UnauthorizedError()
        return user.to_public()

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str) -> None:
        """Sign a reset token for the user and send them a link containing it.

        Raises NotFoundError for an unknown email. Nothing is persisted: the
        token's validity lives entirely in its signature and expiry.
        """
        user = await self.repository.get_user_by_email(email)
        if user is None:
            logger.warning("Password reset requested for unknown email")
            raise NotFoundError("User not found")

        token = self.encrypter.sign(
            {"email": user.email, "id": user.id},
            self.settings.reset_token_expire_seconds,
            self._reset_secret(user),
        )
        link = build_reset_link(self.settings.reset_url_base, token)
        await self.reset_link_sender.send_reset_link(user, link)
        logger.info("Password reset link issued for user %s", user.id)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Consume a reset token and replace the user's password.

        The unverified payload only names which user to load. The token is
        then verified against that user's current reset secret; any failure
        (signature, expiry, tampering) is reported uniformly as
        UnauthorizedError("Invalid token").
        """
        if not password_fits(new_password):
            raise BadRequestError(_PASSWORD_TOO_LONG)

        payload = self.decoder.decode(token)
        user_id = payload.get("id") if payload else None
        # The hint is attacker-controlled until verified: only a plain int reaches the store.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise UnauthorizedError(_INVALID_TOKEN)

        user = await self.repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        try:
            self.decrypter.verify(token, self._reset_secret(user))
        except JWTError as exc:
            logger.warning("Rejected password reset for user %s: token failed verification", user.id)
            raise UnauthorizedError(_INVALID_TOKEN) from exc

        hashed = await self.hasher.hash(new_password)
        await self.repository.update_user(user.id, password=hashed)
        logger.info("Password reset completed for user %s", user.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_access_token(self, user_id: int) -> str:
        return self.encrypter.sign({"id": user_id}, self.settings.access_token_expire_seconds)

    def _reset_secret(self, user: User) -> str:
        # Bound to the current hash: a password change invalidates all reset tokens.
        return self.settings.secret_key + user.password
