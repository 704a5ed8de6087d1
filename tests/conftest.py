"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - settings: an explicit Settings with a fixed 32+ char secret
  - store: an isolated in-memory UserStore
  - clock: a controllable clock injected into AuthService
  - sender: a ResetLinkSender that records links instead of logging them
  - service: a real AuthService (bcrypt, python-jose, SQLite) over the above
  - api_client: TestClient with a patched lifespan wired to the same pieces

Design: ":memory:" SQLite URLs get a StaticPool inside UserStore, so the
worker threads used by asyncio.to_thread (and by TestClient) all share one
connection and see the same schema.

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.repository import UserRepository
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import BcryptHasher, JwtCodec, SecureTokenGenerator
from core.config import Settings

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock returning a fixed aware UTC datetime until advanced."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSender:
    """ResetLinkSender that keeps every (user, link) it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[User, str]] = []

    async def send_reset_link(self, user: User, link: str) -> None:
        self.sent.append((user, link))

    def last_token(self) -> str:
        _, link = self.sent[-1]
        return parse_qs(urlparse(link).query)["token"][0]


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key=TEST_SECRET,
        debug=False,
        database_url="sqlite:///:memory:",
        reset_url_base="https://app.example.test/reset-password",
    )


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


def make_service(settings: Settings, store: UserStore, clock: FakeClock, sender: RecordingSender) -> AuthService:
    codec = JwtCodec(settings.secret_key, settings.access_token_expire_seconds)
    hasher = BcryptHasher()
    return AuthService(
        repository=UserRepository(store, settings.refresh_token_expire_seconds),
        hasher=hasher,
        hash_comparer=hasher,
        encrypter=codec,
        decrypter=codec,
        decoder=codec,
        token_generator=SecureTokenGenerator(),
        settings=settings,
        reset_link_sender=sender,
        clock=clock,
    )


@pytest.fixture
def service(settings: Settings, store: UserStore, clock: FakeClock, sender: RecordingSender) -> AuthService:
    return make_service(settings, store, clock, sender)


# ---------------------------------------------------------------------------
# HTTP fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, auth_service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test store and service into app.state so TestClient
    routes use isolated in-memory state rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture
def api_client(
    settings: Settings,
    store: UserStore,
    clock: FakeClock,
    sender: RecordingSender,
) -> Generator[tuple[TestClient, RecordingSender, FakeClock], None, None]:
    """Yield (client, sender, clock) for HTTP integration tests.

    The login rate limit is disabled so the many logins across the suite do
    not trip it; counters are shared process-wide.
    """
    auth_service = make_service(settings, store, clock, sender)
    app.router.lifespan_context = _patch_lifespan(store, auth_service)
    limiter.enabled = False
    try:
        with TestClient(app, raise_server_exceptions=True) as client:
            yield client, sender, clock
    finally:
        limiter.enabled = True
