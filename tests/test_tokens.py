"""Unit tests for auth/tokens.py -- crypto adapters.

Covers:
- BcryptHasher hashes one-way and compares correctly (async)
- verify_password treats a malformed stored hash or an over-long password as a mismatch
- password_fits measures UTF-8 bytes against the 72-byte bcrypt limit
- JwtCodec signs with default and explicit lifetimes and secrets
- JwtCodec.verify rejects wrong secrets, tampering and expiry
- JwtCodec.decode reads claims without a secret and returns None on garbage
- SecureTokenGenerator output is unique and URL-safe
"""

from __future__ import annotations

import re

import pytest
from jose import JWTError, jwt

from auth.tokens import (
    ALGORITHM,
    DUMMY_HASH,
    BcryptHasher,
    JwtCodec,
    SecureTokenGenerator,
    password_fits,
    verify_password,
)

SECRET = "s" * 40


@pytest.fixture
def codec() -> JwtCodec:
    return JwtCodec(SECRET, default_expires_in=900)


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class TestBcryptHasher:
    @pytest.mark.anyio
    async def test_hash_is_not_plaintext(self) -> None:
        hashed = await BcryptHasher().hash("p1-secret")
        assert hashed != "p1-secret"
        assert hashed.startswith("$2")

    @pytest.mark.anyio
    async def test_same_password_hashes_differently(self) -> None:
        hasher = BcryptHasher()
        assert await hasher.hash("same") != await hasher.hash("same")

    @pytest.mark.anyio
    async def test_compare_matches_and_rejects(self) -> None:
        hasher = BcryptHasher()
        hashed = await hasher.hash("right")
        assert await hasher.compare("right", hashed) is True
        assert await hasher.compare("wrong", hashed) is False

    def test_malformed_hash_is_mismatch(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    @pytest.mark.parametrize(
        "plain, fits",
        [("a" * 72, True), ("a" * 73, False), ("é" * 36, True), ("é" * 37, False)],
    )
    def test_password_fits_counts_bytes(self, plain: str, fits: bool) -> None:
        assert password_fits(plain) is fits

    def test_over_long_plaintext_never_matches(self) -> None:
        assert verify_password("é" * 40, DUMMY_HASH) is False


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------


class TestJwtCodec:
    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            JwtCodec("", default_expires_in=900)

    def test_sign_verify_round_trip_uses_default_lifetime(self, codec: JwtCodec) -> None:
        token = codec.sign({"id": 7})
        payload = codec.verify(token)
        assert payload["id"] == 7
        assert payload["exp"] - payload["iat"] == 900

    def test_explicit_lifetime(self, codec: JwtCodec) -> None:
        payload = codec.verify(codec.sign({"id": 1}, expires_in=30))
        assert payload["exp"] - payload["iat"] == 30

    def test_sign_does_not_mutate_payload(self, codec: JwtCodec) -> None:
        payload = {"id": 1}
        codec.sign(payload)
        assert payload == {"id": 1}

    def test_custom_secret_required_to_verify(self, codec: JwtCodec) -> None:
        token = codec.sign({"id": 1}, secret=SECRET + "hash-a")
        assert codec.verify(token, SECRET + "hash-a")["id"] == 1
        with pytest.raises(JWTError):
            codec.verify(token)
        with pytest.raises(JWTError):
            codec.verify(token, SECRET + "hash-b")

    def test_expired_token_rejected(self, codec: JwtCodec) -> None:
        token = codec.sign({"id": 1}, expires_in=-10)
        with pytest.raises(JWTError):
            codec.verify(token)

    def test_tampered_payload_rejected(self, codec: JwtCodec) -> None:
        header, _, signature = codec.sign({"id": 1}).split(".")
        forged_payload = jwt.encode({"id": 2}, "other", algorithm=ALGORITHM).split(".")[1]
        with pytest.raises(JWTError):
            codec.verify(f"{header}.{forged_payload}.{signature}")

    def test_decode_reads_without_secret(self, codec: JwtCodec) -> None:
        token = codec.sign({"id": 5, "email": "a@x.com"}, secret="some-other-secret-entirely")
        claims = codec.decode(token)
        assert claims is not None
        assert claims["id"] == 5
        assert claims["email"] == "a@x.com"

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
    def test_decode_garbage_returns_none(self, codec: JwtCodec, garbage: str) -> None:
        assert codec.decode(garbage) is None


# ---------------------------------------------------------------------------
# Opaque tokens
# ---------------------------------------------------------------------------


class TestSecureTokenGenerator:
    def test_tokens_are_unique(self) -> None:
        gen = SecureTokenGenerator()
        tokens = {gen.generate() for _ in range(200)}
        assert len(tokens) == 200

    def test_tokens_are_url_safe_and_long(self) -> None:
        token = SecureTokenGenerator().generate()
        assert re.fullmatch(r"[A-Za-z0-9_\-]+", token)
        assert len(token) >= 43  # 32 bytes, base64 without padding
