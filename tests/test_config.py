"""Unit tests for core/config.py -- startup validation of Settings.

Covers:
- Production mode refuses to start without SECRET_KEY
- Dev mode generates a key
- Short keys are rejected in both modes
- Token lifetimes must be positive
- Documented defaults (15 min access, 7 day refresh)
"""

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "k" * 32


class TestSecretKey:
    def test_missing_key_in_production_fails(self) -> None:
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(secret_key="", debug=False)

    def test_missing_key_in_debug_is_generated(self) -> None:
        s = Settings(secret_key="", debug=True)
        assert len(s.secret_key) >= 32

    def test_generated_keys_differ(self) -> None:
        assert Settings(secret_key="", debug=True).secret_key != Settings(secret_key="", debug=True).secret_key

    @pytest.mark.parametrize("debug", [True, False])
    def test_short_key_rejected(self, debug: bool) -> None:
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(secret_key="too-short", debug=debug)


class TestLifetimes:
    def test_defaults(self) -> None:
        s = Settings(secret_key=GOOD_KEY)
        assert s.access_token_expire_seconds == 15 * 60
        assert s.refresh_token_expire_seconds == 7 * 24 * 60 * 60
        assert s.reset_token_expire_seconds > 0

    @pytest.mark.parametrize(
        "field",
        ["access_token_expire_seconds", "refresh_token_expire_seconds", "reset_token_expire_seconds"],
    )
    def test_non_positive_lifetime_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError, match=field.upper()):
            Settings(secret_key=GOOD_KEY, **{field: 0})

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
        monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_SECONDS", "60")
        monkeypatch.setenv("RESET_URL_BASE", "https://example.test/reset")
        s = Settings()
        assert s.secret_key == GOOD_KEY
        assert s.access_token_expire_seconds == 60
        assert s.reset_url_base == "https://example.test/reset"
