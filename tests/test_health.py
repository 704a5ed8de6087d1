"""
tests/test_health.py -- GET /api/v1/health and the host allow-list.

Covers:
  - A reachable database reports healthy with every component "ok"
  - A failing UserStore.ping() degrades the status instead of raising a 500
  - Hosts outside ALLOWED_HOSTS are refused before routing
"""

from __future__ import annotations

import pytest

from api.main import VERSION
from auth.store import UserStore


class TestHealth:
    def test_reachable_database_is_healthy(self, api_client) -> None:
        client, _, _ = api_client
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "healthy",
            "version": VERSION,
            "components": {"app": "ok", "database": "ok"},
        }

    def test_failing_ping_degrades(self, api_client, store: UserStore, monkeypatch: pytest.MonkeyPatch) -> None:
        client, _, _ = api_client

        def broken_ping() -> bool:
            raise RuntimeError("database is locked")

        monkeypatch.setattr(store, "ping", broken_ping)
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["components"]["database"] == "error"


class TestTrustedHost:
    def test_unknown_host_rejected(self, api_client) -> None:
        client, _, _ = api_client
        resp = client.get("/api/v1/health", headers={"Host": "evil.example.com"})
        assert resp.status_code == 400
