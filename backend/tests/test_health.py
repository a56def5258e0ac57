"""Tests for health endpoints and the request middleware."""

import pytest

from db import database
from db.database import create_db_engine


@pytest.mark.integration
class TestHealth:

    async def test_liveness(self, client):
        resp = await client.get("/api/health/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["app"] == "Workflow Marketplace"

    async def test_readiness(self, client, db_engine, monkeypatch):
        monkeypatch.setattr(database, "engine", db_engine)
        resp = await client.get("/api/health/ready")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "database": "ok"}

    async def test_readiness_database_down(self, client, tmp_path, monkeypatch):
        broken = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nope.db'}")
        monkeypatch.setattr(database, "engine", broken)
        resp = await client.get("/api/health/ready")
        assert resp.status_code == 503
        assert resp.json()["database"] == "unavailable"
        await broken.dispose()


@pytest.mark.integration
class TestMiddleware:

    async def test_request_id_is_echoed(self, client):
        resp = await client.get("/api/health/", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"
        assert "X-Process-Time" in resp.headers

    async def test_security_headers(self, client):
        resp = await client.get("/api/health/")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    async def test_error_body_carries_request_id(self, client):
        resp = await client.get("/api/v1/workflows/does-not-exist", headers={"X-Request-ID": "req-42"})
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Workflow not found", "request_id": "req-42"}
