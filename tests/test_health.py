"""Tests for GET /api/v1/health."""

from fastapi.testclient import TestClient

from api.main import VERSION


def test_health_is_public_and_healthy(client: TestClient) -> None:
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "healthy",
        "version": VERSION,
        "components": {"app": "ok", "database": "ok"},
    }


def test_health_reports_database_failure(client: TestClient, user_store, monkeypatch) -> None:
    def broken():
        raise RuntimeError("unable to open database file")

    monkeypatch.setattr(user_store, "ping", broken)
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["components"]["database"] == "error"


def test_unknown_host_rejected(client: TestClient) -> None:
    resp = client.get("/api/v1/health", headers={"host": "evil.example.com"})
    assert resp.status_code == 400
