"""App health and method listing tests."""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.config import settings


def test_health_endpoint(client: TestClient) -> None:
    """Health endpoint should return status and the configured version."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": settings.app_version}
    assert "X-Process-Time-Ms" in response.headers


def test_withdraw_methods_need_no_session(client: TestClient) -> None:
    response = client.get("/withdraw/methods")
    assert response.status_code == 200
    assert len(response.json()) == 6


def test_account_requires_bearer_token(client: TestClient) -> None:
    response = client.get("/account")
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "Unauthorized - no token provided",
        "code": "UNAUTHORIZED",
    }
