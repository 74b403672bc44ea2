"""Application wiring through the ASGI stack."""

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient
import pytest

from greenbook.main import app


def test_app_serves_signup_and_unified_errors(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    signup_payload: dict[str, str],
) -> None:
    """Contract: lifespan wires runtime from env; errors use {code,message,detail}."""
    monkeypatch.setenv("GREENBOOK_JWT_SECRET", "wiring-test-secret-key-32-bytes-minimum")
    monkeypatch.setenv("GREENBOOK_SQLITE_PATH", str(tmp_path / "wiring.sqlite3"))
    monkeypatch.setenv("GREENBOOK_STORE_BACKEND", "sqlite")

    with TestClient(app) as client:
        created = client.post("/api/auth/signup", json=signup_payload)
        assert created.status_code == 200
        token = created.json()["access_token"]

        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "Alice_Golf"

        anonymous = client.get("/api/users/me")
        assert anonymous.status_code == 401
        assert anonymous.json() == {
            "code": "AUTH_TOKEN_INVALID",
            "message": "invalid access token",
            "detail": {},
        }

        check = client.get("/api/usernames/availability", params={"username": "alice_golf"})
        assert check.json() == {"username": "alice_golf", "available": False}

        incomplete = client.post("/api/auth/signup", json={"email": "x@example.com"})
        assert incomplete.status_code == 422
        body = incomplete.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert ["body", "first_name"] in [field["loc"] for field in body["detail"]["fields"]]
