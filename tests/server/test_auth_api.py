"""Tests for authentication endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from notesync.server.api.deps import COOKIE_NAME
from notesync.server.app import create_app
from notesync.server.database import Database


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client: TestClient) -> None:
        """Health endpoint should return OK without auth."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestLogin:
    """Tests for POST /api/auth."""

    def test_correct_password_sets_cookie(self, client: TestClient, password: str) -> None:
        response = client.post("/api/auth", json={"password": password})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert response.cookies.get(COOKIE_NAME)
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie
        assert "max-age=2592000" in set_cookie

    def test_wrong_password(self, client: TestClient) -> None:
        response = client.post("/api/auth", json={"password": "wrong"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid password"
        assert COOKIE_NAME not in response.cookies

    def test_missing_password(self, client: TestClient) -> None:
        response = client.post("/api/auth", json={})
        assert response.status_code == 422

    def test_secure_cookie_flag(self, db: Database, password: str) -> None:
        app = create_app(db, password, secure_cookies=True)
        client = TestClient(app, base_url="https://testserver")

        response = client.post("/api/auth", json={"password": password})

        assert "secure" in response.headers["set-cookie"].lower()


class TestProtectedRoutes:
    """Tests for cookie and bearer authentication."""

    def test_requires_auth(self, client: TestClient) -> None:
        response = client.get("/api/sync")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_cookie_auth(self, auth_client: TestClient) -> None:
        assert auth_client.get("/api/sync").status_code == 200

    def test_bearer_auth(self, client: TestClient, password: str) -> None:
        token = client.post("/api/auth", json={"password": password}).cookies[COOKIE_NAME]
        client.cookies.clear()

        response = client.get("/api/sync", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get("/api/sync", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"


class TestLogout:
    """Tests for DELETE /api/auth."""

    def test_logout_drops_session(self, client: TestClient, password: str) -> None:
        token = client.post("/api/auth", json={"password": password}).cookies[COOKIE_NAME]

        response = client.delete("/api/auth")

        assert response.status_code == 200
        client.cookies.clear()
        response = client.get("/api/sync", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
