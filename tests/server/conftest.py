"""Shared fixtures for server tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from notesync.server.app import create_app
from notesync.server.database import Database

PASSWORD = "test-password"


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def password() -> str:
    """The shared server password."""
    return PASSWORD


@pytest.fixture
def client(db: Database) -> TestClient:
    """Create an unauthenticated test client."""
    return TestClient(create_app(db, PASSWORD))


@pytest.fixture
def auth_client(client: TestClient) -> TestClient:
    """Create a test client holding a valid auth cookie."""
    response = client.post("/api/auth", json={"password": PASSWORD})
    assert response.status_code == 200
    return client
