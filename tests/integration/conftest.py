"""Pytest fixtures for integration tests.

This module provides fixtures for end-to-end testing with a real server
running in a background thread on a temporary SQLite database.
"""

from __future__ import annotations

import socket
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import uvicorn
from httpx import Client

from notesync.client.api import NotesClient, SyncClient
from notesync.core.config import ServerConfig
from notesync.server.app import create_app
from notesync.server.database import Database

PASSWORD = "integration-test-password"


@dataclass
class LiveServer:
    """Container for test server resources."""

    db: Database
    url: str
    password: str

    def config(self, client_id: str = "test-cli") -> ServerConfig:
        """Connection settings for a client of this server."""
        return ServerConfig(server_url=self.url, password=self.password, client_id=client_id)


@dataclass
class NotesFolder:
    """A workstation notes folder."""

    root: Path

    def write(self, relative_path: str, content: str) -> Path:
        """Create or overwrite a note."""
        file_path = self.root / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    def read(self, relative_path: str) -> str:
        """Read a note."""
        return (self.root / relative_path).read_text(encoding="utf-8")

    def exists(self, relative_path: str) -> bool:
        """Check if a note exists."""
        return (self.root / relative_path).exists()


class UvicornTestServer:
    """Uvicorn server running in a background thread for testing."""

    def __init__(self, app: Any, host: str = "127.0.0.1", port: int = 0) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.server: uvicorn.Server | None = None
        self.thread: threading.Thread | None = None

    def start(self) -> int:
        """Start the server and return the port."""
        # Find a free port
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((self.host, 0))
            self.port = s.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self.server = uvicorn.Server(config)

        self.thread = threading.Thread(target=self.server.run, daemon=True)
        self.thread.start()

        # Wait for server to be ready
        self._wait_for_ready()

        return self.port

    def _wait_for_ready(self, timeout: float = 5.0) -> None:
        """Wait for the server to be ready to accept connections."""
        start = time.time()
        while time.time() - start < timeout:
            try:
                with Client() as client:
                    response = client.get(f"http://{self.host}:{self.port}/health")
                    if response.status_code == 200:
                        return
            except Exception:
                pass
            time.sleep(0.1)
        raise RuntimeError("Server failed to start in time")

    def stop(self) -> None:
        """Stop the server."""
        if self.server:
            self.server.should_exit = True
        if self.thread:
            self.thread.join(timeout=5.0)


@pytest.fixture
def live_server(tmp_path: Path) -> Generator[LiveServer, None, None]:
    """Create and start a test server on a temporary database."""
    db = Database(tmp_path / "server" / "test.db")
    server = UvicornTestServer(create_app(db, PASSWORD))
    port = server.start()

    yield LiveServer(db=db, url=f"http://127.0.0.1:{port}", password=PASSWORD)

    server.stop()
    db.close()


@pytest.fixture
def sync_client(live_server: LiveServer) -> Generator[SyncClient, None, None]:
    """Authenticated push/pull client."""
    with SyncClient(live_server.config()) as client:
        client.authenticate()
        yield client


@pytest.fixture
def notes_client(live_server: LiveServer) -> Generator[NotesClient, None, None]:
    """Authenticated per-note client."""
    with NotesClient(live_server.config("browser")) as client:
        client.authenticate()
        yield client


@pytest.fixture
def folder_factory(tmp_path: Path) -> Any:
    """Factory fixture to create workstation notes folders."""

    def _create(name: str) -> NotesFolder:
        root = tmp_path / "clients" / name / "notes"
        root.mkdir(parents=True, exist_ok=True)
        return NotesFolder(root)

    return _create
