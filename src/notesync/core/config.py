"""Shared configuration classes for notesync.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CLIENT_ID = "notesync-cli"


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""


@dataclass
class ServerConfig:
    """Configuration for connecting to a notesync server.

    Used by the sync client (push/pull) and the browser-side note client
    to ensure consistent connection settings.

    Attributes:
        server_url: Base URL of the server (e.g., "https://notes.example.com").
        password: Shared password exchanged for an auth cookie.
        client_id: Identity reported with every pushed batch.
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    password: str
    client_id: str = DEFAULT_CLIENT_ID
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")
