"""HTTP clients for the notesync server API.

This module provides:
- SyncClient: authenticate, push mutation batches, pull notes
- NotesClient: per-note create/update/delete used by the browser store
- ServerNote, PullResult, PushResult: parsed responses
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from notesync.core.config import ServerConfig
from notesync.core.notes import Mutation

logger = logging.getLogger(__name__)

COOKIE_NAME = "notes-auth"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


class IncompleteSyncError(APIError):
    """The server did not accept every mutation of a batch.

    The accepted subset is applied durably on the server, but the push
    as a whole is a failure for the caller.
    """

    def __init__(self, sent: int, accepted: list[str], conflicts: list[str]) -> None:
        super().__init__(f"incomplete sync: expected {sent} accepted, got {len(accepted)}")
        self.sent = sent
        self.accepted = accepted
        self.conflicts = conflicts


@dataclass
class ServerNote:
    """Note as returned by the server."""

    id: str
    path: str
    title: str
    content: str
    checksum: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerNote:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            path=data["path"],
            title=data["title"],
            content=data["content"],
            checksum=data["checksum"],
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            deleted_at=(
                datetime.fromisoformat(data["deletedAt"]) if data.get("deletedAt") else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire format."""
        return {
            "id": self.id,
            "path": self.path,
            "title": self.title,
            "content": self.content,
            "checksum": self.checksum,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "deletedAt": self.deleted_at.isoformat() if self.deleted_at else None,
        }


@dataclass
class PushResult:
    """Server reply to a pushed batch."""

    accepted: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    def is_complete(self, sent: int) -> bool:
        """True if every sent mutation was accepted."""
        return len(self.accepted) == sent

    def raise_for_incomplete(self, sent: int) -> None:
        """Raise IncompleteSyncError unless every sent mutation was accepted."""
        if not self.is_complete(sent):
            raise IncompleteSyncError(sent, self.accepted, self.conflicts)


@dataclass
class PullResult:
    """Server reply to a pull."""

    changes: list[ServerNote]
    timestamp: datetime


class _BaseClient:
    """Shared httpx plumbing and password authentication."""

    def __init__(self, config: ServerConfig, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize the client.

        Args:
            config: Server connection settings.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._token: str | None = None
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the server configuration."""
        return self._config

    @property
    def is_authenticated(self) -> bool:
        """Check if an auth token has been obtained."""
        return self._token is not None

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, turning transport failures into APIError."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError(self._detail(response, "Not authenticated"), 401)
        if response.status_code == 404:
            raise NotFoundError(self._detail(response, "Resource not found"), 404)
        if response.status_code >= 400:
            raise APIError(self._detail(response, "Unknown error"), response.status_code)
        return response

    @staticmethod
    def _detail(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"{response.status_code} - {response.text or default}"
        if isinstance(body, dict):
            return str(body.get("detail") or body.get("error") or default)
        return default

    def authenticate(self) -> None:
        """Exchange the configured password for an auth token.

        Raises:
            AuthenticationError: If the password is rejected or no token
                is returned.
            APIError: On network or protocol errors.
        """
        response = self._request("POST", "/api/auth", json={"password": self._config.password})
        token = response.cookies.get(COOKIE_NAME)
        if not token:
            raise AuthenticationError("no auth token received")
        self._token = token
        self._client.headers["Authorization"] = f"Bearer {token}"
        logger.debug("Authenticated with %s", self._config.server_url)

    def health_check(self) -> bool:
        """Check if the server is healthy.

        Returns:
            True if server is healthy.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False


class SyncClient(_BaseClient):
    """Push/pull client used by the workstation tool."""

    def __enter__(self) -> SyncClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def push(self, mutations: list[Mutation]) -> PushResult:
        """Send a batch of mutations.

        The result must be checked with ``raise_for_incomplete``: a batch
        that is not fully accepted is a failed sync even though the
        accepted subset has been applied.

        Args:
            mutations: Mutations to send, in order.

        Returns:
            PushResult with accepted and conflicting paths.

        Raises:
            APIError: On network or protocol errors.
        """
        response = self._request(
            "POST",
            "/api/sync",
            json={
                "clientId": self._config.client_id,
                "changes": [m.to_dict() for m in mutations],
            },
        )
        data = response.json()
        result = PushResult(
            accepted=list(data.get("accepted") or []),
            conflicts=list(data.get("conflicts") or []),
        )
        logger.debug(
            "Pushed %d mutations: %d accepted, %d conflicts",
            len(mutations),
            len(result.accepted),
            len(result.conflicts),
        )
        return result

    def pull(self, since: datetime | None = None) -> PullResult:
        """Fetch notes from the server.

        Args:
            since: Optional watermark; omit to fetch every live note.

        Returns:
            PullResult with notes and the next watermark.

        Raises:
            APIError: On network or protocol errors.
        """
        params = {"since": since.isoformat()} if since else None
        response = self._request("GET", "/api/sync", params=params)
        data = response.json()
        return PullResult(
            changes=[ServerNote.from_dict(n) for n in data["changes"]],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class NotesClient(_BaseClient):
    """Per-note client used by the optimistic browser store."""

    def __enter__(self) -> NotesClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def list_notes(self) -> list[ServerNote]:
        """List live notes."""
        response = self._request("GET", "/api/notes")
        return [ServerNote.from_dict(n) for n in response.json()]

    def create_note(self, title: str, content: str, path: str) -> ServerNote:
        """Create a note and return the server's copy."""
        response = self._request(
            "POST",
            "/api/notes",
            json={"title": title, "content": content, "path": path},
        )
        return ServerNote.from_dict(response.json())

    def update_note(self, note_id: str, title: str, content: str) -> ServerNote:
        """Replace title and content of a note."""
        response = self._request(
            "PATCH",
            f"/api/notes/{note_id}",
            json={"title": title, "content": content},
        )
        return ServerNote.from_dict(response.json())

    def delete_note(self, note_id: str) -> None:
        """Soft-delete a note."""
        self._request("DELETE", f"/api/notes/{note_id}")
