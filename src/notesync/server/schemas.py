"""Pydantic schemas for API request/response models.

Wire keys are camelCase (``clientId``, ``updatedAt``...); models accept
either spelling on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from notesync.core.notes import Mutation
from notesync.core.types import MutationAction, Tombstoned
from notesync.server.models import Note, as_utc


class WireModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Auth schemas ===


class AuthRequest(WireModel):
    """Request body for password authentication."""

    password: str


class AuthResponse(WireModel):
    """Response for authentication and logout."""

    success: bool


# === Note schemas ===


class NoteResponse(WireModel):
    """Note data in responses."""

    id: str
    path: str
    title: str
    content: str
    checksum: str
    created_at: str
    updated_at: str
    deleted_at: str | None


class NoteCreateRequest(WireModel):
    """Request body for creating a note from the browser."""

    title: str | None = None
    content: str = ""
    path: str | None = None


class NoteUpdateRequest(WireModel):
    """Request body for updating a note from the browser."""

    title: str | None = None
    content: str | None = None


# === Sync schemas ===


class MutationRequest(WireModel):
    """A single mutation inside a pushed batch."""

    path: str
    title: str | None = None
    content: str | None = None
    checksum: str | None = None
    action: MutationAction

    def to_mutation(self) -> Mutation:
        """Convert to the shared Mutation type."""
        return Mutation(
            path=self.path,
            title=self.title or "",
            content=self.content or "",
            checksum=self.checksum or "",
            action=self.action,
        )


class SyncPushRequest(WireModel):
    """Request body for POST /api/sync."""

    client_id: str
    changes: list[MutationRequest]


class SyncPushResponse(WireModel):
    """Response for POST /api/sync."""

    accepted: list[str]
    conflicts: list[str]


class SyncPullResponse(WireModel):
    """Response for GET /api/sync."""

    changes: list[NoteResponse]
    timestamp: str


# === Health schema ===


class HealthResponse(WireModel):
    """Health check response."""

    status: str


# === Converters ===


def note_to_response(note: Note) -> NoteResponse:
    """Convert Note to response model."""
    state = note.state
    return NoteResponse(
        id=note.id,
        path=note.path,
        title=note.title,
        content=note.content,
        checksum=note.checksum,
        created_at=as_utc(note.created_at).isoformat(),
        updated_at=as_utc(note.updated_at).isoformat(),
        deleted_at=state.at.isoformat() if isinstance(state, Tombstoned) else None,
    )
