"""Note management API routes used by the browser editor."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from notesync.core.notes import checksum, generate_filename
from notesync.server.api.deps import get_current_session, get_db
from notesync.server.database import Database
from notesync.server.models import Note, Session
from notesync.server.schemas import (
    NoteCreateRequest,
    NoteResponse,
    NoteUpdateRequest,
    note_to_response,
)

router = APIRouter(prefix="/api/notes", tags=["notes"])


def _not_found(note: Note | None, note_id: str) -> Note:
    if note is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Note not found: {note_id}",
        )
    return note


@router.get("", response_model=list[NoteResponse])
def list_notes(
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> list[NoteResponse]:
    """List all notes (excluding deleted)."""
    return [note_to_response(n) for n in db.list_notes()]


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(
    request: NoteCreateRequest,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> NoteResponse:
    """Create a note. A timestamped path is generated when none is given."""
    if not request.title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title is required",
        )
    path = request.path or generate_filename()
    try:
        note = db.create_note(
            path=path,
            title=request.title,
            content=request.content,
            checksum=checksum(request.content),
        )
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Note already exists: {path}",
        ) from e
    return note_to_response(note)


@router.get("/{note_id}", response_model=NoteResponse)
def get_note(
    note_id: str,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> NoteResponse:
    """Get a note by ID."""
    return note_to_response(_not_found(db.get_note(note_id), note_id))


@router.api_route("/{note_id}", methods=["PATCH", "PUT"], response_model=NoteResponse)
def update_note(
    note_id: str,
    request: NoteUpdateRequest,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> NoteResponse:
    """Update title and/or content. The checksum is recomputed here."""
    current = _not_found(db.get_note(note_id), note_id)
    content = request.content if request.content is not None else current.content
    note = db.update_note(
        note_id,
        checksum=checksum(content),
        title=request.title,
        content=request.content,
    )
    return note_to_response(_not_found(note, note_id))


@router.delete("/{note_id}", response_model=NoteResponse)
def delete_note(
    note_id: str,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> NoteResponse:
    """Soft-delete a note (tombstone)."""
    return note_to_response(_not_found(db.delete_note(note_id), note_id))


@router.post("/{note_id}/restore", response_model=NoteResponse)
def restore_note(
    note_id: str,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> NoteResponse:
    """Restore a soft-deleted note."""
    return note_to_response(_not_found(db.restore_note(note_id), note_id))
