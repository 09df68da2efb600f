"""Push/pull API routes.

- GET /api/sync: pull notes, optionally only those updated after a watermark
- POST /api/sync: push a batch of mutations (applied item by item)
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from notesync.server.api.deps import get_current_session, get_db
from notesync.server.database import Database
from notesync.server.models import Session, utcnow
from notesync.server.reconciler import apply_batch
from notesync.server.schemas import (
    SyncPullResponse,
    SyncPushRequest,
    SyncPushResponse,
    note_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing 'Z'."""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid timestamp: {value}",
        ) from e


@router.get("", response_model=SyncPullResponse)
def pull(
    since: str | None = Query(
        default=None,
        description="ISO 8601 watermark. Omit to fetch every live note.",
    ),
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> SyncPullResponse:
    """Pull notes.

    Without ``since`` only live notes are returned. With ``since`` every
    note updated after it is returned, tombstones included, so deletions
    are visible to clients holding a watermark. Store the returned
    ``timestamp`` and send it as the next ``since``.
    """
    # Taken before the query so nothing written meanwhile is skipped next time
    timestamp = utcnow()
    since_dt = parse_timestamp(since) if since else None
    notes = db.list_changes(since_dt)

    logger.info("Pull (since=%s): returning %d notes", since, len(notes))
    for note in notes:
        logger.debug("  - %s (%s)", note.path, note.title)

    return SyncPullResponse(
        changes=[note_to_response(n) for n in notes],
        timestamp=timestamp.isoformat(),
    )


@router.post("", response_model=SyncPushResponse)
def push(
    request: SyncPushRequest,
    db: Database = Depends(get_db),
    _session: Session = Depends(get_current_session),
) -> SyncPushResponse:
    """Push a batch of mutations.

    Every mutation is applied independently. Paths whose storage
    operation failed are returned in ``conflicts``; the rest of the
    batch is still applied.
    """
    if not request.client_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="clientId and changes are required",
        )

    result = apply_batch(
        db,
        client_id=request.client_id,
        mutations=[change.to_mutation() for change in request.changes],
    )
    return SyncPushResponse(accepted=result.accepted, conflicts=result.conflicts)
