"""Apply pushed mutation batches to the authoritative store.

Each mutation is applied on its own, with no transaction spanning the
batch: a storage error on one item is reported as a conflict and the
remaining items are still processed. Applied items are written to the
audit log afterwards; audit failures never affect the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from notesync.core.notes import Mutation
from notesync.core.types import MutationAction
from notesync.server.database import Database

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of applying one batch."""

    accepted: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)


def apply_mutation(db: Database, mutation: Mutation) -> str | None:
    """Apply a single mutation.

    Args:
        db: Database to write to.
        mutation: Mutation to apply.

    Returns:
        ID of the affected note, or None for a delete of an unknown path.

    Raises:
        SQLAlchemyError: If the storage operation fails.
    """
    if mutation.action == MutationAction.DELETE:
        note = db.tombstone_note(mutation.path)
        if note is None:
            logger.debug("Delete for unknown path %s ignored", mutation.path)
            return None
        return note.id

    note = db.upsert_note(
        path=mutation.path,
        title=mutation.title or "Untitled",
        content=mutation.content or "",
        checksum=mutation.checksum or "",
    )
    return note.id


def apply_batch(db: Database, client_id: str, mutations: list[Mutation]) -> SyncResult:
    """Apply a pushed batch, one mutation at a time.

    Args:
        db: Database to write to.
        client_id: Identity of the pushing client (for the audit log).
        mutations: Mutations in the order they were sent.

    Returns:
        SyncResult with accepted and conflicting paths.
    """
    result = SyncResult()
    applied: list[tuple[str | None, str]] = []

    for index, mutation in enumerate(mutations, start=1):
        logger.debug(
            "Applying %d/%d: %s (%s, %d chars)",
            index,
            len(mutations),
            mutation.path,
            mutation.action.value,
            len(mutation.content),
        )
        try:
            note_id = apply_mutation(db, mutation)
        except SQLAlchemyError:
            logger.exception("Failed to apply %s for %s", mutation.action.value, mutation.path)
            result.conflicts.append(mutation.path)
            continue

        result.accepted.append(mutation.path)
        applied.append((note_id, mutation.action.value))

    if applied:
        try:
            db.add_sync_logs(applied, client_id)
        except SQLAlchemyError:
            logger.warning("Failed to write %d sync log entries", len(applied), exc_info=True)

    logger.info(
        "Batch from %s: %d accepted, %d conflicts",
        client_id,
        len(result.accepted),
        len(result.conflicts),
    )
    return result
