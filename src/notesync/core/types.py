"""Shared types for notesync.

This module defines types and enums used by both client and server.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MutationAction(str, Enum):
    """Action carried by a single mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncStatus(str, Enum):
    """Sync status of a note held by the optimistic store.

    Also used as the aggregate status of the whole store.
    """

    SYNCED = "synced"
    PENDING = "pending"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass(frozen=True)
class Active:
    """A note that has not been deleted."""


@dataclass(frozen=True)
class Tombstoned:
    """A note that was soft-deleted at ``at``.

    The row is kept so that later pulls can observe the deletion.
    """

    at: datetime


NoteState = Active | Tombstoned


def note_state(deleted_at: datetime | None) -> NoteState:
    """Build the tagged state for a nullable deletion timestamp."""
    if deleted_at is None:
        return Active()
    return Tombstoned(at=deleted_at)
