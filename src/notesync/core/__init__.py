"""Core module - Shared note helpers, config, and types."""

from notesync.core.config import ConfigError, ServerConfig
from notesync.core.notes import (
    Mutation,
    checksum,
    extract_title,
    generate_filename,
    limit_title,
    process_note,
    slugify,
)
from notesync.core.types import (
    Active,
    MutationAction,
    NoteState,
    SyncStatus,
    Tombstoned,
    note_state,
)

__all__ = [
    # Config
    "ConfigError",
    "ServerConfig",
    # Notes
    "Mutation",
    "checksum",
    "extract_title",
    "generate_filename",
    "limit_title",
    "process_note",
    "slugify",
    # Types
    "Active",
    "MutationAction",
    "NoteState",
    "SyncStatus",
    "Tombstoned",
    "note_state",
]
