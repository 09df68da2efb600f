"""Apply pulled notes to the local notes folder.

Each note is written to its path (parent directories are created) and
the file's modification time is set to the note's updated_at, so the
write is not mistaken for a local edit. Local files are never deleted,
and tombstoned notes are not written.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from notesync.client.api import ServerNote

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Outcome of applying a pull to disk."""

    written: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    tombstoned: list[str] = field(default_factory=list)


def resolve_note_path(notes_dir: Path, note_path: str) -> Path:
    """Resolve a note path inside the notes folder.

    Raises:
        ValueError: If the path escapes the notes folder.
    """
    root = notes_dir.resolve()
    full_path = (root / note_path).resolve()
    if not full_path.is_relative_to(root):
        raise ValueError(f"Note path escapes notes folder: {note_path}")
    return full_path


def write_note(notes_dir: Path, note: ServerNote) -> Path:
    """Write one pulled note and stamp its mtime.

    Args:
        notes_dir: Root of the notes folder.
        note: Note returned by the server.

    Returns:
        Path of the written file.

    Raises:
        OSError: If the directory or file cannot be written.
        ValueError: If the note path escapes the notes folder.
    """
    full_path = resolve_note_path(notes_dir, note.path)
    full_path.parent.mkdir(parents=True, exist_ok=True)
    full_path.write_text(note.content, encoding="utf-8")

    mtime = note.updated_at.timestamp()
    os.utime(full_path, (mtime, mtime))
    return full_path


def apply_pull(notes_dir: Path, notes: list[ServerNote]) -> ApplyResult:
    """Write every pulled note to disk, skipping the ones that fail.

    Args:
        notes_dir: Root of the notes folder.
        notes: Notes returned by a pull.

    Returns:
        ApplyResult listing written and failed paths.
    """
    result = ApplyResult()
    for note in notes:
        if note.deleted_at is not None:
            # Only watermark pulls return tombstones; the local file is kept
            result.tombstoned.append(note.path)
            continue
        try:
            write_note(notes_dir, note)
        except (OSError, ValueError) as e:
            logger.warning("Failed to write %s: %s", note.path, e)
            result.failed.append(note.path)
            continue
        result.written.append(note.path)
        logger.debug("Wrote %s", note.path)
    return result
