"""Note content helpers shared by every actor.

This module provides:
- checksum: MD5 content hash (hex), used only as a cheap equality check
- extract_title / limit_title: display title derived from markdown text
- generate_filename / slugify: paths for newly created notes
- Mutation: one create/update/delete instruction for one note
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any

from notesync.core.types import MutationAction

MAX_TITLE_LENGTH = 50
NOTE_SUFFIX = ".md"


def checksum(content: str) -> str:
    """Compute the content hash of a note.

    Args:
        content: Raw note text.

    Returns:
        Lowercase hex MD5 of the UTF-8 encoded content.
    """
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def limit_title(title: str) -> str:
    """Cut titles longer than 50 characters, ending them with '...'."""
    if len(title) > MAX_TITLE_LENGTH:
        return title[: MAX_TITLE_LENGTH - 3] + "..."
    return title


def extract_title(content: str, path: str) -> str:
    """Extract a display title from markdown content.

    Uses the first ``#`` heading found before any body text. Falls back
    to the filename with dashes/underscores turned into capitalized words.

    Args:
        content: Raw note text.
        path: Note path, used for the fallback.

    Returns:
        Title of at most 50 characters.
    """
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith("#"):
            heading = stripped.lstrip("#").strip()
            if heading:
                return limit_title(heading)
        elif stripped:
            break

    name = PurePosixPath(path.replace("\\", "/")).name
    if name.endswith(NOTE_SUFFIX):
        name = name[: -len(NOTE_SUFFIX)]
    words = name.replace("-", " ").replace("_", " ").split()
    title = " ".join(word[:1].upper() + word[1:] for word in words)
    return limit_title(title or "Untitled")


def generate_filename(now: datetime | None = None) -> str:
    """Generate a timestamp-based filename (YYYY-MM-DD-HHMM.md)."""
    now = now or datetime.now()
    return now.strftime("%Y-%m-%d-%H%M") + NOTE_SUFFIX


def slugify(title: str) -> str:
    """Lowercase a title and replace whitespace runs with dashes."""
    return re.sub(r"\s+", "-", title.strip().lower())


@dataclass
class Mutation:
    """An instruction describing one change to one note.

    Non-delete mutations fully replace the note's title, content and
    checksum on the server; there is no version or base state.
    """

    path: str
    title: str
    content: str
    checksum: str
    action: MutationAction

    def to_dict(self) -> dict[str, str]:
        """Serialize to the wire format."""
        return {
            "path": self.path,
            "title": self.title,
            "content": self.content,
            "checksum": self.checksum,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Mutation:
        """Create from a wire dictionary."""
        return cls(
            path=data["path"],
            title=data.get("title") or "",
            content=data.get("content") or "",
            checksum=data.get("checksum") or "",
            action=MutationAction(data["action"]),
        )


def process_note(path: str, content: str, action: MutationAction) -> Mutation:
    """Build a mutation for a note, deriving its title and checksum."""
    return Mutation(
        path=path,
        title=extract_title(content, path),
        content=content,
        checksum=checksum(content),
        action=action,
    )
