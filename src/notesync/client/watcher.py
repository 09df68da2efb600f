"""File system change detector for the notes folder.

This module provides:
- ChangeDetector: Watches a notes folder using watchdog and emits one
  Mutation per accepted write event
- Rate limiting: a write is dropped when the same path emitted less
  than 500ms ago; otherwise it is emitted immediately with the content
  read from disk at that instant
- read_all: one-shot read of every note currently on disk (bulk push)

Directories are registered once, at construction. Directories created
afterwards are not watched until a new detector is built. Deleted or
renamed files never produce a mutation.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING, cast

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from notesync.core.notes import NOTE_SUFFIX, Mutation, process_note
from notesync.core.types import MutationAction

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_S = 0.5

# End-of-stream marker put on the outbound queue by close()
_CLOSED = object()


class WriteEventHandler(FileSystemEventHandler):
    """Forwards file modification events to the detector."""

    def __init__(self, detector: ChangeDetector) -> None:
        super().__init__()
        self._detector = detector

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event."""
        if event.is_directory:
            return
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode("utf-8", errors="replace")
        self._detector.handle_write(Path(src_path))


class ChangeDetector:
    """Watches a notes folder and emits rate-limited update mutations.

    Iterating the detector (or ``watch()``) yields mutations until
    ``close()`` is called; the iteration then ends without error.
    """

    def __init__(
        self,
        notes_dir: Path,
        extensions: tuple[str, ...] = (NOTE_SUFFIX,),
        window_s: float = RATE_LIMIT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the detector and register every existing directory.

        Args:
            notes_dir: Root of the notes folder.
            extensions: File suffixes to watch.
            window_s: Minimum interval between two emissions for one path.
            clock: Monotonic clock in seconds (injectable for tests).

        Raises:
            ValueError: If notes_dir is not a directory.
        """
        self._root = Path(notes_dir).expanduser().resolve()
        if not self._root.is_dir():
            raise ValueError(f"Notes path must be a directory: {notes_dir}")

        self._extensions = extensions
        self._window_s = window_s
        self._clock = clock
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = False
        self._started = False

        self._handler = WriteEventHandler(self)
        self._observer: BaseObserver = Observer()
        self._watched_dirs = self._register_directories()

    def _register_directories(self) -> list[Path]:
        """Schedule a non-recursive watch on the root and each subdirectory."""
        directories = [self._root]
        for dirpath, dirnames, _ in os.walk(self._root):
            dirnames.sort()
            directories.extend(Path(dirpath) / name for name in dirnames)

        for directory in directories:
            self._observer.schedule(self._handler, str(directory), recursive=False)
        logger.debug("Watching %d directories under %s", len(directories), self._root)
        return directories

    @property
    def notes_dir(self) -> Path:
        """Get the watched root directory."""
        return self._root

    @property
    def watched_dirs(self) -> list[Path]:
        """Directories registered at construction."""
        return list(self._watched_dirs)

    @property
    def is_closed(self) -> bool:
        """Check if the detector has been closed."""
        return self._closed

    def matches(self, path: Path) -> bool:
        """Check if a path has one of the watched suffixes."""
        return path.name.endswith(self._extensions)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def handle_write(self, path: Path) -> Mutation | None:
        """Process one raw write event.

        Args:
            path: Absolute path of the written file.

        Returns:
            The emitted mutation, or None if the event was filtered out,
            rate limited, or the file could not be read.
        """
        if not self.matches(path):
            return None

        key = str(path)
        now = self._clock()
        with self._lock:
            last = self._last_seen.get(key)
            if last is not None and now - last < self._window_s:
                logger.debug("Rate limited write on %s", path)
                return None
            self._last_seen[key] = now

        try:
            content = path.read_text(encoding="utf-8")
            rel_path = self._relative(path)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.warning("Skipping %s: %s", path, e)
            return None

        mutation = process_note(rel_path, content, MutationAction.UPDATE)
        with self._lock:
            if self._closed:
                return None
            self._queue.put(mutation)
        logger.debug("Detected change: %s", rel_path)
        return mutation

    def start(self) -> None:
        """Start the underlying observer."""
        if self._started or self._closed:
            return
        self._observer.start()
        self._started = True

    def watch(self) -> Iterator[Mutation]:
        """Yield mutations until the detector is closed."""
        self.start()
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the marker for any other consumer
                self._queue.put(_CLOSED)
                return
            yield cast(Mutation, item)

    def __iter__(self) -> Iterator[Mutation]:
        return self.watch()

    def close(self) -> None:
        """Stop the observer and end the mutation stream."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

        if self._started:
            self._observer.stop()
            self._observer.join(timeout=5.0)
        logger.debug("Change detector closed")

    def __enter__(self) -> ChangeDetector:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def read_all(self) -> list[Mutation]:
        """Read every matching file currently on disk.

        Returns:
            One update mutation per readable note, ordered by path.
            Unreadable files are skipped.
        """
        mutations: list[Mutation] = []
        for path in sorted(self._root.rglob("*")):
            if not path.is_file() or not self.matches(path):
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable note %s: %s", path, e)
                continue
            mutations.append(process_note(self._relative(path), content, MutationAction.UPDATE))
        return mutations
