"""Outgoing command queue for the optimistic note store.

This module provides:
- SyncCommand: value object naming an action and the note it targets
- MutationQueue: thread-safe FIFO with one slot per note

A command only references a note by key; the note's current state is
read when the command executes, never captured when it is queued.
Queuing a second command for the same note replaces the first one in
place, so the server only ever receives the latest value per note.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field

from notesync.core.types import MutationAction

logger = logging.getLogger(__name__)


class QueueClosedError(RuntimeError):
    """Raised when using a closed queue."""


@dataclass(frozen=True)
class SyncCommand:
    """A pending network action for one note."""

    action: MutationAction
    note_key: str
    queued_at: float = field(default_factory=time.time, compare=False)


class MutationQueue:
    """Thread-safe FIFO queue keyed by note.

    Edit handlers put commands; a single worker takes them.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._not_empty = threading.Condition(self._lock)
        self._commands: dict[str, SyncCommand] = {}  # note key -> command
        self._unfinished = 0  # queued or taken but not yet task_done()
        self._closed = False

    def put(self, command: SyncCommand) -> None:
        """Add a command, replacing any command queued for the same note.

        Raises:
            QueueClosedError: If the queue is closed.
        """
        with self._lock:
            if self._closed:
                raise QueueClosedError("Queue is closed")

            old = self._commands.get(command.note_key)
            if old is None:
                self._unfinished += 1
            else:
                logger.debug(
                    "Replacing queued %s for %s with %s",
                    old.action.value,
                    command.note_key,
                    command.action.value,
                )
            # Reassigning an existing key keeps its position
            self._commands[command.note_key] = command
            self._not_empty.notify()

    def get(self, timeout: float | None = None) -> SyncCommand | None:
        """Take the oldest command.

        Blocks until a command is available or timeout expires.

        Args:
            timeout: Maximum seconds to wait (None = wait forever)

        Returns:
            The oldest command, or None if timeout expired

        Raises:
            QueueClosedError: If the queue is closed and empty.
        """
        with self._not_empty:
            deadline = None if timeout is None else time.monotonic() + timeout

            while not self._commands and not self._closed:
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._not_empty.wait(timeout=remaining)

            if not self._commands:
                raise QueueClosedError("Queue is closed")

            key = next(iter(self._commands))
            return self._commands.pop(key)

    def remove(self, note_key: str) -> SyncCommand | None:
        """Remove the command queued for a note.

        Returns:
            The removed command, or None if nothing was queued.
        """
        with self._lock:
            command = self._commands.pop(note_key, None)
            if command is not None:
                self._unfinished -= 1
            return command

    def rekey(self, old_key: str, new_key: str) -> None:
        """Move a queued command to a new note key (temp id -> server id)."""
        with self._lock:
            command = self._commands.pop(old_key, None)
            if command is not None:
                if new_key in self._commands:
                    self._unfinished -= 1
                self._commands[new_key] = SyncCommand(command.action, new_key, command.queued_at)

    def task_done(self) -> None:
        """Mark a command taken with get() as processed."""
        with self._lock:
            if self._unfinished <= 0:
                raise ValueError("task_done() called too many times")
            self._unfinished -= 1

    @property
    def unfinished_tasks(self) -> int:
        """Commands queued or being processed."""
        with self._lock:
            return self._unfinished

    def close(self) -> None:
        """Close the queue and wake up waiting threads."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    def __bool__(self) -> bool:
        with self._lock:
            return bool(self._commands)
