"""Tests for the per-note command queue."""

from __future__ import annotations

import threading
import time

import pytest

from notesync.client.queue import MutationQueue, QueueClosedError, SyncCommand
from notesync.core.types import MutationAction

CREATE = MutationAction.CREATE
UPDATE = MutationAction.UPDATE
DELETE = MutationAction.DELETE


class TestMutationQueue:
    """Tests for MutationQueue."""

    def test_fifo(self) -> None:
        queue = MutationQueue()
        queue.put(SyncCommand(UPDATE, "a"))
        queue.put(SyncCommand(UPDATE, "b"))

        assert queue.get(timeout=0.1) == SyncCommand(UPDATE, "a")
        assert queue.get(timeout=0.1) == SyncCommand(UPDATE, "b")

    def test_same_note_replaces_in_place(self) -> None:
        """A second command for a note replaces the first and keeps its position."""
        queue = MutationQueue()
        queue.put(SyncCommand(UPDATE, "a"))
        queue.put(SyncCommand(UPDATE, "b"))
        queue.put(SyncCommand(DELETE, "a"))

        assert len(queue) == 2
        assert queue.get(timeout=0.1) == SyncCommand(DELETE, "a")
        assert queue.get(timeout=0.1) == SyncCommand(UPDATE, "b")

    def test_get_timeout(self) -> None:
        queue = MutationQueue()
        start = time.monotonic()
        assert queue.get(timeout=0.05) is None
        assert time.monotonic() - start >= 0.04

    def test_get_blocks_until_put(self) -> None:
        queue = MutationQueue()
        results: list[SyncCommand | None] = []

        consumer = threading.Thread(target=lambda: results.append(queue.get(timeout=2.0)))
        consumer.start()
        time.sleep(0.05)
        queue.put(SyncCommand(CREATE, "temp-1"))
        consumer.join(timeout=2.0)

        assert results == [SyncCommand(CREATE, "temp-1")]

    def test_remove(self) -> None:
        queue = MutationQueue()
        queue.put(SyncCommand(CREATE, "temp-1"))

        assert queue.remove("temp-1") == SyncCommand(CREATE, "temp-1")
        assert queue.remove("temp-1") is None
        assert not queue
        assert queue.unfinished_tasks == 0

    def test_rekey(self) -> None:
        queue = MutationQueue()
        queue.put(SyncCommand(CREATE, "temp-1"))

        queue.rekey("temp-1", "server-id")

        assert len(queue) == 1
        assert queue.remove("temp-1") is None
        assert queue.get(timeout=0.1) == SyncCommand(CREATE, "server-id")

    def test_task_accounting(self) -> None:
        queue = MutationQueue()
        queue.put(SyncCommand(UPDATE, "a"))
        queue.put(SyncCommand(UPDATE, "a"))
        assert queue.unfinished_tasks == 1

        queue.get(timeout=0.1)
        assert queue.unfinished_tasks == 1
        queue.task_done()
        assert queue.unfinished_tasks == 0

        with pytest.raises(ValueError):
            queue.task_done()

    def test_close_drains_then_raises(self) -> None:
        queue = MutationQueue()
        queue.put(SyncCommand(UPDATE, "a"))
        queue.close()

        assert queue.get() == SyncCommand(UPDATE, "a")
        with pytest.raises(QueueClosedError):
            queue.get()
        with pytest.raises(QueueClosedError):
            queue.put(SyncCommand(UPDATE, "b"))

    def test_close_wakes_waiter(self) -> None:
        queue = MutationQueue()
        errors: list[Exception] = []

        def wait() -> None:
            try:
                queue.get()
            except QueueClosedError as e:
                errors.append(e)

        waiter = threading.Thread(target=wait)
        waiter.start()
        time.sleep(0.05)
        queue.close()
        waiter.join(timeout=2.0)

        assert len(errors) == 1
