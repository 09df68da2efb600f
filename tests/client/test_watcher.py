"""Tests for the notes folder change detector."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from notesync.client.watcher import ChangeDetector
from notesync.core.notes import Mutation, checksum
from notesync.core.types import MutationAction


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def notes_dir(tmp_path: Path) -> Path:
    """Create a notes folder with a subdirectory."""
    root = tmp_path / "notes"
    (root / "projects").mkdir(parents=True)
    return root


class TestConstruction:
    """Tests for detector setup."""

    def test_requires_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            ChangeDetector(tmp_path / "missing")

    def test_registers_existing_directories(self, notes_dir: Path) -> None:
        (notes_dir / "projects" / "deep").mkdir()

        with ChangeDetector(notes_dir) as detector:
            watched = detector.watched_dirs

        assert notes_dir.resolve() in watched
        assert (notes_dir / "projects").resolve() in watched
        assert (notes_dir / "projects" / "deep").resolve() in watched

    def test_matches_suffix(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        assert detector.matches(Path("a.md"))
        assert not detector.matches(Path("a.txt"))
        detector.close()


class TestRateLimiting:
    """Tests for per-path rate limiting."""

    def test_writes_inside_window_are_dropped(self, notes_dir: Path) -> None:
        """Writes at 0, 100, 600 and 650ms emit exactly two mutations."""
        clock = FakeClock()
        detector = ChangeDetector(notes_dir, clock=clock)
        path = detector.notes_dir / "a.md"

        emitted: list[Mutation | None] = []
        for at, content in [(0.0, "v1"), (0.1, "v2"), (0.6, "v3"), (0.65, "v4")]:
            clock.now = at
            path.write_text(content, encoding="utf-8")
            emitted.append(detector.handle_write(path))

        detector.close()
        mutations = list(detector.watch())

        assert [m.content for m in mutations] == ["v1", "v3"]
        assert emitted[1] is None and emitted[3] is None
        assert all(m.action == MutationAction.UPDATE for m in mutations)

    def test_window_is_per_path(self, notes_dir: Path) -> None:
        clock = FakeClock()
        detector = ChangeDetector(notes_dir, clock=clock)
        a = detector.notes_dir / "a.md"
        b = detector.notes_dir / "b.md"
        a.write_text("a", encoding="utf-8")
        b.write_text("b", encoding="utf-8")

        assert detector.handle_write(a) is not None
        assert detector.handle_write(b) is not None
        detector.close()

    def test_content_read_at_emission(self, notes_dir: Path) -> None:
        """The mutation carries the text on disk when the event is handled."""
        detector = ChangeDetector(notes_dir, clock=FakeClock())
        path = detector.notes_dir / "projects" / "plan.md"
        path.write_text("# Plan\nstep 1", encoding="utf-8")

        mutation = detector.handle_write(path)
        detector.close()

        assert mutation is not None
        assert mutation.path == "projects/plan.md"
        assert mutation.title == "Plan"
        assert mutation.checksum == checksum("# Plan\nstep 1")


class TestFiltering:
    """Tests for ignored events."""

    def test_other_suffix_ignored(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        path = detector.notes_dir / "image.png"
        path.write_bytes(b"\x89PNG")
        assert detector.handle_write(path) is None
        detector.close()

    def test_unreadable_file_skipped(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        assert detector.handle_write(detector.notes_dir / "vanished.md") is None
        detector.close()

    def test_invalid_utf8_skipped(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        path = detector.notes_dir / "binary.md"
        path.write_bytes(b"\xff\xfe\xfa")
        assert detector.handle_write(path) is None
        detector.close()

    def test_no_emission_after_close(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        path = detector.notes_dir / "a.md"
        path.write_text("x", encoding="utf-8")
        detector.close()

        assert detector.handle_write(path) is None
        assert list(detector.watch()) == []


class TestReadAll:
    """Tests for read_all()."""

    def test_reads_every_note(self, notes_dir: Path) -> None:
        (notes_dir / "b.md").write_text("# B", encoding="utf-8")
        (notes_dir / "projects" / "a.md").write_text("# A", encoding="utf-8")
        (notes_dir / "skip.txt").write_text("nope", encoding="utf-8")
        (notes_dir / "bad.md").write_bytes(b"\xff\xfe")

        with ChangeDetector(notes_dir) as detector:
            mutations = detector.read_all()

        assert sorted(m.path for m in mutations) == ["b.md", "projects/a.md"]
        assert {m.action for m in mutations} == {MutationAction.UPDATE}


class TestWatch:
    """Tests against real file system events."""

    def test_detects_write(self, notes_dir: Path) -> None:
        path = notes_dir / "live.md"
        path.write_text("", encoding="utf-8")
        received: list[Mutation] = []

        detector = ChangeDetector(notes_dir)
        detector.start()
        def consume() -> None:
            for mutation in detector.watch():
                received.append(mutation)

        consumer = threading.Thread(target=consume)
        consumer.start()

        path.write_text("# Live\nhello", encoding="utf-8")
        deadline = time.monotonic() + 5.0
        while not received and time.monotonic() < deadline:
            time.sleep(0.05)

        detector.close()
        consumer.join(timeout=5.0)

        assert received
        assert received[0].path == "live.md"

    def test_close_is_idempotent(self, notes_dir: Path) -> None:
        detector = ChangeDetector(notes_dir)
        detector.start()
        detector.close()
        detector.close()
        assert detector.is_closed

