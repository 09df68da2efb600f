"""Tests for note content helpers."""

from __future__ import annotations

from datetime import datetime

import pytest

from notesync.core.notes import (
    Mutation,
    checksum,
    extract_title,
    generate_filename,
    limit_title,
    process_note,
    slugify,
)
from notesync.core.types import MutationAction


class TestChecksum:
    """Tests for checksum()."""

    def test_deterministic(self) -> None:
        """Same content should always give the same checksum."""
        assert checksum("# A\nhello") == checksum("# A\nhello")

    def test_distinct_inputs(self) -> None:
        """Different content should give different checksums."""
        assert checksum("hello") != checksum("hello ")

    def test_md5_hex(self) -> None:
        """Checksum is the MD5 hex digest of the UTF-8 bytes."""
        assert checksum("") == "d41d8cd98f00b204e9800998ecf8427e"
        assert len(checksum("é")) == 32


class TestExtractTitle:
    """Tests for extract_title()."""

    def test_heading(self) -> None:
        """First heading is used as title."""
        assert extract_title("# Shopping list\n- milk", "a.md") == "Shopping list"

    def test_deeper_heading(self) -> None:
        """All leading '#' characters are stripped."""
        assert extract_title("### Deep\ntext", "a.md") == "Deep"

    def test_leading_blank_lines(self) -> None:
        """Blank lines before the heading are skipped."""
        assert extract_title("\n\n  # Title  \nbody", "a.md") == "Title"

    def test_body_before_heading_uses_filename(self) -> None:
        """A heading after body text does not count."""
        assert extract_title("body\n# Late", "my-note_file.md") == "My Note File"

    def test_no_heading_uses_filename(self) -> None:
        """Filename fallback turns dashes and underscores into words."""
        assert extract_title("", "projects/weekly-review.md") == "Weekly Review"

    def test_empty_heading_is_skipped(self) -> None:
        """A bare '#' is not a title."""
        assert extract_title("#\n# Real", "a.md") == "Real"

    def test_untitled(self) -> None:
        """Falls back to 'Untitled' when nothing else is available."""
        assert extract_title("", ".md") == "Untitled"

    def test_long_heading_is_limited(self) -> None:
        """Titles are cut to 50 characters."""
        title = extract_title("# " + "x" * 80, "a.md")
        assert len(title) == 50
        assert title.endswith("...")


class TestLimitTitle:
    """Tests for limit_title()."""

    def test_short_title_unchanged(self) -> None:
        assert limit_title("x" * 50) == "x" * 50

    def test_long_title_cut(self) -> None:
        assert limit_title("x" * 51) == "x" * 47 + "..."


class TestFilenames:
    """Tests for generate_filename() and slugify()."""

    def test_generate_filename(self) -> None:
        assert generate_filename(datetime(2025, 3, 4, 5, 6)) == "2025-03-04-0506.md"

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Hello World", "hello-world"),
            ("  Padded   Title ", "padded-title"),
            ("one", "one"),
        ],
    )
    def test_slugify(self, title: str, expected: str) -> None:
        assert slugify(title) == expected


class TestMutation:
    """Tests for Mutation and process_note()."""

    def test_process_note(self) -> None:
        """Title and checksum are derived from the content."""
        mutation = process_note("a.md", "# A\nhello", MutationAction.CREATE)
        assert mutation.path == "a.md"
        assert mutation.title == "A"
        assert mutation.content == "# A\nhello"
        assert mutation.checksum == checksum("# A\nhello")
        assert mutation.action == MutationAction.CREATE

    def test_to_dict_wire_format(self) -> None:
        """Action is serialized as its string value."""
        mutation = process_note("a.md", "x", MutationAction.UPDATE)
        data = mutation.to_dict()
        assert data["action"] == "update"
        assert set(data) == {"path", "title", "content", "checksum", "action"}

    def test_from_dict_delete_without_content(self) -> None:
        """Delete mutations may omit title, content and checksum."""
        mutation = Mutation.from_dict({"path": "gone.md", "action": "delete"})
        assert mutation.action == MutationAction.DELETE
        assert mutation.content == ""
        assert mutation.title == ""
