"""Workstation sync flows.

This module provides:
- push_all: push every note on disk in one batch
- pull_all: fetch every live note and write it to disk
- watch_and_push: push each detected change as its own batch
- create_local_note: write a new note file for quick capture

Every flow expects an authenticated SyncClient.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from notesync.client.api import APIError, AuthenticationError, PushResult, SyncClient
from notesync.client.pull import ApplyResult, apply_pull
from notesync.client.watcher import ChangeDetector
from notesync.core.notes import NOTE_SUFFIX, Mutation, generate_filename, slugify

logger = logging.getLogger(__name__)

EVENT_DELAY_S = 0.1


def push_all(client: SyncClient, notes_dir: Path) -> PushResult:
    """Push every note currently on disk as one batch.

    Returns:
        PushResult of the batch.

    Raises:
        APIError: On network or protocol errors.
        IncompleteSyncError: If the server did not accept every note.
    """
    detector = ChangeDetector(notes_dir)
    try:
        mutations = detector.read_all()
    finally:
        detector.close()

    logger.info("Pushing %d notes from %s", len(mutations), notes_dir)
    result = client.push(mutations)
    result.raise_for_incomplete(len(mutations))
    logger.info("Successfully synced all %d notes", len(mutations))
    return result


def pull_all(client: SyncClient, notes_dir: Path) -> ApplyResult:
    """Fetch every live note and write it under notes_dir.

    Raises:
        APIError: On network or protocol errors.
    """
    pulled = client.pull()
    if not pulled.changes:
        logger.info("No changes to pull")
        return ApplyResult()

    result = apply_pull(notes_dir, pulled.changes)
    logger.info(
        "Pulled %d notes: %d written, %d failed",
        len(pulled.changes),
        len(result.written),
        len(result.failed),
    )
    return result


def push_one(client: SyncClient, mutation: Mutation) -> bool:
    """Push a single mutation, logging instead of raising on failure.

    Returns:
        True if the server accepted the mutation.

    Raises:
        AuthenticationError: If the session is no longer valid.
    """
    try:
        result = client.push([mutation])
    except AuthenticationError:
        raise
    except APIError as e:
        logger.error("Error syncing %s: %s", mutation.path, e)
        return False

    if not result.is_complete(1):
        logger.warning("Server did not accept %s", mutation.path)
        return False
    logger.info("Synced: %s", mutation.path)
    return True


def watch_and_push(
    client: SyncClient,
    detector: ChangeDetector,
    initial_pull: bool = False,
    on_synced: Callable[[Mutation, bool], None] | None = None,
    delay_s: float = EVENT_DELAY_S,
) -> None:
    """Push detected changes one at a time until the detector is closed.

    Args:
        client: Authenticated sync client.
        detector: Change detector for the notes folder.
        initial_pull: Pull all notes once before watching.
        on_synced: Optional callback(mutation, accepted) after each push.
        delay_s: Pause after each event.

    Raises:
        AuthenticationError: If the session is no longer valid.
    """
    if initial_pull:
        try:
            pull_all(client, detector.notes_dir)
        except AuthenticationError:
            raise
        except APIError as e:
            logger.error("Initial pull failed: %s", e)

    logger.info("Watching for changes in %s", detector.notes_dir)
    for mutation in detector.watch():
        logger.debug("Detected change: %s", mutation.path)
        accepted = push_one(client, mutation)
        if on_synced is not None:
            on_synced(mutation, accepted)
        time.sleep(delay_s)


def create_local_note(
    notes_dir: Path,
    title: str | None,
    content: str,
    now: datetime | None = None,
) -> Path:
    """Write a new note file, never overwriting an existing one.

    The file is named after the title, or after the current time when
    there is no title. The note starts with a heading holding the title.

    Returns:
        Path of the created file.

    Raises:
        OSError: If the file cannot be written.
    """
    now = now or datetime.now()
    if title and title != "Untitled":
        filename = slugify(title) + NOTE_SUFFIX
    else:
        filename = generate_filename(now)
        title = filename[: -len(NOTE_SUFFIX)]

    path = notes_dir / filename
    if path.exists():
        path = notes_dir / f"{path.stem}-{now.strftime('%Y%m%d-%H%M')}{NOTE_SUFFIX}"

    notes_dir.mkdir(parents=True, exist_ok=True)
    path.write_text(f"# {title}\n\n{content}", encoding="utf-8")
    logger.debug("Created %s", path)
    return path
