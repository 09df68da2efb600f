"""Optimistic note store for interactive editing.

This module provides:
- LocalNote: a note as shown to the user, with its sync status
- NoteStore: applies edits locally at once and syncs them in the background
- StoreEvent: notification sent to subscribers (created, deleted, failed)

Edits are debounced per note: every edit restarts a 500ms timer, and
only when it fires is a command queued. A single worker thread sends
queued commands one at a time, so exactly one request is in flight.
Failed commands are not retried; the next edit queues the note again.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from notesync.client.api import APIError, ServerNote
from notesync.client.queue import MutationQueue, QueueClosedError, SyncCommand
from notesync.core.notes import NOTE_SUFFIX, slugify
from notesync.core.types import MutationAction, SyncStatus

logger = logging.getLogger(__name__)

DEBOUNCE_S = 0.5
TEMP_ID_PREFIX = "temp-"


class NotesTransport(Protocol):
    """Per-note server operations used by the store.

    NotesClient implements this against the HTTP API.
    """

    def create_note(self, title: str, content: str, path: str) -> ServerNote: ...

    def update_note(self, note_id: str, title: str, content: str) -> ServerNote: ...

    def delete_note(self, note_id: str) -> None: ...


@dataclass
class LocalNote:
    """A note held by the store."""

    id: str
    path: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    status: SyncStatus = SyncStatus.SYNCED
    temp_id: str | None = None  # kept after the server assigns an id
    error: str | None = None

    @property
    def is_temporary(self) -> bool:
        """True until the server has confirmed the note's creation."""
        return self.id.startswith(TEMP_ID_PREFIX)

    @property
    def key(self) -> str:
        """Stable identity that survives the temp id -> server id swap."""
        return self.temp_id or self.id

    @classmethod
    def from_server(cls, note: ServerNote, temp_id: str | None = None) -> LocalNote:
        """Create a synced local note from a server note."""
        return cls(
            id=note.id,
            path=note.path,
            title=note.title,
            content=note.content,
            created_at=note.created_at,
            updated_at=note.updated_at,
            temp_id=temp_id,
        )


@dataclass(frozen=True)
class StoreEvent:
    """Notification sent to store subscribers."""

    kind: str  # "created", "deleted" or "failed"
    note_id: str
    title: str = ""
    message: str | None = None


def _now() -> datetime:
    return datetime.now(UTC)


def _sort_key(note: LocalNote) -> datetime:
    return note.updated_at


class NoteStore:
    """Optimistic, debounced note store.

    Usage:
        with NotesClient(config) as client:
            client.authenticate()
            store = NoteStore.open(client, snapshot_path)
            store.reconcile(client.list_notes())
            note = store.add_note("Groceries")
            store.update_note(note.id, content="milk")
            ...
            store.close()
    """

    def __init__(
        self,
        transport: NotesTransport,
        notes: list[LocalNote] | None = None,
        snapshot_path: Path | None = None,
        debounce_s: float = DEBOUNCE_S,
    ) -> None:
        """Initialize the store and start its worker thread.

        Args:
            transport: Server operations for created, updated and deleted notes.
            notes: Starting notes (e.g. from the snapshot).
            snapshot_path: Where reconciled server notes are cached.
            debounce_s: Quiet period after the last edit before syncing.
        """
        self._transport = transport
        self._notes: list[LocalNote] = sorted(notes or [], key=_sort_key, reverse=True)
        self._snapshot_path = snapshot_path
        self._debounce_s = debounce_s

        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._queue = MutationQueue()
        self._timers: dict[str, threading.Timer] = {}  # note key -> pending timer
        self._in_flight: SyncCommand | None = None
        self._deleting: dict[str, str] = {}  # note id -> title, for the deleted event
        self._listeners: list[Callable[[StoreEvent], None]] = []
        self._temp_ids = itertools.count(1)
        self._closed = False

        self._worker = threading.Thread(target=self._run, name="NoteStoreWorker", daemon=True)
        self._worker.start()

    @classmethod
    def open(
        cls,
        transport: NotesTransport,
        snapshot_path: Path,
        debounce_s: float = DEBOUNCE_S,
    ) -> NoteStore:
        """Create a store starting from the cached snapshot, if any."""
        notes = [LocalNote.from_server(n) for n in load_snapshot(snapshot_path)]
        logger.debug("Loaded %d notes from snapshot %s", len(notes), snapshot_path)
        return cls(transport, notes=notes, snapshot_path=snapshot_path, debounce_s=debounce_s)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def notes(self) -> list[LocalNote]:
        """Visible notes, most recently updated first."""
        with self._lock:
            return list(self._notes)

    def get_note(self, note_id: str) -> LocalNote | None:
        """Look up a note by server id or temporary id."""
        with self._lock:
            return self._find(note_id)

    @property
    def sync_status(self) -> SyncStatus:
        """Aggregate status of the whole store."""
        with self._lock:
            statuses = {note.status for note in self._notes}
            if SyncStatus.ERROR in statuses:
                return SyncStatus.ERROR
            if (
                SyncStatus.PENDING in statuses
                or SyncStatus.SYNCING in statuses
                or self._in_flight is not None
            ):
                return SyncStatus.SYNCING
            return SyncStatus.SYNCED

    def subscribe(self, listener: Callable[[StoreEvent], None]) -> Callable[[], None]:
        """Register a listener for store events.

        Returns:
            Function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_note(self, title: str = "Untitled", content: str = "") -> LocalNote:
        """Create a local note with a temporary id.

        The note is not sent to the server until it is first updated.
        """
        now = _now()
        millis = int(time.time() * 1000)
        with self._lock:
            self._check_open()
            note = LocalNote(
                id=f"{TEMP_ID_PREFIX}{next(self._temp_ids)}",
                path=f"{slugify(title) or 'untitled'}-{millis}{NOTE_SUFFIX}",
                title=title,
                content=content,
                created_at=now,
                updated_at=now,
                status=SyncStatus.PENDING,
            )
            self._notes.insert(0, note)
        logger.debug("Added local note %s", note.id)
        return note

    def update_note(
        self,
        note_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> LocalNote:
        """Apply an edit immediately and schedule it for sync.

        Raises:
            KeyError: If the note does not exist.
        """
        with self._lock:
            self._check_open()
            note = self._find(note_id)
            if note is None:
                raise KeyError(f"Unknown note: {note_id}")

            if title is not None:
                note.title = title
            if content is not None:
                note.content = content
            note.updated_at = _now()
            note.status = SyncStatus.PENDING
            note.error = None
            self._notes.sort(key=_sort_key, reverse=True)
            self._restart_timer(note.key)
            return note

    def delete_note(self, note_id: str) -> bool:
        """Remove a note from the visible list and schedule its deletion.

        Notes the server never confirmed are dropped without a request.

        Returns:
            True if the note existed.
        """
        with self._lock:
            self._check_open()
            note = self._find(note_id)
            if note is None:
                return False

            self._notes.remove(note)
            self._cancel_timer(note.key)

            if note.is_temporary:
                self._queue.remove(note.id)
                self._idle.notify_all()
                event = StoreEvent("deleted", note.id, note.title)
            else:
                self._deleting[note.id] = note.title
                self._queue.put(SyncCommand(MutationAction.DELETE, note.id))
                event = None

        if event is not None:
            self._emit(event)
        return True

    def reconcile(self, server_notes: list[ServerNote]) -> None:
        """Merge a fresh server listing into the store.

        Notes with unsent or in-flight edits are kept as they are; every
        other note takes the server's state. An empty listing is treated
        as being offline and leaves the store unchanged.
        """
        if not server_notes:
            logger.debug("Empty server listing, keeping local state")
            return

        with self._lock:
            kept = [
                n for n in self._notes if n.status in (SyncStatus.PENDING, SyncStatus.SYNCING)
            ]
            kept_ids = {n.id for n in kept}
            kept_paths = {n.path for n in kept}
            merged = kept + [
                LocalNote.from_server(s)
                for s in server_notes
                if s.id not in kept_ids
                and s.path not in kept_paths
                and s.id not in self._deleting
                and s.deleted_at is None
            ]
            merged.sort(key=_sort_key, reverse=True)
            self._notes = merged

        logger.info("Reconciled %d server notes, kept %d local", len(server_notes), len(kept))
        if self._snapshot_path is not None:
            save_snapshot(self._snapshot_path, server_notes)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no timer, queued command or request is pending.

        Returns:
            True if the store became idle before the timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._timers or self._queue.unfinished_tasks or self._in_flight is not None:
                if deadline is None:
                    self._idle.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._idle.wait(timeout=remaining)
            return True

    def close(self, timeout: float = 5.0) -> None:
        """Cancel pending timers, drain the queue and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
            self._idle.notify_all()

        for timer in timers:
            timer.cancel()
        self._queue.close()
        self._worker.join(timeout=timeout)
        logger.debug("Note store closed")

    def __enter__(self) -> NoteStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Note store is closed")

    def _find(self, key: str) -> LocalNote | None:
        for note in self._notes:
            if note.id == key or note.temp_id == key:
                return note
        return None

    def _restart_timer(self, key: str) -> None:
        self._cancel_timer(key)
        timer = threading.Timer(self._debounce_s, self._on_debounce, args=(key,))
        timer.daemon = True
        self._timers[key] = timer
        timer.start()

    def _cancel_timer(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def _on_debounce(self, key: str) -> None:
        """Queue a command once a note has been quiet for the debounce period."""
        with self._lock:
            # A replaced timer may still fire if it was already running
            if self._timers.get(key) is not threading.current_thread():
                return
            del self._timers[key]

            note = self._find(key)
            if note is not None and not self._closed:
                action = MutationAction.CREATE if note.is_temporary else MutationAction.UPDATE
                self._queue.put(SyncCommand(action, note.id))
            self._idle.notify_all()

    def _run(self) -> None:
        """Worker loop: send queued commands one at a time."""
        logger.debug("Note store worker started")
        while True:
            try:
                command = self._queue.get()
            except QueueClosedError:
                break
            if command is None:
                continue

            with self._lock:
                self._in_flight = command
            try:
                self._execute(command)
            finally:
                self._queue.task_done()
                with self._idle:
                    self._in_flight = None
                    self._idle.notify_all()
        logger.debug("Note store worker stopped")

    def _execute(self, command: SyncCommand) -> None:
        """Resolve a command against current state and send it."""
        action = command.action
        with self._lock:
            note = None
            if action is not MutationAction.DELETE:
                note = self._find(command.note_key)
                if note is None:
                    logger.debug("Dropping %s for missing note %s", action.value, command.note_key)
                    return
                if action is MutationAction.CREATE and not note.is_temporary:
                    action = MutationAction.UPDATE
                note.status = SyncStatus.SYNCING
                title, content, path, note_id = note.title, note.content, note.path, note.id

        try:
            if action is MutationAction.DELETE:
                self._transport.delete_note(command.note_key)
                self._confirm_delete(command.note_key)
            elif action is MutationAction.CREATE:
                server_note = self._transport.create_note(title, content, path)
                self._confirm_create(note_id, server_note)
            else:
                self._transport.update_note(note_id, title, content)
                self._confirm_update(note_id)
        except APIError as e:
            logger.warning("Sync of %s failed: %s", command.note_key, e)
            self._fail(command.note_key, str(e))
        except Exception as e:
            logger.exception("Unexpected error syncing %s", command.note_key)
            self._fail(command.note_key, str(e))

    def _confirm_create(self, temp_id: str, server_note: ServerNote) -> None:
        with self._lock:
            note = self._find(temp_id)
            if note is None:
                # Deleted locally while the create was in flight
                logger.debug("Note %s deleted during create, deleting %s", temp_id, server_note.id)
                self._queue.put(SyncCommand(MutationAction.DELETE, server_note.id))
                return

            # A reload may already list the server copy
            self._notes = [
                n for n in self._notes if n is note or n.id != server_note.id
            ]
            index = self._notes.index(note)
            if note.status is SyncStatus.SYNCING:
                self._notes[index] = LocalNote.from_server(server_note, temp_id=temp_id)
            else:
                # Edited again during the request: keep the newer local text
                note.id = server_note.id
                note.path = server_note.path
                note.created_at = server_note.created_at
                note.temp_id = temp_id
            self._queue.rekey(temp_id, server_note.id)

        logger.info("Created note %s (%s)", server_note.id, server_note.path)
        self._emit(StoreEvent("created", server_note.id, server_note.title))

    def _confirm_update(self, note_id: str) -> None:
        with self._lock:
            note = self._find(note_id)
            if note is not None and note.status is SyncStatus.SYNCING:
                note.status = SyncStatus.SYNCED
        logger.debug("Updated note %s", note_id)

    def _confirm_delete(self, note_id: str) -> None:
        with self._lock:
            title = self._deleting.pop(note_id, None)
        logger.info("Deleted note %s", note_id)
        if title is not None:
            self._emit(StoreEvent("deleted", note_id, title))

    def _fail(self, key: str, message: str) -> None:
        with self._lock:
            self._deleting.pop(key, None)
            note = self._find(key)
            title = note.title if note else ""
            if note is not None and note.status is SyncStatus.SYNCING:
                note.status = SyncStatus.ERROR
                note.error = message
        self._emit(StoreEvent("failed", key, title, message))

    def _emit(self, event: StoreEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Store listener failed on %s event", event.kind)


def load_snapshot(path: Path) -> list[ServerNote]:
    """Read cached server notes; returns an empty list on any failure."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return [ServerNote.from_dict(item) for item in data]
    except FileNotFoundError:
        return []
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Ignoring unreadable snapshot %s: %s", path, e)
        return []


def save_snapshot(path: Path, notes: list[ServerNote]) -> None:
    """Cache server notes; failures are logged, never raised."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps([n.to_dict() for n in notes], indent=2), encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to write snapshot %s: %s", path, e)
