"""Server database using SQLAlchemy with SQLite.

This module provides:
- Note storage keyed by path (upsert, tombstones, restore)
- Change feed queries for pulls
- Sync audit log
- Session-based authentication
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from notesync.server.models import Base, Note, SyncLog, as_utc, utcnow
from notesync.server.models import Session as SessionModel

if TYPE_CHECKING:
    from sqlalchemy import Engine

SESSION_LIFETIME = timedelta(days=30)


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: Raw token string.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def to_utc(value: datetime) -> datetime:
    """Normalize a client-supplied datetime to aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Database:
    """SQLAlchemy database for notes, audit log and sessions.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    Every method opens its own short session; returned objects are detached.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        """Path of the SQLite file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Sync operations ===

    def upsert_note(self, path: str, title: str, content: str, checksum: str) -> Note:
        """Insert a note or fully replace the one stored at ``path``.

        On conflict the title, content and checksum are overwritten, the
        tombstone is cleared and updated_at is refreshed (last write wins).

        Args:
            path: Note path (identity key).
            title: Note title.
            content: Raw note text.
            checksum: Content hash computed by the writer.

        Returns:
            The stored note.

        Raises:
            SQLAlchemyError: If the storage operation fails.
        """
        now = utcnow()
        stmt = sqlite_insert(Note).values(
            id=str(uuid.uuid4()),
            path=path,
            title=title,
            content=content,
            checksum=checksum,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Note.path],
            set_={
                "title": title,
                "content": content,
                "checksum": checksum,
                "deleted_at": None,
                "updated_at": now,
            },
        )
        with self._session() as session:
            session.execute(stmt)
            session.commit()
            note = session.execute(select(Note).where(Note.path == path)).scalar_one()
            session.expunge(note)
            return note

    def tombstone_note(self, path: str) -> Note | None:
        """Soft-delete the note stored at ``path``.

        Sets deleted_at (and updated_at, so watermark pulls observe the
        deletion). Title, content and checksum are left untouched.

        Args:
            path: Note path.

        Returns:
            The tombstoned note, or None if no note has this path.
        """
        with self._session() as session:
            note = session.execute(select(Note).where(Note.path == path)).scalar_one_or_none()
            if note is None:
                return None
            now = utcnow()
            note.deleted_at = now
            note.updated_at = now
            session.commit()
            session.refresh(note)
            session.expunge(note)
            return note

    def list_changes(self, since: datetime | None = None) -> list[Note]:
        """List notes for a pull.

        Args:
            since: Optional watermark. Without it only live notes are
                returned; with it every note updated strictly after the
                watermark is returned, tombstones included.

        Returns:
            Notes ordered by updated_at.
        """
        with self._session() as session:
            if since is None:
                stmt = select(Note).where(Note.deleted_at.is_(None))
            else:
                stmt = select(Note).where(Note.updated_at > to_utc(since))
            stmt = stmt.order_by(Note.updated_at)
            notes = list(session.execute(stmt).scalars().all())
            for note in notes:
                session.expunge(note)
            return notes

    def add_sync_logs(self, entries: list[tuple[str | None, str]], client_id: str) -> None:
        """Append audit entries in one commit.

        Args:
            entries: (note_id, action) pairs.
            client_id: Client that performed the actions.
        """
        with self._session() as session:
            for note_id, action in entries:
                session.add(SyncLog(note_id=note_id, action=action, client_id=client_id))
            session.commit()

    def list_sync_log(self) -> list[SyncLog]:
        """List audit entries, oldest first."""
        with self._session() as session:
            stmt = select(SyncLog).order_by(SyncLog.id)
            entries = list(session.execute(stmt).scalars().all())
            for entry in entries:
                session.expunge(entry)
            return entries

    # === Note operations (browser API) ===

    def get_note(self, note_id: str) -> Note | None:
        """Get a note by ID (tombstoned notes included)."""
        with self._session() as session:
            note = session.get(Note, note_id)
            if note:
                session.expunge(note)
            return note

    def get_note_by_path(self, path: str) -> Note | None:
        """Get a note by path (tombstoned notes included)."""
        with self._session() as session:
            note = session.execute(select(Note).where(Note.path == path)).scalar_one_or_none()
            if note:
                session.expunge(note)
            return note

    def list_notes(self) -> list[Note]:
        """List live notes ordered by updated_at."""
        return self.list_changes()

    def create_note(self, path: str, title: str, content: str, checksum: str) -> Note:
        """Create a new note.

        Raises:
            IntegrityError: If a note already uses this path.
        """
        with self._session() as session:
            note = Note(path=path, title=title, content=content, checksum=checksum)
            session.add(note)
            session.commit()
            session.refresh(note)
            session.expunge(note)
            return note

    def update_note(
        self,
        note_id: str,
        checksum: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Note | None:
        """Update title and/or content of a note.

        Args:
            note_id: Note ID.
            checksum: Checksum of the resulting content.
            title: New title (unchanged if None).
            content: New content (unchanged if None).

        Returns:
            Updated note, or None if not found.
        """
        with self._session() as session:
            note = session.get(Note, note_id)
            if note is None:
                return None
            if title is not None:
                note.title = title
            if content is not None:
                note.content = content
            note.checksum = checksum
            note.updated_at = utcnow()
            session.commit()
            session.refresh(note)
            session.expunge(note)
            return note

    def delete_note(self, note_id: str) -> Note | None:
        """Soft-delete a note by ID.

        Returns:
            The tombstoned note, or None if not found.
        """
        note = self.get_note(note_id)
        if note is None:
            return None
        return self.tombstone_note(note.path)

    def restore_note(self, note_id: str) -> Note | None:
        """Clear the tombstone of a note.

        Returns:
            The restored note, or None if not found.
        """
        with self._session() as session:
            note = session.get(Note, note_id)
            if note is None:
                return None
            note.deleted_at = None
            note.updated_at = utcnow()
            session.commit()
            session.refresh(note)
            session.expunge(note)
            return note

    # === Session operations ===

    def create_session(
        self,
        expires_in: timedelta = SESSION_LIFETIME,
        user_agent: str | None = None,
    ) -> tuple[str, SessionModel]:
        """Create a new auth session.

        Args:
            expires_in: Session expiration duration.
            user_agent: Client user agent.

        Returns:
            Tuple of (raw_session_token, Session object).
        """
        raw_token = secrets.token_urlsafe(32)
        now = utcnow()

        with self._session() as session:
            sess = SessionModel(
                token_hash=hash_token(raw_token),
                created_at=now,
                expires_at=now + expires_in,
                user_agent=user_agent,
            )
            session.add(sess)
            session.commit()
            session.refresh(sess)
            session.expunge(sess)
            return raw_token, sess

    def validate_session(self, raw_token: str) -> SessionModel | None:
        """Validate a session token.

        Args:
            raw_token: Raw session token.

        Returns:
            Session if valid, None otherwise.
        """
        with self._session() as session:
            stmt = select(SessionModel).where(SessionModel.token_hash == hash_token(raw_token))
            sess = session.execute(stmt).scalar_one_or_none()
            if sess is None:
                return None

            if as_utc(sess.expires_at) < utcnow():
                return None

            session.expunge(sess)
            return sess

    def delete_session(self, raw_token: str) -> None:
        """Delete a session (logout).

        Args:
            raw_token: Raw session token.
        """
        with self._session() as session:
            session.execute(
                delete(SessionModel).where(SessionModel.token_hash == hash_token(raw_token))
            )
            session.commit()

    def cleanup_expired_sessions(self) -> int:
        """Delete all expired sessions.

        Returns:
            Number of sessions deleted.
        """
        with self._session() as session:
            stmt = select(SessionModel)
            now = utcnow()
            expired = [
                sess
                for sess in session.execute(stmt).scalars().all()
                if as_utc(sess.expires_at) < now
            ]
            for sess in expired:
                session.delete(sess)
            session.commit()
            return len(expired)
