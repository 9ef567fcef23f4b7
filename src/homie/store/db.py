"""
SQLite storage for homie.

This module owns the clipboard history. Every captured payload becomes one
row keyed by its SHA256 hash; capturing the same content again only moves
that row's timestamp forward.

Design Principles:
    - Dedup-on-write: at most one row per content hash
    - Atomic: lookup-then-insert-or-update runs in one IMMEDIATE transaction
    - Concurrent: WAL journaling lets the daemon write while a history
      browser reads from another process
    - Bounded waits: busy_timeout turns lock contention into a short wait

Tables:
    - schema_version: Applied schema versions
    - clipboard_items: One row per distinct clipboard payload
"""

import hashlib
import logging
import sqlite3
import threading
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from homie.errors import (
    StorageConnectionError,
    StorageDeleteError,
    StorageMigrationError,
    StorageReadError,
    StorageWriteError,
)
from homie.schema import HistoryEntry

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

# SQLite pragmas
BUSY_TIMEOUT_MS = 5000
JOURNAL_MODE = "WAL"
SYNCHRONOUS = "NORMAL"

# Fixed width keeps lexical order equal to chronological order
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Clipboard history: one row per distinct payload
CREATE TABLE IF NOT EXISTS clipboard_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    clip_text TEXT NOT NULL,
    text_hash TEXT NOT NULL,
    time_stamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_time_stamp ON clipboard_items(time_stamp);
CREATE INDEX IF NOT EXISTS idx_text_hash ON clipboard_items(text_hash);
"""

Clock = Callable[[], datetime]


def compute_hash(payload: bytes | str) -> str:
    """Compute the SHA256 hex digest used as the dedup key."""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def utc_now() -> datetime:
    """Get the current UTC time."""
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Format a datetime for storage, normalized to UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    # Four-digit years keep lexical order equal to chronological order
    return value.astimezone(UTC).replace(tzinfo=None).isoformat(sep=" ", timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def _decode(payload: bytes | str) -> str:
    if isinstance(payload, str):
        return payload
    return payload.decode("utf-8", errors="replace")


class HistoryDB:
    """
    SQLite database holding the clipboard history.

    One connection is shared across threads and serialized with a lock, so
    the capture loop, the retention policy and the history loader can all
    use the same instance.

    Usage:
        db = HistoryDB("homie.db")
        db.write(b"copied text")
        entries = db.read(0, 20)
        db.close()

    Or use as context manager:
        with HistoryDB("homie.db") as db:
            ...
    """

    def __init__(self, db_path: str | Path, clock: Clock = utc_now) -> None:
        """
        Open the database and migrate the schema.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
                     Will be created if it doesn't exist.
            clock: Source of "now" for timestamps and TTL cut-offs
        """
        self.db_path = str(db_path)
        self._clock = clock
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish the connection and apply pragmas."""
        try:
            # Autocommit mode; transactions are opened explicitly
            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,
                timeout=BUSY_TIMEOUT_MS / 1000,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
            self._conn.execute(f"PRAGMA journal_mode = {JOURNAL_MODE}")
            self._conn.execute(f"PRAGMA synchronous = {SYNCHRONOUS}")
        except sqlite3.Error as e:
            self._release()
            raise StorageConnectionError(
                db_path=self.db_path,
                operation="connect",
                underlying_error=str(e),
                message=f"Failed to connect to database at {self.db_path!r}: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Create tables and record the schema version if needed."""
        try:
            self._conn.executescript(CREATE_TABLES_SQL)
            with self.transaction():
                row = self._conn.execute(
                    "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
                ).fetchone()
                if row is None:
                    self._conn.execute(
                        "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                        (SCHEMA_VERSION, format_timestamp(self._clock())),
                    )
        except sqlite3.Error as e:
            self._release()
            raise StorageMigrationError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    def _connection(self, operation: str) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageConnectionError(
                db_path=self.db_path,
                operation=operation,
                message="Database is closed",
            )
        return self._conn

    def _release(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Run the enclosed statements in one IMMEDIATE transaction."""
        conn = self._connection("transaction")
        with self._lock:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def close(self) -> None:
        """Close the database connection. Safe to call more than once."""
        with self._lock:
            self._release()

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._conn is None

    def __enter__(self) -> "HistoryDB":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    # =========================================================================
    # Write Operations
    # =========================================================================

    def write(self, payload: bytes | str) -> None:
        """
        Insert a clipboard item or bump its timestamp if already present.

        Args:
            payload: The raw clipboard content (may be empty)

        Raises:
            StorageWriteError: If the lookup, insert or update fails
        """
        text_hash = compute_hash(payload)
        now = format_timestamp(self._clock())
        conn = self._connection("write")

        try:
            with self.transaction():
                row = conn.execute(
                    "SELECT id, time_stamp FROM clipboard_items WHERE text_hash = ? LIMIT 1",
                    (text_hash,),
                ).fetchone()
                if row is None:
                    conn.execute(
                        """
                        INSERT INTO clipboard_items (clip_text, text_hash, time_stamp)
                        VALUES (?, ?, ?)
                        """,
                        (_decode(payload), text_hash, now),
                    )
                else:
                    # Never move a timestamp backwards
                    conn.execute(
                        "UPDATE clipboard_items SET time_stamp = ? WHERE id = ?",
                        (max(now, row["time_stamp"]), row["id"]),
                    )
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="write",
                underlying_error=str(e),
                message=(
                    f"Failed to write clipboard item "
                    f"(hash={text_hash}, length={len(payload)}): {e}"
                ),
            ) from e

    # =========================================================================
    # Read Operations
    # =========================================================================

    def read(self, offset: int, limit: int) -> list[HistoryEntry]:
        """
        Read a page of history, most recent first.

        Args:
            offset: Number of entries to skip
            limit: Maximum number of entries to return

        Returns:
            List of HistoryEntry objects, empty past the end or when limit is 0

        Raises:
            ValueError: If offset or limit is negative
            StorageReadError: If the query fails or a row cannot be decoded
        """
        if offset < 0 or limit < 0:
            raise ValueError(f"offset and limit must be non-negative (offset={offset}, limit={limit})")
        if limit == 0:
            return []

        conn = self._connection("read")
        try:
            with self._lock:
                rows = conn.execute(
                    """
                    SELECT id, clip_text, text_hash, time_stamp
                    FROM clipboard_items
                    ORDER BY time_stamp DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (limit, offset),
                ).fetchall()
            return [
                HistoryEntry(
                    id=row["id"],
                    text=row["clip_text"],
                    content_hash=row["text_hash"],
                    captured_at=parse_timestamp(row["time_stamp"]),
                )
                for row in rows
            ]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="read",
                underlying_error=str(e),
                message=f"Failed to read clipboard items (offset={offset}, limit={limit}): {e}",
            ) from e
        except (ValueError, ValidationError) as e:
            # time_stamp not in TIMESTAMP_FORMAT
            raise StorageReadError(
                operation="read",
                underlying_error=str(e),
                message=f"Unreadable clipboard item (offset={offset}, limit={limit}): {e}",
                suggestion="Run 'homie clear' to reset a history written by another program",
            ) from e

    def count(self) -> int:
        """
        Count all history entries.

        Raises:
            StorageReadError: If the query fails
        """
        conn = self._connection("count")
        try:
            with self._lock:
                row = conn.execute("SELECT COUNT(*) FROM clipboard_items").fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="count",
                underlying_error=str(e),
                message=f"Failed to count clipboard items: {e}",
            ) from e
        return row[0]

    # =========================================================================
    # Delete Operations
    # =========================================================================

    def delete_oldest(self, ttl_days: int) -> int:
        """
        Remove entries not seen within the last ``ttl_days`` days.

        Returns:
            Number of deleted entries

        Raises:
            StorageDeleteError: If the delete fails
        """
        try:
            cutoff = format_timestamp(self._clock() - timedelta(days=ttl_days))
        except OverflowError:
            # Cutoff lies before year 1, so nothing is old enough
            logger.debug("TTL of %d days reaches past the earliest date, nothing to delete", ttl_days)
            return 0
        return self._delete(
            "delete_oldest",
            "DELETE FROM clipboard_items WHERE time_stamp < ?",
            (cutoff,),
            f"ttl={ttl_days} days",
        )

    def delete_excess(self, count: int) -> int:
        """
        Remove the ``count`` oldest entries.

        A count larger than the table removes everything; a non-positive
        count removes nothing.

        Returns:
            Number of deleted entries

        Raises:
            StorageDeleteError: If the delete fails
        """
        if count <= 0:
            return 0
        return self._delete(
            "delete_excess",
            """
            DELETE FROM clipboard_items
            WHERE id IN (
                SELECT id FROM clipboard_items
                ORDER BY time_stamp ASC, id ASC
                LIMIT ?
            )
            """,
            (count,),
            f"count={count}",
        )

    def reset(self) -> int:
        """
        Delete the whole history.

        Returns:
            Number of deleted entries

        Raises:
            StorageDeleteError: If the delete fails
        """
        return self._delete("reset", "DELETE FROM clipboard_items", (), "all")

    def _delete(self, operation: str, sql: str, params: tuple[Any, ...], detail: str) -> int:
        conn = self._connection(operation)
        try:
            with self.transaction():
                cursor = conn.execute(sql, params)
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageDeleteError(
                operation=operation,
                underlying_error=str(e),
                message=f"Failed to {operation.replace('_', ' ')} clipboard items ({detail}): {e}",
            ) from e
