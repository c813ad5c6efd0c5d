"""sqlite-backed durable medium shared by the entity store and the operation log."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from catalogsync.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_VERSION = 2
MEMORY_PATH = ":memory:"
DEFAULT_BUSY_TIMEOUT_MS = 5000

_MIGRATIONS: dict[int, tuple[str, ...]] = {
    1: (
        """
        CREATE TABLE IF NOT EXISTS entities (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            price REAL NOT NULL DEFAULT 0,
            stock INTEGER NOT NULL DEFAULT 0,
            image TEXT,
            enabled INTEGER NOT NULL DEFAULT 1,
            sync_status TEXT NOT NULL,
            timestamp TEXT NOT NULL
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS operations (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            op_id TEXT NOT NULL UNIQUE,
            action TEXT NOT NULL,
            target_id TEXT NOT NULL,
            payload TEXT,
            enqueued_at TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_operations_target ON operations(target_id)",
        """
        CREATE TABLE IF NOT EXISTS id_map (
            temp_id TEXT PRIMARY KEY,
            server_id TEXT NOT NULL,
            mapped_at TEXT NOT NULL
        )
        """,
    ),
    2: (
        """
        CREATE TABLE IF NOT EXISTS rejected_operations (
            op_id TEXT PRIMARY KEY,
            seq INTEGER,
            action TEXT NOT NULL,
            target_id TEXT NOT NULL,
            payload TEXT,
            enqueued_at TEXT NOT NULL,
            error_type TEXT NOT NULL,
            error_message TEXT NOT NULL,
            rejected_at TEXT NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_entities_status ON entities(sync_status)",
    ),
}


class LocalDatabase:
    """
    Owned handle to the local sqlite file.

    Lifecycle is explicit: open() on startup, close() on shutdown. Every unit
    of work goes through run(), which holds the connection for the duration of
    one transaction and always releases it (commit on success, rollback on
    error). sqlite failures surface as StorageUnavailableError.
    """

    def __init__(
        self,
        path: Union[str, Path] = MEMORY_PATH,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.path = str(path)
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the connection and bring the schema to SCHEMA_VERSION."""
        if self._conn is not None:
            return

        if self.path != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                self.path,
                check_same_thread=False,
                timeout=max(1.0, self._busy_timeout_ms / 1000),
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            if self.path != MEMORY_PATH:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
            _migrate(conn)
        except sqlite3.Error as exc:
            raise StorageUnavailableError(
                "Cannot open local database",
                details={"path": self.path},
                cause=exc,
            ) from exc

        self._conn = conn
        logger.debug("Opened local database at %s", self.path)

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.debug("Closed local database at %s", self.path)

    def run_sync(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Run work inside one transaction on the calling thread."""
        with self._lock:
            conn = self._conn
            if conn is None:
                raise StorageUnavailableError(
                    "Local database is not open",
                    details={"path": self.path},
                )
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageUnavailableError(
                    "Cannot start transaction",
                    details={"path": self.path},
                    cause=exc,
                ) from exc

            try:
                result = work(conn)
                conn.execute("COMMIT")
                return result
            except sqlite3.Error as exc:
                _rollback(conn)
                raise StorageUnavailableError(
                    "Local storage failure",
                    details={"path": self.path},
                    cause=exc,
                ) from exc
            except BaseException:
                _rollback(conn)
                raise

    async def run(self, work: Callable[[sqlite3.Connection], T]) -> T:
        """Run work inside one transaction on a worker thread."""
        return await asyncio.to_thread(self.run_sync, work)


def _rollback(conn: sqlite3.Connection) -> None:
    try:
        conn.execute("ROLLBACK")
    except sqlite3.Error:
        logger.warning("Rollback failed", exc_info=True)


def _migrate(conn: sqlite3.Connection) -> None:
    current = conn.execute("PRAGMA user_version").fetchone()[0]
    if current > SCHEMA_VERSION:
        logger.warning(
            "Local database schema %s is newer than supported %s",
            current,
            SCHEMA_VERSION,
        )
        return

    for version in range(current + 1, SCHEMA_VERSION + 1):
        logger.info("Upgrading local database schema to version %s", version)
        conn.execute("BEGIN IMMEDIATE")
        try:
            for statement in _MIGRATIONS[version]:
                conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {version}")
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
