"""SQLite database management for the Care Companion record store.

Handles connection lifecycle and schema creation. The schema is a single
key/value table: every logical collection is one row holding a serialised
payload.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 1

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per namespaced collection (people, health-metrics, files-photos, ...)
CREATE TABLE IF NOT EXISTS records (
    key        TEXT PRIMARY KEY,
    payload    TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class CompanionDatabase:
    """SQLite database manager for the Care Companion record store.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = CompanionDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return  # Already initialized

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file))
        else:
            self._conn = sqlite3.connect(":memory:")

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._ensure_schema()
        logger.info("Companion database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and record the schema version."""
        conn = self.connection
        conn.executescript(_SCHEMA_V1)

        current_version = self.get_schema_version()
        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Companion database closed")

    def __enter__(self) -> CompanionDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
