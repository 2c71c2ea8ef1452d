"""Record store: the key/value persistence surface under the repository.

Each logical collection (``people``, ``health-metrics``, ``files-photos``...)
is stored as one JSON document in the ``records`` table, keyed by
``<namespace>-<collection>``. Writes replace the whole document. There is no
locking; concurrent writers on the same collection follow last-write-wins.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from companion.core.storage.database import CompanionDatabase
from companion.core.storage.encryption import EncryptionError, PayloadEncryptor

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "ai-health-companion"


class StorageError(Exception):
    """Raised when the underlying store cannot be read or written."""


class RecordStore:
    """JSON document store keyed by collection name.

    Usage::

        db = CompanionDatabase(":memory:")
        db.initialize()
        store = RecordStore(db)

        store.write("people", [{"id": "p1", "name": "Ana"}])
        store.read("people")     # [{"id": "p1", "name": "Ana"}]
        store.read("unwritten")  # []
    """

    def __init__(
        self,
        database: CompanionDatabase,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        encryptor: PayloadEncryptor | None = None,
        quota_bytes: int = 0,
    ) -> None:
        self._db = database
        self._namespace = namespace
        self._enc = encryptor
        self._quota_bytes = quota_bytes

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def encrypted(self) -> bool:
        return self._enc is not None

    def _key(self, collection: str) -> str:
        return f"{self._namespace}-{collection}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, collection: str) -> Any | None:
        """Return the stored value for ``collection``, or None if never written.

        Raises:
            StorageError: If the row cannot be read, decrypted or parsed.
        """
        try:
            row = self._db.connection.execute(
                "SELECT payload FROM records WHERE key = ?", (self._key(collection),)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read {collection!r}: {exc}") from exc

        if row is None:
            return None
        return self._decode(collection, row["payload"])

    def read(self, collection: str) -> Any:
        """Return the stored value for ``collection`` (empty list if never written)."""
        value = self.get(collection)
        return [] if value is None else value

    def read_entries(self, collection: str) -> list[dict[str, Any]]:
        """Like :meth:`read` for collections that hold a list of objects.

        Raises:
            StorageError: If the stored value is not a list of JSON objects.
        """
        value = self.read(collection)
        if not isinstance(value, list):
            raise StorageError(
                f"Corrupt record in {collection!r}: expected a list, got {type(value).__name__}"
            )
        for item in value:
            if not isinstance(item, dict):
                raise StorageError(
                    f"Corrupt record in {collection!r}: expected an object, "
                    f"got {type(item).__name__}"
                )
        return value

    def contains(self, collection: str) -> bool:
        try:
            row = self._db.connection.execute(
                "SELECT 1 FROM records WHERE key = ?", (self._key(collection),)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read {collection!r}: {exc}") from exc
        return row is not None

    def collections(self) -> list[str]:
        """List the collections written under this namespace."""
        prefix = f"{self._namespace}-"
        try:
            rows = self._db.connection.execute(
                "SELECT key FROM records WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to list collections: {exc}") from exc
        return [row["key"][len(prefix):] for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write(self, collection: str, value: Any) -> None:
        """Replace the stored value for ``collection``.

        The value is durable once this returns.

        Raises:
            StorageError: If the value is not JSON-serialisable, the quota
                would be exceeded, or the database write fails.
        """
        payload = self._encode(collection, value)
        key = self._key(collection)
        conn = self._db.connection

        try:
            if self._quota_bytes > 0:
                self._check_quota(key, payload)
            conn.execute(
                """INSERT INTO records (key, payload, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       payload = excluded.payload,
                       updated_at = excluded.updated_at""",
                (key, payload, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Failed to write {collection!r}: {exc}") from exc

        logger.debug("Wrote collection %s (%d bytes)", collection, len(payload))

    def delete(self, collection: str) -> bool:
        """Remove a collection entirely. Returns True if it existed."""
        conn = self._db.connection
        try:
            cursor = conn.execute(
                "DELETE FROM records WHERE key = ?", (self._key(collection),)
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Failed to delete {collection!r}: {exc}") from exc
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_quota(self, key: str, payload: str) -> None:
        prefix = f"{self._namespace}-"
        row = self._db.connection.execute(
            """SELECT COALESCE(SUM(LENGTH(payload)), 0) FROM records
               WHERE key != ? AND substr(key, 1, ?) = ?""",
            (key, len(prefix), prefix),
        ).fetchone()
        total = row[0] + len(payload)
        if total > self._quota_bytes:
            raise StorageError(
                f"Storage quota exceeded: {total} bytes > {self._quota_bytes} bytes"
            )

    def _encode(self, collection: str, value: Any) -> str:
        try:
            payload = json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Cannot serialise {collection!r}: {exc}") from exc
        if self._enc is not None:
            payload = self._enc.encrypt(payload)
        return payload

    def _decode(self, collection: str, payload: str) -> Any:
        try:
            if self._enc is not None:
                payload = self._enc.decrypt(payload)
            return json.loads(payload)
        except EncryptionError as exc:
            raise StorageError(f"Cannot decrypt {collection!r}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt payload in {collection!r}: {exc}") from exc
