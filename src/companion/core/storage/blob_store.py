"""File blob store — uploaded photos and documents kept inside the record store.

Each category (photos, reports, prescriptions) is one collection holding a
list of base64-encoded blobs. Blobs are addressed from elsewhere only through
``local-file://<id>`` references; resolving one scans every category in turn.
Nothing is reclaimed automatically when the owning person or report is
deleted; :meth:`FileBlobStore.purge_orphans` is an explicit sweep.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Iterable, Union

from companion.core.storage.models import BLOB_CATEGORIES, BlobRecord
from companion.core.storage.record_store import RecordStore, StorageError
from companion.core.storage.validation import (
    ValidationError,
    require_choice,
    require_text,
)

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "local-file://"

BlobSource = Union[bytes, bytearray, memoryview, str, os.PathLike, IO[bytes]]


class BlobEncodeError(Exception):
    """Raised when uploaded content cannot be read or encoded."""


def _collection(category: str) -> str:
    return f"files-{category}"


def parse_reference(reference: str) -> str | None:
    """Return the blob id inside a ``local-file://`` reference, or None."""
    if not isinstance(reference, str) or not reference.startswith(REFERENCE_PREFIX):
        return None
    blob_id = reference[len(REFERENCE_PREFIX):]
    return blob_id or None


def decode_upload(data: str) -> bytes:
    """Decode base64 upload text from a tool caller.

    A leading ``data:<mime>;base64,`` prefix and line-wrapped input are
    accepted.

    Raises:
        ValidationError: If the text is not valid base64.
    """
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    data = "".join(data.split())
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("upload must be valid base64") from exc


def _to_blob(category: str, item: dict) -> BlobRecord:
    try:
        return BlobRecord.from_dict({**item, "category": category})
    except TypeError as exc:
        raise StorageError(f"Corrupt record in {_collection(category)!r}: {exc}") from exc


def _read_and_encode(source: BlobSource) -> str:
    """Read the content behind ``source`` and base64-encode it.

    ``str`` and path-like sources are treated as filesystem paths.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        content = bytes(source)
    elif isinstance(source, (str, os.PathLike)):
        content = Path(source).read_bytes()
    elif hasattr(source, "read"):
        content = source.read()
        if not isinstance(content, bytes):
            raise TypeError("file object must be opened in binary mode")
    else:
        raise TypeError(f"Unsupported blob source: {type(source).__name__}")
    return base64.b64encode(content).decode("ascii")


class FileBlobStore:
    """Stores binary uploads as base64 blobs in the record store.

    Usage::

        blobs = FileBlobStore(record_store)
        ref = await blobs.save(b"...", "ana.jpg", "image/jpeg", "photos")
        blob = blobs.resolve(ref)   # BlobRecord
        blob.data_url               # "data:image/jpeg;base64,..."
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def save(
        self,
        source: BlobSource,
        filename: str,
        mime_type: str,
        category: str = "photos",
    ) -> str:
        """Encode and persist an upload, returning its ``local-file://`` reference.

        Reading and encoding run in a worker thread so large files do not
        block the event loop.

        Raises:
            ValidationError: On an unknown category or empty filename.
            BlobEncodeError: If the content cannot be read.
            StorageError: If the blob cannot be persisted.
        """
        require_choice(category, BLOB_CATEGORIES, "category")
        filename = require_text(filename, "filename")

        try:
            encoded = await asyncio.to_thread(_read_and_encode, source)
        except (OSError, TypeError, ValueError) as exc:
            raise BlobEncodeError(f"Failed to read {filename!r}: {exc}") from exc

        blob = BlobRecord(
            id=str(uuid.uuid4()),
            name=filename,
            type=mime_type or "",
            data=encoded,
            timestamp=datetime.now(timezone.utc).isoformat(),
            category=category,
        )
        collection = _collection(category)
        blobs = self._store.read_entries(collection)
        blobs.append(blob.to_dict())
        self._store.write(collection, blobs)
        logger.info("Stored %s blob %s (%d base64 chars)", category, blob.id, len(encoded))
        return blob.reference

    def resolve(self, reference: str) -> BlobRecord | None:
        """Find the blob behind a reference; anything unresolvable gives None."""
        blob_id = parse_reference(reference)
        if blob_id is None:
            return None
        for category in BLOB_CATEGORIES:
            for item in self._store.read_entries(_collection(category)):
                if item.get("id") == blob_id:
                    return _to_blob(category, item)
        return None

    def read_bytes(self, reference: str) -> bytes | None:
        """Decoded content of a blob, or None if the reference does not resolve.

        Raises:
            StorageError: If the stored payload is not valid base64.
        """
        blob = self.resolve(reference)
        if blob is None:
            return None
        try:
            return base64.b64decode(blob.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise StorageError(f"Corrupt blob payload {blob.id}: {exc}") from exc

    def list_blobs(self, category: str) -> list[BlobRecord]:
        require_choice(category, BLOB_CATEGORIES, "category")
        return [
            _to_blob(category, item)
            for item in self._store.read_entries(_collection(category))
        ]

    def delete(self, reference: str) -> bool:
        """Remove a blob. Returns False if the reference does not resolve."""
        blob_id = parse_reference(reference)
        if blob_id is None:
            return False
        for category in BLOB_CATEGORIES:
            collection = _collection(category)
            blobs = self._store.read_entries(collection)
            remaining = [b for b in blobs if b.get("id") != blob_id]
            if len(remaining) != len(blobs):
                self._store.write(collection, remaining)
                logger.info("Deleted %s blob %s", category, blob_id)
                return True
        return False

    def purge_orphans(self, referenced: Iterable[str]) -> int:
        """Delete every blob whose reference is not in ``referenced``.

        Returns:
            Number of blobs removed.
        """
        keep = {parse_reference(ref) for ref in referenced} - {None}
        removed = 0
        for category in BLOB_CATEGORIES:
            collection = _collection(category)
            if not self._store.contains(collection):
                continue
            blobs = self._store.read_entries(collection)
            remaining = [b for b in blobs if b.get("id") in keep]
            if len(remaining) != len(blobs):
                self._store.write(collection, remaining)
                removed += len(blobs) - len(remaining)
        if removed:
            logger.warning("Purged %d orphaned blobs", removed)
        return removed
