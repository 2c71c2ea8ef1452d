"""Shared test fixtures for Care Companion tests."""

from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("CAREGIVER_PIN", "1234")
    monkeypatch.setenv("TREND_STRATEGY", "previous_reading")
    monkeypatch.setenv("STORAGE_QUOTA_BYTES", "0")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def companion_db():
    """Create an in-memory CompanionDatabase for testing."""
    from companion.core.storage.database import CompanionDatabase

    db = CompanionDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def record_store(companion_db):
    """Create a plaintext RecordStore backed by in-memory SQLite."""
    from companion.core.storage.record_store import RecordStore

    return RecordStore(companion_db)


@pytest.fixture
def repository(record_store):
    """Create a CareRepository with previous-reading trends."""
    from companion.core.storage.repository import CareRepository

    return CareRepository(record_store)


@pytest.fixture
def blob_store(record_store):
    """Create a FileBlobStore sharing the repository's record store."""
    from companion.core.storage.blob_store import FileBlobStore

    return FileBlobStore(record_store)


@pytest.fixture
def workflow(repository):
    from companion.domains.care.domain_logic.approval import ApprovalWorkflow

    return ApprovalWorkflow(repository)


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)
