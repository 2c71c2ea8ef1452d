"""Care Companion MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
import random

from fastmcp import FastMCP

from companion.core.config.settings import Settings, get_settings
from companion.core.storage.blob_store import FileBlobStore
from companion.core.storage.database import CompanionDatabase
from companion.core.storage.encryption import PayloadEncryptor
from companion.core.storage.record_store import RecordStore
from companion.core.storage.repository import CareRepository
from companion.domains.care.domain_logic.access import CareSession
from companion.domains.care.domain_logic.approval import ApprovalWorkflow
from companion.domains.care.domain_logic.metric_classifier import create_trend_estimator
from companion.domains.care.domain_logic.recognition import Recognizer, SimulatedRecognizer
from companion.domains.care.tools.health_tools import register_health_tools
from companion.domains.care.tools.people_tools import register_people_tools
from companion.domains.care.tools.session_tools import register_session_tools

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> CareRepository:
    """Open the configured database and wrap it in a repository.

    Raises:
        EncryptionError: If ``encryption_key`` is set but invalid.
    """
    encryptor = PayloadEncryptor(settings.encryption_key) if settings.encryption_key else None
    database = CompanionDatabase(settings.db_path)
    database.initialize()
    store = RecordStore(
        database,
        namespace=settings.storage_namespace,
        encryptor=encryptor,
        quota_bytes=settings.storage_quota_bytes,
    )
    rng = random.Random(settings.recognition_seed)
    repository = CareRepository(
        store, trend_estimator=create_trend_estimator(settings.trend_strategy, rng=rng)
    )
    logger.info(
        "Record store ready: %s (schema v%d, encrypted=%s)",
        settings.db_path,
        database.get_schema_version(),
        store.encrypted,
    )
    if encryptor is None:
        logger.warning("No ENCRYPTION_KEY configured; records are stored as plaintext JSON")
    return repository


def create_app(
    *,
    repository_override: CareRepository | None = None,
    recognizer_override: Recognizer | None = None,
) -> FastMCP:
    """Create and configure the Care Companion MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the record store and repository (or uses the override)
    3. Creates the blob store, approval workflow, recognizer and care session
    4. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        "Care Companion",
        instructions=(
            "Personal care companion for a patient and their caregiver. "
            "Keeps a local record of known people, health readings and medical "
            "documents. Caregiver-only tools require unlock_caregiver_mode first."
        ),
    )

    repository = repository_override or build_repository(settings)
    blob_store = FileBlobStore(repository.store)
    workflow = ApprovalWorkflow(repository)
    recognizer = recognizer_override or SimulatedRecognizer(
        repository, random.Random(settings.recognition_seed)
    )
    session = CareSession(settings.caregiver_pin)

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        counts = repository.count_people_by_status()
        return {
            "status": "ok",
            "server": "Care Companion",
            "version": "0.1.0",
            "mode": session.mode,
            "encrypted_at_rest": repository.store.encrypted,
            "people_stored": counts["total"],
            "collections": repository.store.collections(),
        }

    register_people_tools(server, repository, blob_store, workflow, recognizer, session)
    register_health_tools(server, repository, blob_store, session)
    register_session_tools(server, repository, session)
    logger.info("Care Companion tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
