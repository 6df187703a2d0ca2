"""SHIMS Daily Monitoring MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from shims.core.audit.logger import AuditLogger
from shims.core.config.settings import get_settings
from shims.core.storage.database import MonitoringDatabase
from shims.core.storage.encryption import EncryptionError, ValueEncryptor
from shims.core.storage.kv import EncryptedKeyValueStore, KeyValueStore, SqliteKeyValueStore
from shims.core.storage.repository import ProfileStore, SubmissionStore
from shims.domains.monitoring.connectors import ProfileSource
from shims.domains.monitoring.connectors.profile_source import (
    BundledProfileSource,
    ProfileRosterLoader,
)
from shims.domains.monitoring.service import MonitoringService
from shims.domains.monitoring.tools.monitoring_tools import register_monitoring_tools

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    *,
    kv_store_override: KeyValueStore | None = None,
    profile_source_override: ProfileSource | None = None,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the SHIMS monitoring MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the local store (SQLite, optionally encrypted) unless overridden
    3. Wires the submission log, profile roster and monitoring service
    4. Registers monitoring tools, and audit tools when an audit log exists
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "SHIMS Daily Monitoring",
        instructions=(
            "Daily symptom check-ins for a roster of patient profiles. "
            "Check-ins are scored into Low / Moderate / High risk, kept in a "
            "local log of the 50 most recent submissions, and applied to the "
            "matching profile. Demo scoring only: not medical advice."
        ),
    )

    # --- Initialize local store ---
    audit_logger = audit_logger_override
    if kv_store_override is not None:
        kv_store = kv_store_override
        storage_backend = "override"
    else:
        database = MonitoringDatabase(settings.store_path)
        database.initialize()
        kv_store = SqliteKeyValueStore(database)
        storage_backend = "sqlite"
        if audit_logger is None:
            audit_logger = AuditLogger(database)

        if settings.encryption_key:
            try:
                kv_store = EncryptedKeyValueStore(kv_store, ValueEncryptor(settings.encryption_key))
                storage_backend = "sqlite+fernet"
            except EncryptionError as exc:
                logger.error("Failed to initialize encryption: %s", exc)
                logger.warning("Continuing without encryption — values stored as plaintext")
        logger.info(
            "Local store initialized: %s (schema v%d, %s)",
            settings.store_path,
            database.get_schema_version(),
            storage_backend,
        )

    # --- Monitoring service ---
    submissions = SubmissionStore(kv_store)
    profiles = ProfileStore(kv_store)
    if profile_source_override is not None:
        profile_source = profile_source_override
    else:
        profile_source = BundledProfileSource(settings.profiles_dataset_path or None)
    roster_loader = ProfileRosterLoader(profiles, profile_source)
    service = MonitoringService(
        submissions, profiles, roster_loader, audit_logger=audit_logger
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "SHIMS Daily Monitoring",
            "version": VERSION,
            "storage_backend": storage_backend,
            "profile_source": profile_source.source_name,
            "submissions_stored": submissions.count(),
            "audit_enabled": audit_logger is not None,
        }

    register_monitoring_tools(server, service)
    logger.info("Monitoring tools registered")

    if audit_logger is not None:
        from shims.domains.monitoring.tools.audit_tools import register_audit_tools

        register_audit_tools(server, audit_logger)
        logger.info("Audit tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
