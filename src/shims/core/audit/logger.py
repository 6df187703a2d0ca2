"""Audit logger — PHI-free trail of check-ins, reconciliations and clears.

Every stored check-in, profile update and log clear is recorded without
patient data:

* ``subject_hash``  — SHA-256 of the canonical JSON of the student
  identifier; the identifier itself is never written.
* ``risk_category`` — the outcome, so escalations can be counted.
* ``metadata``      — counts and flags only (no notes, no vitals).
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from shims.core.storage.database import MonitoringDatabase

logger = logging.getLogger(__name__)

ACTION_CHECK_IN = "check_in_submitted"
ACTION_RECONCILED = "profile_reconciled"
ACTION_CLEARED = "submissions_cleared"


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON — identifiers never stored raw.

    Returns:
        Hex-encoded SHA-256 digest, or empty string on failure.
    """
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                        # see ACTION_* constants
    tool_name: str = ""
    subject_hash: str = ""
    risk_category: str | None = None   # 'Low' | 'Moderate' | 'High'
    status: str = "success"            # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed write is logged and reported
    as an empty event ID; it never propagates to the caller.

    Usage::

        audit = AuditLogger(monitoring_db)
        audit.log_check_in(student_id="s001", risk_category="High", score=12)
    """

    def __init__(self, database: MonitoringDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty string on failure)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"))
            if event.metadata
            else None
        )

        try:
            conn = self._db.connection
            conn.execute(
                """INSERT INTO audit_log
                   (id, timestamp, action, tool_name, subject_hash,
                    risk_category, status, error_type, metadata_json)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    event_id,
                    now,
                    event.action,
                    event.tool_name or None,
                    event.subject_hash or None,
                    event.risk_category,
                    event.status,
                    event.error_type,
                    metadata_json,
                ),
            )
            conn.commit()
        except Exception:
            logger.exception("Failed to write audit event — event lost")
            return ""

        return event_id

    def log_check_in(
        self,
        *,
        student_id: str,
        risk_category: str,
        score: int,
        tool_name: str = "",
    ) -> str:
        """Log a stored check-in."""
        return self.log_event(AuditEvent(
            action=ACTION_CHECK_IN,
            tool_name=tool_name,
            subject_hash=_hash_input(student_id) if student_id else "",
            risk_category=risk_category,
            metadata={"score": score},
        ))

    def log_reconciliation(self, *, profile_id: str, risk_category: str) -> str:
        """Log a profile whose risk was updated from a check-in."""
        return self.log_event(AuditEvent(
            action=ACTION_RECONCILED,
            subject_hash=_hash_input(profile_id),
            risk_category=risk_category,
            metadata={"crisis_recorded": risk_category == "High"},
        ))

    def log_clear(self, *, count: int, tool_name: str = "") -> str:
        """Log a bulk clear of the submission log."""
        return self.log_event(AuditEvent(
            action=ACTION_CLEARED,
            tool_name=tool_name,
            metadata={"records_deleted": count},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first.

        Args:
            action: Filter by action type.
            since: ISO 8601 timestamp lower bound.
            limit: Maximum events to return.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None, since: str | None = None) -> int:
        """Count audit events, optionally filtered by action and start time."""
        conditions: list[str] = []
        params: list[Any] = []
        if action:
            conditions.append("action = ?")
            params.append(action)
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]

    def count_high_risk(self, *, since: str | None = None) -> int:
        """Count check-ins that scored High."""
        conditions = ["action = ?", "risk_category = 'High'"]
        params: list[Any] = [ACTION_CHECK_IN]
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)
        row = self._db.connection.execute(
            "SELECT COUNT(*) FROM audit_log WHERE " + " AND ".join(conditions), params
        ).fetchone()
        return row[0]
