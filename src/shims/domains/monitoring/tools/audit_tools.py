"""MCP tools for viewing the audit trail.

The audit log holds no patient data: identifiers are hashed and only
actions, risk categories and counts are kept.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from shims.core.audit.logger import ACTION_CHECK_IN, ACTION_CLEARED, ACTION_RECONCILED

if TYPE_CHECKING:
    from shims.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register audit trail tools on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        days: int = 30,
    ) -> str:
        """View recent check-in activity and escalation counts.

        Args:
            days: Number of days to look back (default: 30).
        """
        since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()

        recent_events = audit_logger.get_events(since=since, limit=20)
        display_events = [
            {
                "timestamp": event.get("timestamp"),
                "action": event.get("action"),
                "tool_name": event.get("tool_name"),
                "risk_category": event.get("risk_category"),
                "status": event.get("status"),
            }
            for event in recent_events
        ]

        return json.dumps({
            "status": "ok",
            "period_days": days,
            "total_events": audit_logger.count_events(since=since),
            "check_ins": audit_logger.count_events(action=ACTION_CHECK_IN, since=since),
            "high_risk_check_ins": audit_logger.count_high_risk(since=since),
            "profiles_reconciled": audit_logger.count_events(
                action=ACTION_RECONCILED, since=since
            ),
            "log_clears": audit_logger.count_events(action=ACTION_CLEARED, since=since),
            "recent_events": display_events,
            "note": "This audit trail contains no patient data.",
        }, indent=2)
