"""MCP tools for daily check-ins and the profile roster.

Arguments arrive as loosely typed tool input and are coerced by the
monitoring service; a malformed reading lowers nothing and raises nothing,
it simply adds no points to the score.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from shims.domains.monitoring.connectors.profile_source import ProfileSourceError

if TYPE_CHECKING:
    from shims.domains.monitoring.service import MonitoringService

logger = logging.getLogger(__name__)

CLEAR_CONFIRMATION = "CLEAR_ALL"


def _observation_input(
    pain: Any,
    hydration: Any,
    fatigue: Any,
    temperature: Any,
    exposure: Any,
    symptoms: list[str] | None,
) -> dict[str, Any]:
    return {
        "pain": pain,
        "hydration": hydration,
        "fatigue": fatigue,
        "temperature": temperature,
        "exposure": exposure,
        "symptoms": symptoms or [],
    }


def register_monitoring_tools(
    mcp: FastMCP,
    service: MonitoringService,
) -> None:
    """Register check-in and roster tools on the MCP server."""

    @mcp.tool
    async def score_check_in(
        ctx: Context,
        pain: float | str = 0,
        hydration: str = "good",
        fatigue: str = "low",
        temperature: float | str | None = None,
        exposure: bool | str = False,
        symptoms: list[str] | None = None,
    ) -> str:
        """Preview the risk score for a check-in without saving it.

        Args:
            pain: Pain level 0-10.
            hydration: 'good', 'moderate' or 'poor'.
            fatigue: 'low', 'moderate' or 'high'.
            temperature: Body temperature in degrees C.
            exposure: Recent exposure to cold, dehydration or infection.
            symptoms: Infection symptoms reported today (each adds 1 point).
        """
        result = service.preview_score(
            _observation_input(pain, hydration, fatigue, temperature, exposure, symptoms)
        )
        return json.dumps({"status": "ok", **result.to_dict()})

    @mcp.tool
    async def submit_check_in(
        ctx: Context,
        student_id: str = "",
        pain: float | str = 0,
        hydration: str = "good",
        fatigue: str = "low",
        temperature: float | str | None = None,
        exposure: bool | str = False,
        symptoms: list[str] | None = None,
        notes: str = "",
    ) -> str:
        """Save a daily check-in and update the matching profile's risk.

        The check-in is scored, added to the submission log (newest 50 kept)
        and applied to the first profile whose id or name matches
        ``student_id`` (case-insensitive). A High result also records today
        as the profile's last crisis date.

        Args:
            student_id: Profile id (e.g. 's001') or full name.
            pain: Pain level 0-10.
            hydration: 'good', 'moderate' or 'poor'.
            fatigue: 'low', 'moderate' or 'high'.
            temperature: Body temperature in degrees C.
            exposure: Recent exposure to cold, dehydration or infection.
            symptoms: Infection symptoms reported today.
            notes: Free-text notes.
        """
        start_time = time.monotonic()
        outcome = await service.submit_check_in(
            _observation_input(pain, hydration, fatigue, temperature, exposure, symptoms),
            student_id=student_id,
            notes=notes,
            tool_name="submit_check_in",
        )
        elapsed_ms = (time.monotonic() - start_time) * 1000

        result = outcome.result
        return json.dumps({
            "status": "saved",
            "submission_id": outcome.submission.id,
            "score": result.score,
            "risk_category": result.category,
            "contributions": result.contributions,
            "profile_updated": outcome.profile_updated,
            "profile": outcome.profile.to_dict() if outcome.profile else None,
            "duration_ms": round(elapsed_ms, 1),
            "message": (
                f"Submission saved. Risk: {result.category} (score {result.score})."
            ),
        })

    @mcp.tool
    async def list_submissions(
        ctx: Context,
        limit: int = 50,
    ) -> str:
        """List saved check-ins, newest first.

        Args:
            limit: Maximum number of submissions to return.
        """
        submissions = service.list_submissions(limit=limit)
        return json.dumps({
            "status": "ok",
            "count": len(submissions),
            "submissions": [s.to_dict() for s in submissions],
        }, indent=2)

    @mcp.tool
    async def clear_submissions(
        ctx: Context,
        confirm: str = "",
    ) -> str:
        """Permanently delete every saved check-in.

        Profiles keep their current risk values. This cannot be undone.

        Args:
            confirm: Must be exactly 'CLEAR_ALL' to proceed. Safety gate.
        """
        if confirm != CLEAR_CONFIRMATION:
            return json.dumps({
                "status": "cancelled",
                "message": (
                    "To clear all submissions, call this tool with "
                    f"confirm='{CLEAR_CONFIRMATION}'. This action cannot be undone."
                ),
            })

        count = service.clear_submissions(tool_name="clear_submissions")
        return json.dumps({
            "status": "cleared",
            "submissions_deleted": count,
        })

    @mcp.tool
    async def list_profiles(ctx: Context) -> str:
        """List patient profiles with their current risk and last crisis date."""
        try:
            profiles = await service.load_profiles()
        except ProfileSourceError as exc:
            logger.error("Could not load profiles: %s", exc)
            return json.dumps({
                "status": "unavailable",
                "message": "Profiles unavailable.",
            })

        return json.dumps({
            "status": "ok",
            "count": len(profiles),
            "profiles": [p.to_dict() for p in profiles],
        }, indent=2)
