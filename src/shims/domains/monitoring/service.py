"""Daily check-in workflow: score, store, reconcile.

Ties the scorer, the bounded submission log and the profile roster
together the way a submitted check-in flows through the system. No UI or
transport concerns live here; MCP tools and tests call it directly.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from shims.core.storage.models import Observation, Profile, RiskResult, Submission
from shims.core.storage.repository import ProfileStore, SubmissionStore
from shims.domains.monitoring.connectors.profile_source import (
    ProfileRosterLoader,
    ProfileSourceError,
)
from shims.domains.monitoring.domain_logic.reconciler import reconcile
from shims.domains.monitoring.domain_logic.risk_scorer import score_observation

if TYPE_CHECKING:
    from shims.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckInOutcome:
    """What happened to one submitted check-in."""

    submission: Submission
    result: RiskResult
    profile_updated: bool
    profile: Profile | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission": self.submission.to_dict(),
            "result": self.result.to_dict(),
            "profile_updated": self.profile_updated,
            "profile": self.profile.to_dict() if self.profile else None,
        }


class MonitoringService:
    """Check-in workflow over injected stores.

    Usage::

        service = MonitoringService(submissions, profiles, roster_loader)
        outcome = await service.submit_check_in({"pain": 6, ...}, student_id="s001")
    """

    def __init__(
        self,
        submissions: SubmissionStore,
        profiles: ProfileStore,
        roster_loader: ProfileRosterLoader,
        *,
        audit_logger: AuditLogger | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._submissions = submissions
        self._profiles = profiles
        self._roster_loader = roster_loader
        self._audit = audit_logger
        self._clock = clock

    async def load_profiles(self) -> list[Profile]:
        """Return the roster, seeding the cache on first use.

        Raises:
            ProfileSourceError: If the roster cannot be loaded.
        """
        return await self._roster_loader.load()

    def preview_score(self, raw: Observation | Mapping[str, Any]) -> RiskResult:
        """Score a check-in without storing anything."""
        return score_observation(raw)

    async def submit_check_in(
        self,
        raw: Observation | Mapping[str, Any],
        *,
        student_id: str = "",
        notes: str = "",
        now: datetime | None = None,
        tool_name: str = "",
    ) -> CheckInOutcome:
        """Score and store a check-in, then reconcile it onto the roster.

        The roster is seeded from its source if nothing is cached yet. When
        the source fails the submission is still stored, unreconciled.

        Args:
            raw: The observation, typed or as an untrusted record.
            student_id: Profile id or name the check-in is for.
            notes: Free-text notes.
            now: Submission time (defaults to the service clock).
            tool_name: Caller label for the audit trail.
        """
        now = now or self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        student_id = (student_id or "").strip()
        notes = (notes or "").strip()

        observation = raw if isinstance(raw, Observation) else Observation.from_raw(raw)
        result = score_observation(observation)

        timestamp_ms = int(now.timestamp() * 1000)
        submission = Submission(
            id=f"sub_{timestamp_ms}_{uuid.uuid4().hex[:8]}",
            student_id=student_id,
            observation=observation,
            notes=notes,
            score=result.score,
            risk_category=result.category,
            timestamp=timestamp_ms,
        )
        self._submissions.append(submission)
        if self._audit is not None:
            self._audit.log_check_in(
                student_id=student_id,
                risk_category=result.category,
                score=result.score,
                tool_name=tool_name,
            )

        matched = await self._reconcile(student_id, result.category, now)
        return CheckInOutcome(
            submission=submission,
            result=result,
            profile_updated=matched is not None,
            profile=matched,
        )

    async def _reconcile(self, student_id: str, category: str, now: datetime) -> Profile | None:
        try:
            roster = await self._roster_loader.load()
        except ProfileSourceError as exc:
            logger.warning("Profile roster unavailable; skipping reconciliation: %s", exc)
            return None

        updated, changed = reconcile(roster, student_id, category, now)
        if not changed:
            return None

        self._profiles.save(updated)
        matched = next(p for old, p in zip(roster, updated) if old is not p)
        if self._audit is not None:
            self._audit.log_reconciliation(profile_id=matched.id, risk_category=category)
        return matched

    def list_submissions(self, limit: int | None = None) -> list[Submission]:
        """Stored submissions, newest first, optionally truncated."""
        submissions = self._submissions.list()
        if limit is not None:
            submissions = submissions[: max(0, limit)]
        return submissions

    def clear_submissions(self, *, tool_name: str = "") -> int:
        """Empty the submission log and return how many entries were removed."""
        count = self._submissions.count()
        self._submissions.clear()
        if self._audit is not None:
            self._audit.log_clear(count=count, tool_name=tool_name)
        return count
