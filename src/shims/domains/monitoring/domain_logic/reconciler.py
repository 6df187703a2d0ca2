"""Propagates a submission's risk category onto the matching profile."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from shims.core.storage.models import Profile

logger = logging.getLogger(__name__)


def profile_matches(profile: Profile, student_id: str) -> bool:
    """Whole-string, case-insensitive match on profile id or name."""
    wanted = student_id.lower()
    if not wanted:
        return False
    return (
        (bool(profile.id) and profile.id.lower() == wanted)
        or (bool(profile.name) and profile.name.lower() == wanted)
    )


def crisis_date(now: datetime) -> str:
    """Calendar date of ``now`` in UTC as YYYY-MM-DD (naive datetimes are taken as UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%d")


def reconcile(
    profiles: list[Profile],
    student_id: str,
    category: str,
    now: datetime,
) -> tuple[list[Profile], bool]:
    """Apply ``category`` to the first profile matching ``student_id``.

    A High category also stamps ``last_crisis`` with today's date. Only the
    first match is updated when several profiles share a name. The input
    list and its profiles are left untouched.

    Returns:
        (profiles, changed). Without a match the original list is returned
        with ``changed=False``.
    """
    for index, profile in enumerate(profiles):
        if not profile_matches(profile, student_id):
            continue

        updated = replace(profile, risk=category, extra=dict(profile.extra))
        if category == "High":
            updated.last_crisis = crisis_date(now)

        result = list(profiles)
        result[index] = updated
        logger.info("Reconciled profile %s -> risk %s", profile.id, category)
        return result, True

    logger.debug("No profile matches check-in identifier")
    return profiles, False
