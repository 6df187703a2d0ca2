"""Daily check-in risk scorer.

Pain plus penalties for poor hydration, high fatigue, fever, exposure and
each reported infection symptom, mapped onto Low / Moderate / High.

Demo scoring only; the formula has no clinical validation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from shims.core.storage.models import Observation, RiskCategory, RiskResult

# ---------------------------------------------------------------------------
# Scoring constants
# ---------------------------------------------------------------------------

HYDRATION_PENALTIES = {"good": 0, "moderate": 1, "poor": 2}
FATIGUE_PENALTIES = {"low": 0, "moderate": 1, "high": 2}

# Temperature tiers (degrees C), checked high to low
FEVER_THRESHOLD_C = 38.0
ELEVATED_THRESHOLD_C = 37.5

EXPOSURE_PENALTY = 1

# Category floors, checked high to low: 0-5 Low, 6-9 Moderate, 10+ High
HIGH_RISK_MIN_SCORE = 10
MODERATE_RISK_MIN_SCORE = 6


def temperature_penalty(temperature: float | None) -> int:
    """Points for fever; None (unparsable reading) adds nothing."""
    if temperature is None:
        return 0
    if temperature >= FEVER_THRESHOLD_C:
        return 2
    if temperature >= ELEVATED_THRESHOLD_C:
        return 1
    return 0


def categorize_score(score: int) -> RiskCategory:
    """Map a score onto its risk category (lower bounds inclusive)."""
    if score >= HIGH_RISK_MIN_SCORE:
        return "High"
    if score >= MODERATE_RISK_MIN_SCORE:
        return "Moderate"
    return "Low"


def score_observation(observation: Observation | Mapping[str, Any]) -> RiskResult:
    """Score one observation.

    Accepts either a typed :class:`Observation` or a raw record, which is
    coerced first. Never raises: unknown hydration/fatigue levels and
    unparsable numbers contribute 0.

    Args:
        observation: The day's check-in.

    Returns:
        RiskResult with the total score, its category and per-term
        contributions.
    """
    if isinstance(observation, Mapping):
        observation = Observation.from_raw(observation)
    elif not isinstance(observation, Observation):
        observation = Observation()

    contributions = {
        "pain": observation.pain,
        "hydration": HYDRATION_PENALTIES.get(observation.hydration, 0),
        "fatigue": FATIGUE_PENALTIES.get(observation.fatigue, 0),
        "temperature": temperature_penalty(observation.temperature),
        "exposure": EXPOSURE_PENALTY if observation.exposure else 0,
        "symptoms": observation.symptoms_count,
    }
    score = sum(contributions.values())
    return RiskResult(
        score=score,
        category=categorize_score(score),
        contributions=contributions,
    )
