"""Data models for daily check-ins, risk results and patient profiles.

Raw check-in input is untrusted (form fields, tool arguments), so
:meth:`Observation.from_raw` is the single place where it is coerced into
typed values. Malformed fields never raise; they degrade to the value that
contributes nothing to the risk score.

Persisted field names follow the JSON layout of the stored lists
(``studentId``, ``riskCategory``, ``last_crisis``, ...).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

RiskCategory = Literal["Low", "Moderate", "High"]

RISK_CATEGORIES: tuple[str, ...] = ("Low", "Moderate", "High")

# Form defaults when a field is missing entirely
DEFAULT_HYDRATION = "good"
DEFAULT_FATIGUE = "low"

_TRUE_STRINGS = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def coerce_number(value: Any) -> float | None:
    """Parse a decimal from untrusted input.

    Returns None for anything that is not a finite number (empty strings,
    text, NaN, infinities, containers).
    """
    if isinstance(value, (bool, int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_count(value: Any) -> int:
    """Coerce to a non-negative integer; unparsable input becomes 0."""
    number = coerce_number(value)
    if number is None:
        return 0
    return max(0, int(number))


def coerce_flag(value: Any) -> bool:
    """Interpret checkbox-style input ("on", "true", "1", ...) as a boolean."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _coerce_label(value: Any, default: str) -> str:
    # Verbatim: a padded or unknown label scores 0
    if value is None:
        return default
    return str(value) or default


# ---------------------------------------------------------------------------
# Check-in input and scoring output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Observation:
    """One day's reported symptoms and vitals for a patient."""

    pain: int = 0                      # 0-10
    hydration: str = DEFAULT_HYDRATION  # 'good' | 'moderate' | 'poor'
    fatigue: str = DEFAULT_FATIGUE      # 'low' | 'moderate' | 'high'
    temperature: float | None = None   # degrees C, None if unparsable
    exposure: bool = False
    symptoms: tuple[str, ...] = ()
    symptoms_count: int = 0

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> Observation:
        """Build an Observation from an untyped record.

        ``symptoms_count`` is taken from ``symptomsCount`` / ``symptoms_count``
        when present, otherwise from the number of listed symptoms.
        """
        symptoms_raw = raw.get("symptoms")
        if isinstance(symptoms_raw, (list, tuple)):
            symptoms = tuple(str(s) for s in symptoms_raw)
        else:
            symptoms = ()

        count_raw = raw.get("symptomsCount", raw.get("symptoms_count"))
        if coerce_number(count_raw) is not None:
            symptoms_count = coerce_count(count_raw)
        else:
            symptoms_count = len(symptoms)

        return cls(
            pain=coerce_count(raw.get("pain")),
            hydration=_coerce_label(raw.get("hydration"), DEFAULT_HYDRATION),
            fatigue=_coerce_label(raw.get("fatigue"), DEFAULT_FATIGUE),
            temperature=coerce_number(raw.get("temperature")),
            exposure=coerce_flag(raw.get("exposure", False)),
            symptoms=symptoms,
            symptoms_count=symptoms_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pain": self.pain,
            "hydration": self.hydration,
            "fatigue": self.fatigue,
            "temperature": self.temperature,
            "exposure": self.exposure,
            "symptoms": list(self.symptoms),
            "symptomsCount": self.symptoms_count,
        }


@dataclass(frozen=True)
class RiskResult:
    """Score and category for one observation.

    ``contributions`` maps each scoring term to the points it added.
    """

    score: int
    category: RiskCategory
    contributions: dict[str, int] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "category": self.category,
            "contributions": dict(self.contributions),
        }


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Submission:
    """A persisted, timestamped observation plus its computed risk outcome."""

    id: str
    student_id: str
    observation: Observation
    notes: str
    score: int
    risk_category: str
    timestamp: int  # epoch milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            **self.observation.to_dict(),
            "notes": self.notes,
            "score": self.score,
            "riskCategory": self.risk_category,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Submission:
        """Rebuild a stored submission.

        Raises:
            KeyError: If a required key is missing.
            TypeError / ValueError: If a required field has the wrong shape.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Submission record must be an object, got {type(data).__name__}")
        return cls(
            id=str(data["id"]),
            student_id=str(data.get("studentId") or ""),
            observation=Observation.from_raw(data),
            notes=str(data.get("notes") or ""),
            score=int(data["score"]),
            risk_category=str(data["riskCategory"]),
            timestamp=int(data["timestamp"]),
        )


_PROFILE_FIELDS = ("id", "name", "genotype", "last_crisis", "medication", "risk", "contact")


@dataclass
class Profile:
    """A patient record, updated when a submission is reconciled onto it.

    Keys in the source dataset beyond the known fields are kept in ``extra``
    so they survive a load/save cycle.
    """

    id: str
    name: str
    genotype: str = ""
    last_crisis: str | None = None  # YYYY-MM-DD
    medication: str = ""
    risk: str = ""
    contact: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "genotype": self.genotype,
            "last_crisis": self.last_crisis,
            "medication": self.medication,
            "risk": self.risk,
            "contact": self.contact,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Profile:
        """Rebuild a profile from a dataset or stored record.

        Raises:
            TypeError: If ``data`` is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Profile record must be an object, got {type(data).__name__}")
        last_crisis = data.get("last_crisis")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            genotype=str(data.get("genotype") or ""),
            last_crisis=str(last_crisis) if last_crisis else None,
            medication=str(data.get("medication") or ""),
            risk=str(data.get("risk") or ""),
            contact=str(data.get("contact") or ""),
            extra={k: v for k, v in data.items() if k not in _PROFILE_FIELDS},
        )
