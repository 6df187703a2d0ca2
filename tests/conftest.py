"""Shared test fixtures for SHIMS tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORE_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("PROFILES_DATASET_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from shims.core.storage.models import Profile  # noqa: E402

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def _make_profile(**overrides) -> Profile:
    """Create a test profile with sensible defaults."""
    defaults = dict(
        id="s001",
        name="Jane Doe",
        genotype="HbSS",
        last_crisis="2025-08-14",
        medication="Hydroxyurea 500mg daily",
        risk="Low",
        contact="Mary Doe +234 803 000 0001",
    )
    defaults.update(overrides)
    return Profile(**defaults)


class StaticProfileSource:
    """ProfileSource returning a fixed roster, counting loads."""

    def __init__(self, profiles: list[Profile] | None = None, error: Exception | None = None) -> None:
        self._profiles = profiles if profiles is not None else [
            _make_profile(),
            _make_profile(id="s002", name="Tunde Adeyemi", genotype="HbSC", last_crisis=None),
        ]
        self._error = error
        self.load_calls = 0

    @property
    def source_name(self) -> str:
        return "static"

    async def load(self) -> list[Profile]:
        self.load_calls += 1
        if self._error is not None:
            raise self._error
        return [Profile.from_dict(p.to_dict()) for p in self._profiles]


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def kv_store():
    """Create an empty in-memory key-value store."""
    from shims.core.storage.kv import InMemoryKeyValueStore

    return InMemoryKeyValueStore()


@pytest.fixture
def monitoring_db():
    """Create an in-memory MonitoringDatabase for testing."""
    from shims.core.storage.database import MonitoringDatabase

    db = MonitoringDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def value_encryptor():
    """Create a ValueEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from shims.core.storage.encryption import ValueEncryptor

    return ValueEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def submission_store(kv_store):
    from shims.core.storage.repository import SubmissionStore

    return SubmissionStore(kv_store)


@pytest.fixture
def profile_store(kv_store):
    from shims.core.storage.repository import ProfileStore

    return ProfileStore(kv_store)


@pytest.fixture
def audit_logger(monitoring_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from shims.core.audit.logger import AuditLogger

    return AuditLogger(monitoring_db)


@pytest.fixture
def profile_source() -> StaticProfileSource:
    return StaticProfileSource()


@pytest.fixture
def monitoring_service(submission_store, profile_store, profile_source, audit_logger):
    """MonitoringService over in-memory stores with a fixed clock."""
    from shims.domains.monitoring.connectors.profile_source import ProfileRosterLoader
    from shims.domains.monitoring.service import MonitoringService

    return MonitoringService(
        submission_store,
        profile_store,
        ProfileRosterLoader(profile_store, profile_source),
        audit_logger=audit_logger,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def static_source_cls() -> type[StaticProfileSource]:
    """The StaticProfileSource class, for tests that need a custom roster or error."""
    return StaticProfileSource
