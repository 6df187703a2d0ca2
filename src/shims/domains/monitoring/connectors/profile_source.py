"""Profile roster loading — bundled dataset plus a cache-first loader.

The roster is seeded from a JSON dataset on first use and cached in the
local store; afterwards the cached copy (with any reconciled updates) is
authoritative.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shims.core.storage.models import Profile
from shims.core.storage.repository import ProfileStore
from shims.domains.monitoring.connectors import ProfileSource

logger = logging.getLogger(__name__)

BUNDLED_DATASET = Path(__file__).resolve().parent / "sample_profiles.json"


class ProfileSourceError(Exception):
    """Raised when the profile dataset cannot be loaded."""


class BundledProfileSource:
    """Reads the roster from a JSON file (the bundled sample by default)."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path).expanduser() if path else BUNDLED_DATASET

    @property
    def source_name(self) -> str:
        return "bundled" if self._path == BUNDLED_DATASET else str(self._path)

    async def load(self) -> list[Profile]:
        """Parse the dataset file.

        Raises:
            ProfileSourceError: If the file is missing, not JSON, or not a
                list of profile objects.
        """
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ProfileSourceError(f"Failed to read {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProfileSourceError(f"Invalid JSON in {self._path}: {exc}") from exc

        if not isinstance(payload, list):
            raise ProfileSourceError(
                f"Expected a list of profiles in {self._path}, got {type(payload).__name__}"
            )
        try:
            return [Profile.from_dict(item) for item in payload]
        except TypeError as exc:
            raise ProfileSourceError(f"Malformed profile in {self._path}: {exc}") from exc


class ProfileRosterLoader:
    """Returns the cached roster, seeding the cache from a source on first use.

    Usage::

        loader = ProfileRosterLoader(ProfileStore(kv), BundledProfileSource())
        profiles = await loader.load()
    """

    def __init__(self, profile_store: ProfileStore, source: ProfileSource) -> None:
        self._store = profile_store
        self._source = source

    async def load(self) -> list[Profile]:
        """Load the roster.

        Raises:
            ProfileSourceError: If nothing is cached and the source fails.
        """
        cached = self._store.load()
        if cached is not None:
            return cached

        profiles = await self._source.load()
        self._store.save(profiles)
        logger.info(
            "Seeded profile roster from %s (%d profiles)",
            self._source.source_name,
            len(profiles),
        )
        return profiles
