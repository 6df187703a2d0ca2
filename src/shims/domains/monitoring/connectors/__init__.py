"""Profile roster connectors — where the patient roster comes from."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from shims.core.storage.models import Profile


@runtime_checkable
class ProfileSource(Protocol):
    """Abstract interface for loading the initial profile roster.

    The roster loader calls this once, then serves the cached copy.
    """

    async def load(self) -> list[Profile]:
        """Return the roster, raising ProfileSourceError if unavailable."""
        ...

    @property
    def source_name(self) -> str:
        """Label for the dataset: 'bundled' or a file path."""
        ...
