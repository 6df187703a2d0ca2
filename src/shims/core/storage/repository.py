"""Submission and profile stores over the key-value seam.

Each store keeps one JSON list under a single key and rewrites the whole
list on every change (read-modify-write, last writer wins). Reads are
self-healing: a value that cannot be decrypted or parsed is reported and
treated as empty instead of failing the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from shims.core.storage.encryption import EncryptionError
from shims.core.storage.kv import KeyValueStore
from shims.core.storage.models import Profile, Submission

logger = logging.getLogger(__name__)

STORAGE_KEY_PROFILES = "shims_demo_profiles"
STORAGE_KEY_SUBMISSIONS = "shims_demo_submissions"

# Bounded log: only the newest entries are kept
MAX_SUBMISSIONS = 50


class CorruptValueError(Exception):
    """Raised internally when a stored value cannot be decoded."""


def _read_json_list(store: KeyValueStore, key: str) -> list[Any] | None:
    """Return the decoded list under ``key``, or None if the key is absent.

    Raises:
        CorruptValueError: If the value is undecryptable, not JSON, or not a list.
    """
    try:
        raw = store.get(key)
    except EncryptionError as exc:
        raise CorruptValueError(str(exc)) from exc
    if raw is None:
        return None
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        raise CorruptValueError(f"Invalid JSON under {key!r}: {exc}") from exc
    if not isinstance(decoded, list):
        raise CorruptValueError(
            f"Expected a list under {key!r}, got {type(decoded).__name__}"
        )
    return decoded


def _write_json_list(store: KeyValueStore, key: str, items: list[dict[str, Any]]) -> None:
    store.set(key, json.dumps(items, separators=(",", ":")))


class SubmissionStore:
    """Bounded, newest-first log of check-in submissions.

    Usage::

        store = SubmissionStore(kv_store)
        store.append(submission)
        latest = store.list()[0]
    """

    def __init__(self, kv_store: KeyValueStore, *, key: str = STORAGE_KEY_SUBMISSIONS) -> None:
        self._kv = kv_store
        self._key = key

    def list(self) -> list[Submission]:
        """Return stored submissions, newest first.

        Re-reads the store on every call. A corrupt stored value yields an
        empty list; malformed records inside a readable list are skipped.
        """
        try:
            records = _read_json_list(self._kv, self._key)
        except CorruptValueError as exc:
            logger.warning("Submission log is unreadable, treating as empty: %s", exc)
            return []
        if records is None:
            return []

        submissions = []
        for index, record in enumerate(records):
            try:
                submissions.append(Submission.from_dict(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed submission record at index %d: %r", index, exc)
        return submissions

    def append(self, submission: Submission) -> None:
        """Insert ``submission`` at the front and keep the newest entries only."""
        submissions = [submission, *self.list()][:MAX_SUBMISSIONS]
        _write_json_list(self._kv, self._key, [s.to_dict() for s in submissions])
        logger.info(
            "Saved submission %s (risk=%s, %d stored)",
            submission.id,
            submission.risk_category,
            len(submissions),
        )

    def clear(self) -> None:
        """Remove every stored submission. Irreversible."""
        self._kv.remove(self._key)
        logger.warning("Cleared submission log")

    def count(self) -> int:
        return len(self.list())


class ProfileStore:
    """Cached profile roster under a single key."""

    def __init__(self, kv_store: KeyValueStore, *, key: str = STORAGE_KEY_PROFILES) -> None:
        self._kv = kv_store
        self._key = key

    def load(self) -> list[Profile] | None:
        """Return the cached roster, or None if nothing usable is cached.

        A corrupt cached value is logged and reported as None.
        """
        try:
            records = _read_json_list(self._kv, self._key)
            if records is None:
                return None
            return [Profile.from_dict(record) for record in records]
        except (CorruptValueError, TypeError) as exc:
            logger.error("Cached profile roster is unreadable: %s", exc)
            return None

    def save(self, profiles: list[Profile]) -> None:
        """Replace the cached roster."""
        _write_json_list(self._kv, self._key, [p.to_dict() for p in profiles])
        logger.info("Saved profile roster (%d profiles)", len(profiles))

    def clear(self) -> None:
        self._kv.remove(self._key)
