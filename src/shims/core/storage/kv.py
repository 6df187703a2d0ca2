"""Key-value persistence — the get/set/remove seam the stores are built on.

Stores receive a ``KeyValueStore`` explicitly instead of reaching for
process-wide state, so tests can swap in :class:`InMemoryKeyValueStore`.
All implementations are last-writer-wins with no transactions across keys.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from shims.core.storage.database import MonitoringDatabase
from shims.core.storage.encryption import ValueEncryptor

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """String-keyed store of serialized values."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete ``key``. Removing an absent key is a no-op."""
        ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteKeyValueStore:
    """Key-value store persisted in the ``kv_store`` table.

    Usage::

        db = MonitoringDatabase("~/.shims/monitoring.db")
        db.initialize()
        store = SqliteKeyValueStore(db)
        store.set("shims_demo_profiles", "[]")
    """

    def __init__(self, database: MonitoringDatabase) -> None:
        self._db = database

    def get(self, key: str) -> str | None:
        row = self._db.connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        conn = self._db.connection
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, datetime('now'))
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = excluded.updated_at""",
            (key, value),
        )
        conn.commit()
        logger.debug("Stored key %s (%d chars)", key, len(value))

    def remove(self, key: str) -> None:
        conn = self._db.connection
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
        logger.debug("Removed key %s", key)


class EncryptedKeyValueStore:
    """Wraps another store, encrypting values on write and decrypting on read.

    ``get`` raises :class:`~shims.core.storage.encryption.EncryptionError`
    when a stored token cannot be decrypted; readers treat that as a corrupt
    value.
    """

    def __init__(self, inner: KeyValueStore, encryptor: ValueEncryptor) -> None:
        self._inner = inner
        self._enc = encryptor

    def get(self, key: str) -> str | None:
        token = self._inner.get(key)
        if token is None:
            return None
        return self._enc.decrypt(token)

    def set(self, key: str, value: str) -> None:
        self._inner.set(key, self._enc.encrypt(value))

    def remove(self, key: str) -> None:
        self._inner.remove(key)
