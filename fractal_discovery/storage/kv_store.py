"""
String key-value persistence.

The engine persists three records (model blob, model metadata, favorites)
as JSON text under string keys.  ``KeyValueStore`` is the whole storage
contract; two implementations ship:

  - ``InMemoryKeyValueStore`` — a dict; tests and throwaway sessions.
  - ``SqliteKeyValueStore``   — one ``kv_store`` table in a SQLite file.

``set_many`` is atomic: either every pair is written or none is.  The
lifecycle manager relies on it to keep the model blob and its metadata
from disagreeing after a partial write.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from fractal_discovery.storage.connection import get_connection
from fractal_discovery.storage.schema import apply_schema

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract string → string store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value for ``key``, or ``None`` if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Insert or replace ``key``."""

    @abstractmethod
    def set_many(self, items: Mapping[str, str]) -> None:
        """Insert or replace every pair atomically."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; a missing key is not an error."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_value(key, value)
        self._data[key] = value

    def set_many(self, items: Mapping[str, str]) -> None:
        staged = dict(items)
        for key, value in staged.items():
            self._check_value(key, value)
        self._data.update(staged)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    @staticmethod
    def _check_value(key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(
                f"Value for '{key}' must be str, got {type(value).__name__}."
            )


class SqliteKeyValueStore(KeyValueStore):
    """Store backed by the ``kv_store`` table of a SQLite file.

    Each call opens a short-lived connection via ``get_connection()``, so the
    store is safe to share between CLI invocations.  ``":memory:"`` is not
    supported (every connection would see a fresh database); use
    ``InMemoryKeyValueStore`` instead.
    """

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        if db_path == ":memory:":
            raise ValueError(
                "SqliteKeyValueStore needs a file path; use InMemoryKeyValueStore "
                "for in-memory storage."
            )
        self.db_path = db_path
        self._wal_mode = wal_mode
        self._busy_timeout_ms = busy_timeout_ms

        with self._connect() as conn:
            apply_schema(conn)

    def _connect(self):
        return get_connection(self.db_path, self._wal_mode, self._busy_timeout_ms)

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?;", (key,)
            ).fetchone()
        return row["value"] if row is not None else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        rows = [(key, value) for key, value in items.items()]
        for key, value in rows:
            if not isinstance(value, str):
                raise TypeError(
                    f"Value for '{key}' must be str, got {type(value).__name__}."
                )
        # get_connection() commits once on exit, so the batch is one transaction.
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at;
                """,
                rows,
            )
        logger.debug("kv_store: wrote %d key(s)", len(rows))

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))

    def keys(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key;").fetchall()
        return [row["key"] for row in rows]
