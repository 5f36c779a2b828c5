"""
SQLite schema DDL for the key-value store.

One table holds every persisted record (model blob, model metadata,
favorites list).  Values are JSON text; the engine never queries inside them.

``apply_schema()`` is idempotent (``IF NOT EXISTS``).
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_KV_STORE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT    PRIMARY KEY,
    value       TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

ALL_TABLE_NAMES: tuple[str, ...] = ("kv_store",)

_ALL_DDL: tuple[str, ...] = (_DDL_KV_STORE,)


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create the key-value table on ``conn`` if it does not exist."""
    for ddl in _ALL_DDL:
        conn.execute(ddl)
    conn.commit()
    logger.debug("Schema applied: %d table(s) created/verified.", len(ALL_TABLE_NAMES))

