"""
Short-lived SQLite connections for ``SqliteKeyValueStore``.

Each store call runs inside one ``get_connection()`` block, which is also
its transaction: a ``set_many`` batch that fails part-way leaves no rows.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a connection to ``db_path``; commit on exit, roll back on error.

    Missing parent directories are created.  Rows come back as
    ``sqlite3.Row``.  A locked database waits ``busy_timeout_ms`` before
    ``OperationalError`` is raised.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode:
            # lets model-status read while a discover run is saving
            conn.execute("PRAGMA journal_mode = WAL;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
