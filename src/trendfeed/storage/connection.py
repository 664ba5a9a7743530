"""SQLite connection management."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

_MEMORY_DB = ":memory:"


def _ensure_parent_dir(database_path: str) -> None:
    if database_path != _MEMORY_DB:
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def get_connection(
    database_path: str, timeout: float = 5.0
) -> Generator[sqlite3.Connection, None, None]:
    """Open a SQLite connection in WAL mode, creating the parent directory.

    Commits on clean exit, rolls back on exception, and always closes.
    ``timeout`` is how long a writer waits on a locked database.
    """
    _ensure_parent_dir(database_path)
    conn = sqlite3.connect(database_path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
