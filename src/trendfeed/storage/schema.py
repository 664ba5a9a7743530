"""Database schema definition and initialization."""

from __future__ import annotations

import logging

from trendfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Key-value blobs: app config, merged feed, per-source caches, metadata
CREATE TABLE IF NOT EXISTS kv (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,          -- JSON
    updated_at  TEXT NOT NULL
);
"""


def init_db(database_path: str) -> None:
    """Create tables if they do not exist. Safe to call repeatedly."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
    logger.info("Database initialized at %s", database_path)
