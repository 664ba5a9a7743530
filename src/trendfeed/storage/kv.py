"""Key-value persistence — JSON blobs addressed by string keys."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from trendfeed.storage.connection import get_connection
from trendfeed.storage.schema import init_db

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async key-value capability.

    ``get`` omits absent keys instead of raising. ``set`` applies the whole
    mapping or none of it.
    """

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]: ...

    @abstractmethod
    async def set(self, mapping: Mapping[str, Any]) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: json.loads(self._data[key]) for key in keys if key in self._data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        # Serialize everything before mutating so a bad value writes nothing.
        encoded = {key: json.dumps(value) for key, value in mapping.items()}
        self._data.update(encoded)

    async def clear(self) -> None:
        self._data.clear()


class SQLiteKeyValueStore(KeyValueStore):
    """Store backed by the ``kv`` table. Blocking I/O runs in a worker thread."""

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        init_db(database_path)

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return await asyncio.to_thread(self._get, list(keys))

    async def set(self, mapping: Mapping[str, Any]) -> None:
        encoded = [(key, json.dumps(value)) for key, value in mapping.items()]
        if encoded:
            await asyncio.to_thread(self._set, encoded)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    def _get(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        with get_connection(self._database_path) as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv WHERE key IN ({placeholders})", keys
            ).fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}

    def _set(self, encoded: list[tuple[str, str]]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with get_connection(self._database_path) as conn:
            conn.executemany(
                "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "updated_at = excluded.updated_at",
                [(key, value, now) for key, value in encoded],
            )
        logger.debug("Stored %d keys", len(encoded))

    def _clear(self) -> None:
        with get_connection(self._database_path) as conn:
            conn.execute("DELETE FROM kv")
        logger.info("Cleared key-value store at %s", self._database_path)
