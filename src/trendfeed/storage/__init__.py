"""Storage layer — key-value persistence over SQLite and typed state access."""

from trendfeed.storage.connection import get_connection
from trendfeed.storage.kv import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from trendfeed.storage.schema import init_db
from trendfeed.storage.state import FeedState

__all__ = [
    "FeedState",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "get_connection",
    "init_db",
]
