"""SQLite storage implementations."""

from kasebyar.infrastructure.storage.sqlite.activity_sink import SQLiteActivitySink
from kasebyar.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from kasebyar.infrastructure.storage.sqlite.pos_store import SQLitePosStore

# Singleton instances
_pos_store: SQLitePosStore | None = None
_activity_sink: SQLiteActivitySink | None = None


async def get_pos_store() -> SQLitePosStore:
    """Get singleton POS store instance."""
    global _pos_store
    if _pos_store is None:
        _pos_store = SQLitePosStore()
    return _pos_store


async def get_activity_sink() -> SQLiteActivitySink:
    """Get singleton activity sink instance."""
    global _activity_sink
    if _activity_sink is None:
        _activity_sink = SQLiteActivitySink()
    return _activity_sink


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Stores
    "SQLitePosStore",
    "SQLiteActivitySink",
    "get_pos_store",
    "get_activity_sink",
]
