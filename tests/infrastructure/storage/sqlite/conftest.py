"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import kasebyar.infrastructure.storage.sqlite.connection as conn_module
from kasebyar.infrastructure.storage.sqlite import (
    SQLiteActivitySink,
    SQLitePosStore,
    close_pool,
)
from kasebyar.infrastructure.storage.sqlite.migrations.migrator import initialize_database


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    return mock


@pytest.fixture
async def migrated_db(temp_db_path: Path) -> Path:
    """Temporary database with every migration applied."""
    results = await initialize_database(temp_db_path, create_backup_before=False)
    assert all(r.success for r in results)
    return temp_db_path


@pytest.fixture
async def pooled_db(mock_settings, migrated_db: Path) -> AsyncGenerator[Path, None]:
    """Point the global pool at the migrated temp database."""
    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            yield migrated_db
        finally:
            await close_pool()


@pytest.fixture
def store(pooled_db: Path) -> SQLitePosStore:
    return SQLitePosStore()


@pytest.fixture
def activity_store(pooled_db: Path) -> SQLiteActivitySink:
    return SQLiteActivitySink()
