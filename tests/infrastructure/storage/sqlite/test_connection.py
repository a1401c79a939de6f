"""Unit tests for SQLite connection pool."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import aiosqlite
import pytest

import kasebyar.infrastructure.storage.sqlite.connection as conn_module
from kasebyar.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)


class TestConnectionPoolInit:
    """Tests for ConnectionPool initialization."""

    def test_defaults(self, temp_db_path: Path):
        """Fresh pools are lazy: no connections until first use."""
        pool = ConnectionPool(temp_db_path)
        assert pool.db_path == temp_db_path
        assert pool.pool_size == 5
        assert pool.busy_timeout == 30000
        assert pool._initialized is False
        assert pool._connections == []

    def test_custom_sizes(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=10, busy_timeout=60000)
        assert pool.pool_size == 10
        assert pool.busy_timeout == 60000


class TestConnectionPoolInitialize:
    """Tests for ConnectionPool.initialize()."""

    async def test_initialize_creates_directory(self, tmp_path: Path):
        """Initialize creates database directory if not exists."""
        db_path = tmp_path / "subdir" / "nested" / "test.db"
        pool = ConnectionPool(db_path, pool_size=1)

        await pool.initialize()
        assert db_path.parent.exists()
        await pool.close()

    async def test_initialize_idempotent(self, temp_db_path: Path):
        """Multiple initialize calls are safe."""
        pool = ConnectionPool(temp_db_path, pool_size=2)

        await pool.initialize()
        await pool.initialize()

        assert len(pool._connections) == 2
        assert pool._pool.qsize() == 2
        await pool.close()


class TestConnectionPragmas:
    """Connections come up in WAL mode with foreign keys enforced."""

    async def test_wal_mode(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path)
        conn = await pool._create_connection()
        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].lower() == "wal"
        await conn.close()

    async def test_foreign_keys_enabled(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path)
        conn = await pool._create_connection()
        cursor = await conn.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1
        assert conn.row_factory is aiosqlite.Row
        await conn.close()


class TestConnectionPoolAcquire:
    """Tests for ConnectionPool.acquire()."""

    async def test_acquire_auto_initializes(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        async with pool.acquire() as conn:
            assert isinstance(conn, aiosqlite.Connection)
        assert pool._initialized is True
        await pool.close()

    async def test_acquire_returns_on_exception(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        with pytest.raises(RuntimeError):
            async with pool.acquire():
                raise RuntimeError("boom")
        assert pool._pool.qsize() == 1
        await pool.close()

    async def test_acquire_blocks_when_pool_exhausted(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        async with pool.acquire():
            with pytest.raises(asyncio.TimeoutError):
                async with asyncio.timeout(0.1):
                    async with pool.acquire():
                        pass
        await pool.close()


class TestConnectionPoolTransaction:
    """Tests for ConnectionPool.transaction()."""

    async def test_commits_on_success(self, migrated_db: Path):
        pool = ConnectionPool(migrated_db, pool_size=2)
        async with pool.transaction() as conn:
            await conn.execute("INSERT INTO products (id, name) VALUES ('tea', 'Tea')")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT name FROM products WHERE id = 'tea'")
            assert (await cursor.fetchone())["name"] == "Tea"
        await pool.close()

    async def test_rollbacks_on_exception(self, migrated_db: Path):
        pool = ConnectionPool(migrated_db, pool_size=2)
        with pytest.raises(ValueError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO products (id, name) VALUES ('tea', 'Tea')")
                raise ValueError("abort")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM products")
            assert (await cursor.fetchone())[0] == 0
        await pool.close()

    async def test_writers_are_serialized(self, migrated_db: Path):
        pool = ConnectionPool(migrated_db, pool_size=2)
        order: list[str] = []

        async def writer(name: str) -> None:
            async with pool.transaction():
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(writer("a"), writer("b"))
        assert order == ["a-start", "a-end", "b-start", "b-end"]
        await pool.close()

    async def test_stats_count_outcomes(self, migrated_db: Path):
        pool = ConnectionPool(migrated_db, pool_size=2)
        async with pool.transaction() as conn:
            await conn.execute("INSERT INTO products (id, name) VALUES ('tea', 'Tea')")
        with pytest.raises(aiosqlite.IntegrityError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO products (id, name) VALUES ('tea', 'Tea again')")

        stats = pool.stats()
        assert stats.commits == 1
        assert stats.rollbacks == 1
        assert stats.size == 2
        assert stats.idle == 2
        await pool.close()


class TestGlobalPool:
    """Tests for the module-level pool helpers."""

    async def test_get_pool_returns_same_instance(self, mock_settings):
        conn_module._pool = None

        with patch.object(conn_module, "get_settings", return_value=mock_settings):
            pool1 = await get_pool()
            pool2 = await get_pool()

            assert pool1 is pool2
            assert pool1.db_path == mock_settings.storage.db_path
            assert pool1.pool_size == 2

            await close_pool()
            assert conn_module._pool is None

    async def test_close_pool_safe_when_none(self):
        conn_module._pool = None
        await close_pool()

    async def test_get_transaction_commits(self, pooled_db: Path):
        async with get_transaction() as conn:
            await conn.execute(
                "INSERT INTO parties (id, name, party_type) VALUES ('c1', 'Ahmad', 'customer')"
            )

        async with get_connection() as conn:
            cursor = await conn.execute("SELECT name FROM parties WHERE id = 'c1'")
            row = await cursor.fetchone()
            assert row is not None
