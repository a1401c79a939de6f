"""
aiosqlite connection pool.

Connections run in autocommit mode, so reads always see the latest
committed state. Writes go through ``transaction()``, which takes the
pool's write lock and opens ``BEGIN IMMEDIATE``: one settlement at a time,
each all-or-nothing.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from kasebyar.config import get_logger, get_settings

logger = get_logger(__name__)

PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


@dataclass
class PoolStats:
    size: int
    idle: int
    commits: int
    rollbacks: int
    write_wait_ms: float  # longest wait for the write lock so far


class ConnectionPool:
    """Fixed-size pool of autocommit connections plus a single write lock."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout

        self._pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._initialized = False
        self._lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._commits = 0
        self._rollbacks = 0
        self._max_write_wait = 0.0

    async def initialize(self) -> None:
        async with self._lock:
            if self._initialized:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._create_connection()
                self._connections.append(conn)
                self._pool.put_nowait(conn)
            self._initialized = True
            logger.info("connection_pool_initialized", db_path=str(self.db_path), pool_size=self.pool_size)

    async def _create_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        for pragma in PRAGMAS:
            await conn.execute(pragma)
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection; it goes back to the pool even if the block raises."""
        if not self._initialized:
            await self.initialize()
        conn = await self._pool.get()
        try:
            yield conn
        finally:
            self._pool.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run the block as one write transaction.

        Commits when the block finishes, rolls back and re-raises on any
        exception. Writers queue on the write lock in arrival order.
        """
        started = time.perf_counter()
        async with self._write_lock:
            waited_ms = (time.perf_counter() - started) * 1000
            self._max_write_wait = max(self._max_write_wait, waited_ms)
            async with self.acquire() as conn:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException as e:
                    await conn.execute("ROLLBACK")
                    self._rollbacks += 1
                    logger.debug("transaction_rolled_back", error_type=type(e).__name__)
                    raise
                await conn.execute("COMMIT")
                self._commits += 1

    def stats(self) -> PoolStats:
        return PoolStats(
            size=len(self._connections),
            idle=self._pool.qsize(),
            commits=self._commits,
            rollbacks=self._rollbacks,
            write_wait_ms=round(self._max_write_wait, 2),
        )

    async def close(self) -> None:
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._pool = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False
            logger.info("connection_pool_closed", commits=self._commits, rollbacks=self._rollbacks)


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """The process-wide pool, opened on first use from storage settings."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
        )
        await _pool.initialize()
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[aiosqlite.Connection]:
    """Read connection from the global pool."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Write transaction on the global pool."""
    pool = await get_pool()
    async with pool.transaction() as conn:
        yield conn
