"""
Pooled aiosqlite connections with ambient transactions.

While a task is inside ``transaction()``, every ``acquire()`` or nested
``transaction()`` made by that task gets the same connection. Store methods
therefore compose into one atomic unit without passing connections around:
the outermost block commits or rolls back for all of them.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path

import aiosqlite

from inventory_ledger.config import get_logger, get_settings

logger = get_logger(__name__)

_active_connection: ContextVar[aiosqlite.Connection | None] = ContextVar(
    "ledger_transaction_connection", default=None
)


def in_transaction() -> bool:
    """True if the current task is inside an ambient transaction."""
    return _active_connection.get() is not None


class ConnectionPool:
    """Fixed number of connections to one SQLite file, handed out in turn."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 5,
        busy_timeout: int = 30000,
        synchronous: str = "NORMAL",
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self.synchronous = synchronous

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue(maxsize=pool_size)
        self._connections: list[aiosqlite.Connection] = []
        self._open = False
        self._guard = asyncio.Lock()

    @property
    def available(self) -> int:
        """Connections currently idle in the pool."""
        return self._idle.qsize()

    async def initialize(self) -> None:
        """Open every connection. Safe to call more than once."""
        async with self._guard:
            if self._open:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._connect()
                self._connections.append(conn)
                self._idle.put_nowait(conn)
            self._open = True
        logger.info(
            "connection_pool_opened",
            db_path=str(self.db_path),
            pool_size=self.pool_size,
        )

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        for pragma in (
            "journal_mode=WAL",
            f"synchronous={self.synchronous}",
            f"busy_timeout={int(self.busy_timeout)}",
            "foreign_keys=ON",
        ):
            await conn.execute(f"PRAGMA {pragma}")
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection; inside a transaction, borrow its connection.

        Usage:
            async with pool.acquire() as conn:
                await conn.execute(...)
        """
        current = _active_connection.get()
        if current is not None:
            yield current
            return

        if not self._open:
            await self.initialize()
        conn = await self._idle.get()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(
        self, immediate: bool = False
    ) -> AsyncIterator[aiosqlite.Connection]:
        """
        Open (or join) the task's ambient transaction.

        Only the outermost block commits. It rolls back on any exception,
        task cancellation included.

        ``immediate`` takes SQLite's write lock before the first statement,
        so reads made inside the block cannot be overtaken by a writer in
        another connection or process. A joined block keeps the outer
        block's mode.
        """
        current = _active_connection.get()
        if current is not None:
            yield current
            return

        async with self.acquire() as conn:
            if immediate:
                await conn.execute("BEGIN IMMEDIATE")
            token = _active_connection.set(conn)
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()
            finally:
                _active_connection.reset(token)

    async def ping(self) -> float:
        """Round-trip a trivial query; returns latency in milliseconds."""
        start = time.perf_counter()
        async with self.acquire() as conn:
            await conn.execute("SELECT 1")
        return (time.perf_counter() - start) * 1000

    async def close(self) -> None:
        """Close all connections; the pool can be initialized again later."""
        async with self._guard:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
            self._idle = asyncio.Queue(maxsize=self.pool_size)
            self._open = False
        logger.info("connection_pool_closed", db_path=str(self.db_path))


_pool: ConnectionPool | None = None


async def get_pool() -> ConnectionPool:
    """Process-wide pool, opened on first use from storage settings."""
    global _pool
    if _pool is None:
        storage = get_settings().storage
        _pool = ConnectionPool(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
            synchronous=storage.synchronous,
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
    """Borrow a connection from the process-wide pool."""
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(immediate: bool = False) -> AsyncIterator[aiosqlite.Connection]:
    """Open or join the ambient transaction on the process-wide pool."""
    pool = await get_pool()
    async with pool.transaction(immediate=immediate) as conn:
        yield conn
