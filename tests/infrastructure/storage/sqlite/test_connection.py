"""Tests for the connection pool and ambient transactions."""

import asyncio
from pathlib import Path

import pytest

from inventory_ledger.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    in_transaction,
)


@pytest.fixture
async def pool(tmp_path: Path):
    pool = ConnectionPool(tmp_path / "pool.db", pool_size=2, busy_timeout=2000)
    await pool.initialize()
    async with pool.transaction() as conn:
        await conn.execute("CREATE TABLE t (v INTEGER NOT NULL)")
    yield pool
    await pool.close()


async def _count(pool: ConnectionPool) -> int:
    async with pool.acquire() as conn:
        cursor = await conn.execute("SELECT COUNT(*) FROM t")
        return (await cursor.fetchone())[0]


class TestConnectionPool:
    async def test_initialize_is_idempotent(self, pool):
        await pool.initialize()
        assert len(pool._connections) == 2

    async def test_pragmas_applied(self, pool):
        async with pool.acquire() as conn:
            cursor = await conn.execute("PRAGMA foreign_keys")
            assert (await cursor.fetchone())[0] == 1
            cursor = await conn.execute("PRAGMA journal_mode")
            assert (await cursor.fetchone())[0] == "wal"

    async def test_connection_returned_to_pool(self, pool):
        async with pool.acquire():
            assert pool.available == 1
        assert pool.available == 2

    async def test_ping_reports_latency(self, pool):
        assert await pool.ping() >= 0
        assert pool.available == 2

    async def test_close_resets(self, tmp_path):
        pool = ConnectionPool(tmp_path / "c.db", pool_size=1)
        await pool.initialize()
        await pool.close()
        assert pool._connections == []
        assert not pool._open


class TestTransactions:
    async def test_commit_on_success(self, pool):
        async with pool.transaction() as conn:
            await conn.execute("INSERT INTO t (v) VALUES (1)")
        assert await _count(pool) == 1

    async def test_rollback_on_error(self, pool):
        with pytest.raises(RuntimeError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t (v) VALUES (1)")
                raise RuntimeError("boom")
        assert await _count(pool) == 0

    async def test_nested_calls_join_outer_transaction(self, pool):
        with pytest.raises(RuntimeError):
            async with pool.transaction() as outer:
                async with pool.transaction() as inner:
                    assert inner is outer
                    await inner.execute("INSERT INTO t (v) VALUES (1)")
                async with pool.acquire() as reader:
                    assert reader is outer
                raise RuntimeError("after inner committed")
        # Inner block did not commit on its own
        assert await _count(pool) == 0

    async def test_in_transaction_flag(self, pool):
        assert not in_transaction()
        async with pool.transaction():
            assert in_transaction()
        assert not in_transaction()

    async def test_rollback_on_cancellation(self, pool):
        started = asyncio.Event()

        async def writer():
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t (v) VALUES (1)")
                started.set()
                await asyncio.sleep(10)

        task = asyncio.create_task(writer())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await _count(pool) == 0
        assert pool.available == 2

    async def test_immediate_transaction_blocks_other_writers_reads(self, pool):
        entered = asyncio.Event()
        release = asyncio.Event()
        seen = []

        async def first():
            async with pool.transaction(immediate=True) as conn:
                entered.set()
                await release.wait()
                await conn.execute("INSERT INTO t (v) VALUES (1)")

        async def second():
            await entered.wait()
            async with pool.transaction(immediate=True) as conn:
                cursor = await conn.execute("SELECT COUNT(*) FROM t")
                seen.append((await cursor.fetchone())[0])

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await entered.wait()
        await asyncio.sleep(0.05)
        release.set()
        await asyncio.gather(*tasks)
        # second could not read until first committed
        assert seen == [1]

    async def test_concurrent_tasks_do_not_share_transactions(self, pool):
        async def insert(value: int):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t (v) VALUES (?)", (value,))
                await asyncio.sleep(0)

        await asyncio.gather(insert(1), insert(2))
        assert await _count(pool) == 2
