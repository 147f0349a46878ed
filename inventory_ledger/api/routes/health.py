"""Liveness and database health endpoints."""

import time

import aiosqlite
from fastapi import APIRouter

from inventory_ledger import __version__
from inventory_ledger.application.dto.responses import (
    ComponentHealthResponse,
    HealthResponse,
)
from inventory_ledger.core.exceptions import LedgerError

router = APIRouter(prefix="/api/health", tags=["health"])

_started_at = time.monotonic()


def _uptime() -> float:
    return time.monotonic() - _started_at


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service status and uptime; touches nothing else."""
    return HealthResponse(status="healthy", version=__version__, uptime_seconds=_uptime())


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Round-trip the connection pool.

    Reports ``unhealthy`` with the error text instead of failing the request,
    so load balancers can read the body.
    """
    from inventory_ledger.infrastructure.storage.sqlite import get_connection_pool

    try:
        pool = await get_connection_pool()
        latency_ms = await pool.ping()
    except (aiosqlite.Error, LedgerError, OSError) as e:
        database = ComponentHealthResponse(name="sqlite", available=False, error=str(e))
    else:
        database = ComponentHealthResponse(
            name="sqlite", available=True, latency_ms=round(latency_ms, 2)
        )

    return HealthResponse(
        status="healthy" if database.available else "unhealthy",
        version=__version__,
        uptime_seconds=_uptime(),
        database=database,
    )
