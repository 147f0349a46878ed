"""API tests for health endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from inventory_ledger import __version__
from inventory_ledger.api.main import app


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_root_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__}


async def test_api_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["uptime_seconds"] >= 0


async def test_db_health(client, ledger_db):
    response = await client.get("/api/health/db")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["available"] is True


async def test_unknown_route_uses_error_format(client):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"
