"""Tests for GET /api/health and the service root."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["database"] == "ok"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "StudyHub API"
    assert data["health"] == "/api/health"


@pytest.mark.asyncio
async def test_process_time_header(client: AsyncClient):
    resp = await client.get("/api/health")
    assert resp.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_unknown_route_uses_failure_envelope(client: AsyncClient):
    resp = await client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Not Found"}
