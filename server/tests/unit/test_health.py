"""Unit tests for health endpoints."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def service_client():
    """Client for the full application, without running its lifespan."""
    from tripqueue.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health_check(service_client):
    """Test the health check endpoint."""
    response = await service_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "tripqueue-api"
    assert "version" in data


@pytest.mark.asyncio
async def test_ready_check(service_client):
    """Test the readiness check endpoint."""
    response = await service_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert "workers" in data["checks"]


@pytest.mark.asyncio
async def test_info_endpoint(service_client):
    """Test the service info endpoint."""
    response = await service_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert data["waiting_list"]["min_booking_window_hours"] == 2
    assert data["waiting_list"]["max_booking_window_hours"] == 48
    assert data["waiting_list"]["max_active_bookings_per_user"] == 3


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    response = await test_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
