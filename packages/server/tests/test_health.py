"""
Health check endpoint tests.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from tenantdesk.main import app


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_health_check(client: AsyncClient):
    """Health endpoint should return status ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_ready_check(client: AsyncClient):
    with patch("tenantdesk.main.ping_database", AsyncMock(return_value=True)), \
            patch("tenantdesk.main.ping_redis", AsyncMock(return_value=True)):
        response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


async def test_ready_reports_failing_dependency(client: AsyncClient):
    with patch("tenantdesk.main.ping_database", AsyncMock(return_value=True)), \
            patch("tenantdesk.main.ping_redis", AsyncMock(return_value=False)):
        response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "unavailable", "checks": {"database": True, "redis": False}}


async def test_security_headers_on_app(client: AsyncClient):
    response = await client.get("/health")
    assert response.headers["X-Frame-Options"] == "DENY"


async def test_api_root(client: AsyncClient):
    """API v1 root should return version and endpoint list."""
    response = await client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["api"] == "v1"
    assert "/orgs/{org_id}/projects" in data["endpoints"]
