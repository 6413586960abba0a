# This project was developed with assistance from AI tools.
"""Health check against real PostgreSQL."""

import pytest

pytestmark = pytest.mark.integration


async def test_health_reports_database(client_factory):
    client = await client_factory(None)
    resp = await client.get("/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": {"status": "healthy"}}
    await client.aclose()
