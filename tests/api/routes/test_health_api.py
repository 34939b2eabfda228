"""Tests for health check endpoints."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from main import app
from treasury.core.config import settings
from treasury.db.session import get_db

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def test_health(client: AsyncClient) -> None:
    """Test the liveness endpoint."""
    response = await client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
    }


async def test_database_health(client: AsyncClient) -> None:
    """Test the database health endpoint against a working database."""
    response = await client.get("/health/db")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["database"] == "connected"


async def test_database_health_unavailable(client: AsyncClient) -> None:
    """Test that an unreachable database reports 503."""

    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    async def broken_db() -> AsyncGenerator[BrokenSession, None]:
        yield BrokenSession()

    app.dependency_overrides[get_db] = broken_db

    response = await client.get("/health/db")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["status"] == "unhealthy"
