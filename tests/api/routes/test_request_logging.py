"""Tests for request logging middleware."""

import logging

import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def test_process_time_header(client: AsyncClient) -> None:
    """Test that API responses carry X-Process-Time."""
    response = await client.get("/api/v1/accounts")

    assert response.status_code == 200
    assert float(response.headers["X-Process-Time"]) >= 0


async def test_health_is_not_logged(client: AsyncClient, caplog) -> None:
    """Test that health checks skip logging and timing."""
    with caplog.at_level(logging.INFO, logger="treasury.core.middleware"):
        response = await client.get("/health")

    assert "X-Process-Time" not in response.headers
    middleware_messages = [
        r.getMessage() for r in caplog.records if r.name == "treasury.core.middleware"
    ]
    assert not any("/health" in message for message in middleware_messages)


async def test_request_and_response_logged(client: AsyncClient, caplog) -> None:
    """Test that a request is logged on the way in and out."""
    with caplog.at_level(logging.INFO, logger="treasury.core.middleware"):
        await client.get("/api/v1/accounts")

    messages = [r.getMessage() for r in caplog.records if r.name == "treasury.core.middleware"]
    assert messages[0].startswith("→ GET /api/v1/accounts")
    assert messages[1].startswith("← GET /api/v1/accounts - 200")


async def test_errors_logged_as_warning(client: AsyncClient, caplog) -> None:
    """Test that 4xx responses are logged at WARNING."""
    with caplog.at_level(logging.INFO, logger="treasury.core.middleware"):
        await client.get("/api/v1/accounts/Missing")

    outcome = [
        r for r in caplog.records
        if r.name == "treasury.core.middleware" and r.getMessage().startswith("←")
    ]
    assert outcome[0].levelno == logging.WARNING
    assert "404" in outcome[0].getMessage()
