#!/usr/bin/env python3
"""
Health check script for Docker containers and deployment.

Checks database connectivity through the application's engine and that the
HTTP service answers on /health. Exits non-zero if either is unhealthy.
"""

import asyncio
import os
import sys
from typing import Any

import httpx
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from treasury.core.config import settings
from treasury.db.session import build_engine


async def check_database(db_url: str) -> dict[str, Any]:
    """Run SELECT 1 against the configured database."""
    engine = build_engine(db_url)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "healthy", "message": "Database connection successful"}
    except SQLAlchemyError as e:
        return {"status": "unhealthy", "message": f"Database error: {e}"}
    finally:
        await engine.dispose()


async def check_api(base_url: str) -> dict[str, Any]:
    """GET /health on the running service."""
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(f"{base_url}/health")
        if response.status_code == 200:
            return {"status": "healthy", "message": "API responding"}
        return {"status": "unhealthy", "message": f"API returned HTTP {response.status_code}"}
    except httpx.RequestError as e:
        return {"status": "unhealthy", "message": f"API error: {e}"}


async def main() -> int:
    """Run health checks and return the process exit code."""
    base_url = os.getenv("HEALTHCHECK_URL", f"http://127.0.0.1:{settings.PORT}")

    results = {
        "Database": await check_database(settings.DATABASE_URL),
        "API": await check_api(base_url),
    }

    for name, result in results.items():
        print(f"{name}: {result['status'].upper()}")
        print(f"  {result['message']}")

    healthy = all(result["status"] == "healthy" for result in results.values())
    print("All systems healthy" if healthy else "Some systems unhealthy")
    return 0 if healthy else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
