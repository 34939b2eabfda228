"""FastAPI application entry point."""

import logging
import logging.config
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from treasury.api.routes import accounts, health, transactions
from treasury.core.config import settings
from treasury.core.deps import get_conversion_table
from treasury.core.exceptions import AppException, app_exception_handler
from treasury.core.middleware import RequestLoggingMiddleware
from treasury.core.rate_limit import limiter, rate_limit_exceeded_handler
from treasury.db.base import Base
from treasury.db.seed import seed_accounts
from treasury.db.session import AsyncSessionLocal, engine

# Configure logging
logging.config.dictConfig(settings.LOGGING_CONFIG)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events.

    Startup aborts (and the server never accepts requests) if the rate
    table is incomplete or the database cannot be reached.
    """
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    get_conversion_table().validate_complete()

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            # Create tables (use Alembic in production)
            if settings.ENVIRONMENT == "development":
                await conn.run_sync(Base.metadata.create_all)
    except Exception:
        logger.critical("Database unavailable, aborting startup", exc_info=True)
        await engine.dispose()
        raise

    if settings.SEED_ON_STARTUP:
        async with AsyncSessionLocal() as session:
            await seed_accounts(session)

    yield

    logger.info("Shutting down")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Outermost layer: added last
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(accounts.router, prefix="/api/v1/accounts", tags=["accounts"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])
