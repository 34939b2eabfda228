"""Pytest fixtures for testing."""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from main import app
from treasury.core.rate_limit import limiter
from treasury.db.base import Base
from treasury.db.seed import seed_accounts
from treasury.db.session import build_engine, build_session_factory, get_db
from treasury.models.account import Account, Currency
from treasury.services.conversion import ConversionTable
from treasury.services.ledger_store import AccountLocks, LedgerStore
from treasury.services.transfer_service import TransferEngine

# Test database URL (SQLite in-memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def reset_limiter():
    """Clear rate limiter counters so tests do not throttle each other."""
    limiter.reset()
    yield
    limiter.reset()


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine, so separate sessions use separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(file_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory over the file-backed engine."""
    return build_session_factory(file_engine)


@pytest.fixture
def conversion_table() -> ConversionTable:
    """Default static rate table."""
    return ConversionTable.from_settings()


@pytest.fixture
def locks() -> AccountLocks:
    """Lock registry private to one test."""
    return AccountLocks()


@pytest.fixture
def store(test_db: AsyncSession, locks: AccountLocks) -> LedgerStore:
    """Ledger store over the in-memory test session."""
    return LedgerStore(test_db, locks=locks)


@pytest.fixture
def transfer_engine(store: LedgerStore, conversion_table: ConversionTable) -> TransferEngine:
    """Transfer engine over the in-memory store, without retry backoff."""
    return TransferEngine(store, conversion_table, retry_backoff=0)


@pytest.fixture
def make_account(store: LedgerStore):
    """Factory creating and committing an account in the test store."""

    async def _make(name: str, currency: Currency | str, balance: str | Decimal = "0") -> Account:
        return await store.run_atomic(
            lambda s: s.create_account(name, currency, Decimal(str(balance)))
        )

    return _make


@pytest_asyncio.fixture
async def usd_and_kes(make_account) -> tuple[Account, Account]:
    """A USD account holding 1000 and an empty KES account."""
    usd = await make_account("A", Currency.USD, "1000")
    kes = await make_account("B", Currency.KES, "0")
    return usd, kes


@pytest_asyncio.fixture
async def seeded_db(test_db: AsyncSession) -> AsyncSession:
    """Test session with the ten starter accounts."""
    await seed_accounts(test_db)
    return test_db


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded_client(seeded_db: AsyncSession, client: AsyncClient) -> AsyncClient:
    """Test client over a database holding the starter accounts."""
    return client
