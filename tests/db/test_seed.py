"""Tests for seeding the starter accounts."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.core.constants import SEED_ACCOUNTS
from treasury.db.seed import seed_accounts
from treasury.models.account import Currency
from treasury.services.ledger_store import LedgerStore

pytestmark = pytest.mark.asyncio


async def test_seed_creates_starter_accounts(test_db: AsyncSession) -> None:
    """Test that an empty ledger receives all ten accounts."""
    created = await seed_accounts(test_db)

    accounts = await LedgerStore(test_db).list_accounts()
    assert len(created) == 10
    assert {account.name for account in accounts} == {name for name, _, _ in SEED_ACCOUNTS}


async def test_seed_is_idempotent(test_db: AsyncSession) -> None:
    """Test that seeding twice creates nothing the second time."""
    await seed_accounts(test_db)

    assert await seed_accounts(test_db) == []
    assert len(await LedgerStore(test_db).list_accounts()) == 10


async def test_seed_never_overwrites(test_db: AsyncSession) -> None:
    """Test that an existing account keeps its balance and currency."""
    store = LedgerStore(test_db)
    await store.run_atomic(
        lambda s: s.create_account("Bank_USD_1", Currency.USD, Decimal("1.00"))
    )

    created = await seed_accounts(test_db)

    assert "Bank_USD_1" not in created
    assert len(created) == 9
    assert (await store.get_account("Bank_USD_1")).balance == Decimal("1.00")


async def test_seed_balances(test_db: AsyncSession) -> None:
    """Test a few of the seeded balances."""
    await seed_accounts(test_db)
    store = LedgerStore(test_db)

    assert (await store.get_account("Mpesa_KES_1")).balance == Decimal("50000.00")
    assert (await store.get_account("Bank_NGN_2")).currency == Currency.NGN
    assert (await store.get_account("Wallet_USD_1")).balance == Decimal("2500.00")
