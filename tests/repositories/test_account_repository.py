"""Tests for AccountRepository."""

from decimal import Decimal

import pytest

from treasury.models.account import Account, Currency
from treasury.repositories.account import AccountRepository
from treasury.schemas.account import AccountCreate


@pytest.mark.asyncio
async def test_get_by_name(test_db):
    """Test getting an account by its name."""
    repo = AccountRepository(Account, test_db)
    test_db.add(Account(name="Bank_USD_1", currency=Currency.USD, balance=Decimal("10.00")))
    await test_db.commit()

    account = await repo.get_by_name("Bank_USD_1")

    assert account is not None
    assert account.version == 1
    assert await repo.get_by_name("bank_usd_1") is None


@pytest.mark.asyncio
async def test_create_from_schema(test_db):
    """Test creating an account from a Pydantic schema."""
    repo = AccountRepository(Account, test_db)

    account = await repo.create(
        obj_in=AccountCreate(name="Wallet_NGN_9", currency=Currency.NGN, balance=Decimal("5"))
    )
    await test_db.commit()

    assert account.id is not None
    assert await repo.exists_by_name("Wallet_NGN_9")
    assert not await repo.exists_by_name("Wallet_NGN_10")


@pytest.mark.asyncio
async def test_update_balance_bumps_version(test_db):
    """Test that an unconditional write increments the version."""
    repo = AccountRepository(Account, test_db)
    test_db.add(Account(name="Versioned", currency=Currency.KES, balance=Decimal("1.00")))
    await test_db.commit()

    assert await repo.update_balance("Versioned", Decimal("2.00")) == 1
    await test_db.commit()

    account = await repo.get_by_name("Versioned")
    assert account.balance == Decimal("2.00")
    assert account.version == 2


@pytest.mark.asyncio
async def test_update_balance_compare_and_swap(test_db):
    """Test that a stale expected version updates nothing."""
    repo = AccountRepository(Account, test_db)
    test_db.add(Account(name="Cas", currency=Currency.USD, balance=Decimal("1.00")))
    await test_db.commit()

    assert await repo.update_balance("Cas", Decimal("5"), expected_version=1) == 1
    assert await repo.update_balance("Cas", Decimal("9"), expected_version=1) == 0
    assert await repo.update_balance("Missing", Decimal("9")) == 0
    await test_db.commit()

    assert (await repo.get_by_name("Cas")).balance == Decimal("5.00")


@pytest.mark.asyncio
async def test_reads_see_external_writes(test_db):
    """Test that a cached instance is refreshed by the next read."""
    repo = AccountRepository(Account, test_db)
    account = Account(name="Fresh", currency=Currency.USD, balance=Decimal("1.00"))
    test_db.add(account)
    await test_db.commit()

    # Bulk UPDATE bypasses the identity map
    await repo.update_balance("Fresh", Decimal("3.00"))
    await test_db.commit()

    assert (await repo.get_by_name("Fresh")).balance == Decimal("3.00")
    assert account.balance == Decimal("3.00")


@pytest.mark.asyncio
async def test_delete_by_name(test_db):
    """Test deleting an account by name."""
    repo = AccountRepository(Account, test_db)
    test_db.add(Account(name="Temp", currency=Currency.NGN))
    await test_db.commit()

    deleted = await repo.delete_by_name("Temp")
    await test_db.commit()

    assert deleted is not None and deleted.name == "Temp"
    assert await repo.delete_by_name("Temp") is None


@pytest.mark.asyncio
async def test_aggregate_by_currency_empty(test_db):
    """Test aggregation over no accounts."""
    repo = AccountRepository(Account, test_db)

    assert await repo.aggregate_by_currency() == []
