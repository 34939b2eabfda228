"""Tests for database transaction context managers.

Tests verify that transaction context managers properly handle:
- Automatic commit on success
- Automatic rollback on exception
- Savepoint management
- Read-only transaction behavior
"""

import logging
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.core.exceptions import InsufficientFunds
from treasury.db.session import read_only_transaction, transactional, with_savepoint
from treasury.models.account import Account, Currency


def new_account(name: str, balance: str = "100.00") -> Account:
    """Unsaved USD account."""
    return Account(name=name, currency=Currency.USD, balance=Decimal(balance))


async def find(db: AsyncSession, *names: str) -> list[Account]:
    result = await db.execute(select(Account).where(Account.name.in_(names)))
    return list(result.scalars().all())


@pytest.mark.asyncio
class TestTransactionalContextManager:
    """Tests for the transactional context manager."""

    async def test_transactional_commits_on_success(self, test_db: AsyncSession) -> None:
        """Test that transactional context commits changes on successful exit."""
        async with transactional(test_db):
            test_db.add(new_account("Committed_USD"))

        accounts = await find(test_db, "Committed_USD")
        assert len(accounts) == 1
        assert accounts[0].balance == Decimal("100.00")
        assert accounts[0].version == 1

    async def test_transactional_rolls_back_on_exception(self, test_db: AsyncSession) -> None:
        """Test that transactional context rolls back on exception."""
        with pytest.raises(ValueError):
            async with transactional(test_db):
                test_db.add(new_account("RolledBack_USD"))
                await test_db.flush()
                raise ValueError("Intentional error for testing")

        assert await find(test_db, "RolledBack_USD") == []

    async def test_transactional_commit_false_does_not_commit(self, test_db: AsyncSession) -> None:
        """Test that commit=False leaves the outcome to the caller."""
        async with transactional(test_db, commit=False):
            test_db.add(new_account("Uncommitted_USD"))
            await test_db.flush()

        await test_db.rollback()
        assert await find(test_db, "Uncommitted_USD") == []

    async def test_transactional_multiple_operations_atomic(self, test_db: AsyncSession) -> None:
        """Test that multiple operations within transaction are atomic."""
        async with transactional(test_db):
            test_db.add(new_account("Atomic_1"))
            test_db.add(new_account("Atomic_2"))

        assert len(await find(test_db, "Atomic_1", "Atomic_2")) == 2

    async def test_transactional_re_raises_exception(self, test_db: AsyncSession) -> None:
        """Test that transactional context re-raises exceptions after rollback."""
        with pytest.raises(RuntimeError) as exc_info:
            async with transactional(test_db):
                test_db.add(new_account("Error_USD"))
                raise RuntimeError("Test error message")

        assert "Test error message" in str(exc_info.value)

    async def test_transactional_application_errors_logged_at_debug(
        self, test_db: AsyncSession, caplog
    ) -> None:
        """Test that expected rejections do not produce ERROR log records."""
        with caplog.at_level(logging.DEBUG, logger="treasury.db.session"):
            with pytest.raises(InsufficientFunds):
                async with transactional(test_db):
                    raise InsufficientFunds(available=Decimal("1"), requested=Decimal("2"))
            with pytest.raises(RuntimeError):
                async with transactional(test_db):
                    raise RuntimeError("disk full")

        levels = [
            (r.levelno, "disk full" in r.getMessage())
            for r in caplog.records
            if r.name == "treasury.db.session" and "rolled back" in r.getMessage()
        ]
        assert levels == [(logging.DEBUG, False), (logging.ERROR, True)]


@pytest.mark.asyncio
class TestReadOnlyTransactionContextManager:
    """Tests for the read_only_transaction context manager."""

    async def test_read_only_transaction_allows_reads(self, test_db: AsyncSession) -> None:
        """Test that read_only_transaction allows query operations."""
        test_db.add(new_account("ReadOnly_USD"))
        await test_db.commit()

        async with read_only_transaction(test_db):
            accounts = await find(test_db, "ReadOnly_USD")

        assert [account.name for account in accounts] == ["ReadOnly_USD"]

    async def test_read_only_transaction_never_commits(self, test_db: AsyncSession) -> None:
        """Test that read_only_transaction doesn't commit added objects."""
        account = new_account("NeverCommitted_USD")

        async with read_only_transaction(test_db):
            test_db.add(account)
            assert account in test_db.new

        await test_db.rollback()
        assert await find(test_db, "NeverCommitted_USD") == []

    async def test_read_only_transaction_re_raises(self, test_db: AsyncSession) -> None:
        """Test that read_only_transaction propagates exceptions."""
        with pytest.raises(ValueError):
            async with read_only_transaction(test_db):
                await find(test_db, "Anything")
                raise ValueError("Read operation failed")


@pytest.mark.asyncio
class TestSavepointContextManager:
    """Tests for the with_savepoint context manager."""

    async def test_savepoint_commits_on_success(self, test_db: AsyncSession) -> None:
        """Test that savepoint work is kept when the context exits successfully."""
        async with transactional(test_db):
            test_db.add(new_account("Outer_USD"))

            async with with_savepoint(test_db, "account_creation"):
                test_db.add(new_account("Savepoint_USD"))

        assert len(await find(test_db, "Outer_USD", "Savepoint_USD")) == 2

    async def test_savepoint_rolls_back_on_exception(self, test_db: AsyncSession) -> None:
        """Test that savepoint rolls back on exception without affecting outer transaction."""
        async with transactional(test_db):
            test_db.add(new_account("OuterSuccess_USD"))

            try:
                async with with_savepoint(test_db, "failed_account"):
                    test_db.add(new_account("SavepointFail_USD"))
                    raise ValueError("Savepoint error")
            except ValueError:
                pass  # Expected error

        assert len(await find(test_db, "OuterSuccess_USD")) == 1
        assert await find(test_db, "SavepointFail_USD") == []

    async def test_savepoint_re_raises_exception(self, test_db: AsyncSession) -> None:
        """Test that savepoint context re-raises exceptions after rollback."""
        async with transactional(test_db):
            test_db.add(new_account("PreSavepoint_USD"))

            with pytest.raises(RuntimeError) as exc_info:
                async with with_savepoint(test_db, "failing_sp"):
                    raise RuntimeError("Savepoint error message")

            assert "Savepoint error message" in str(exc_info.value)

