"""Ledger store: durable accounts and transaction log with an atomic commit.

``LedgerStore`` wraps one ``AsyncSession`` and is the only component that
mutates ledger state. Individual operations flush but never commit; durable,
all-or-nothing changes go through ``run_atomic``.

Concurrency contract:
- ``lock_accounts`` serializes work on the same accounts inside this
  process. Locks are taken in sorted name order, so two transfers over the
  same pair in opposite directions cannot deadlock.
- ``set_balance(..., expected_version=...)`` is a compare-and-swap on the
  account's ``version`` column, so writers in other processes sharing the
  database cannot cause a lost update either. A stale version raises
  ``ConcurrentUpdateError`` and the surrounding unit of work rolls back.
- Every account read re-fetches the row; balances are never cached.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from treasury.core.exceptions import (
    ConcurrentUpdateError,
    DuplicateName,
    InvalidCurrency,
    NegativeBalance,
    NotFoundError,
)
from treasury.db.session import transactional, with_savepoint
from treasury.models.account import Account, Currency
from treasury.models.transaction import Transaction, TransactionStatus
from treasury.repositories.account import AccountRepository
from treasury.repositories.transaction import TransactionRepository
from treasury.services.conversion import quantize_money

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AccountLocks:
    """Per-account asyncio locks acquired in a fixed (sorted) order.

    Entries are reference counted and dropped once no task holds or waits
    for them, so the registry does not grow with the number of accounts
    ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, *names: str) -> AsyncIterator[None]:
        """Hold the locks for ``names`` for the duration of the block."""
        ordered = sorted(set(names))
        for name in ordered:
            self._users[name] = self._users.get(name, 0) + 1
            self._locks.setdefault(name, asyncio.Lock())

        acquired: list[str] = []
        try:
            for name in ordered:
                await self._locks[name].acquire()
                acquired.append(name)
            yield
        finally:
            for name in reversed(acquired):
                self._locks[name].release()
            for name in ordered:
                self._users[name] -= 1
                if self._users[name] == 0:
                    del self._users[name]
                    del self._locks[name]

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every store in the process
account_locks = AccountLocks()


def coerce_currency(value: Currency | str) -> Currency:
    """Parse a currency code, raising InvalidCurrency for unknown codes."""
    try:
        return Currency(value.upper() if isinstance(value, str) else value)
    except ValueError:
        allowed = ", ".join(c.value for c in Currency)
        raise InvalidCurrency(
            f"Invalid currency {value!r}. Must be one of: {allowed}",
            errors=[{"field": "currency", "message": f"Must be one of: {allowed}"}],
        ) from None


class LedgerStore:
    """Durable state for accounts and transactions over one session.

    Example:
        >>> store = LedgerStore(db)
        >>> account = await store.run_atomic(
        ...     lambda s: s.create_account("Bank_USD_9", Currency.USD, Decimal("10"))
        ... )
    """

    def __init__(self, db: AsyncSession, *, locks: AccountLocks | None = None):
        self.db = db
        self.accounts = AccountRepository(Account, db)
        self.transactions = TransactionRepository(Transaction, db)
        self.locks = locks if locks is not None else account_locks

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    async def run_atomic(self, work: Callable[["LedgerStore"], Awaitable[T]]) -> T:
        """Run ``work`` as a single all-or-nothing database transaction.

        Commits when ``work`` returns, rolls back and re-raises on any
        exception. Nothing ``work`` did is visible to other sessions until
        the commit.

        Args:
            work: Async callable receiving this store

        Returns:
            Whatever ``work`` returned
        """
        async with transactional(self.db):
            return await work(self)

    def lock_accounts(self, *names: str):
        """Serialize access to the named accounts within this process."""
        return self.locks.hold(*names)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def get_account(self, name: str, *, for_update: bool = False) -> Account | None:
        """Look up an account by name, always reading current state."""
        return await self.accounts.get_by_name(name, for_update=for_update)

    async def require_account(self, name: str) -> Account:
        """Look up an account by name or raise NotFoundError."""
        account = await self.get_account(name)
        if account is None:
            raise NotFoundError(f"Account {name} not found")
        return account

    async def list_accounts(self, currency: Currency | str | None = None) -> list[Account]:
        """List accounts ordered by currency, then name."""
        if currency is not None:
            currency = coerce_currency(currency)
        return await self.accounts.list_ordered(currency)

    async def create_account(
        self,
        name: str,
        currency: Currency | str,
        initial_balance: Decimal = Decimal("0"),
    ) -> Account:
        """Create an account.

        Args:
            name: Unique account name
            currency: One of the supported currency codes
            initial_balance: Starting balance (must be non-negative)

        Returns:
            The new account (flushed, not committed)

        Raises:
            InvalidCurrency: Unknown currency code
            NegativeBalance: ``initial_balance < 0``
            DuplicateName: ``name`` already exists
        """
        account_currency = coerce_currency(currency)
        if initial_balance < 0:
            raise NegativeBalance(
                errors=[{"field": "balance", "message": "Balance cannot be negative"}]
            )
        if await self.accounts.exists_by_name(name):
            raise DuplicateName(f"Account with name {name} already exists")

        try:
            async with with_savepoint(self.db, "create_account"):
                account = await self.accounts.create(
                    obj_in={
                        "name": name,
                        "currency": account_currency,
                        "balance": quantize_money(Decimal(initial_balance)),
                    }
                )
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same name
            raise DuplicateName(f"Account with name {name} already exists") from e

        logger.info(f"Created account {name} ({account_currency.value}) balance={account.balance}")
        return account

    async def set_balance(
        self,
        name: str,
        new_balance: Decimal,
        *,
        expected_version: int | None = None,
    ) -> Account:
        """Write an account balance. The only balance mutation path.

        Args:
            name: Account name
            new_balance: Balance to store
            expected_version: When given, only write if the account still has
                this version (compare-and-swap)

        Returns:
            The account as stored after the write

        Raises:
            NegativeBalance: ``new_balance < 0``
            NotFoundError: No such account
            ConcurrentUpdateError: Version changed since it was read
        """
        if new_balance < 0:
            raise NegativeBalance(
                errors=[{"field": "balance", "message": "Balance cannot be negative"}]
            )

        updated = await self.accounts.update_balance(
            name, quantize_money(new_balance), expected_version=expected_version
        )
        if updated == 0:
            if expected_version is not None and await self.accounts.exists_by_name(name):
                raise ConcurrentUpdateError(
                    f"Account {name} changed since version {expected_version} was read"
                )
            raise NotFoundError(f"Account {name} not found")

        return await self.require_account(name)

    async def delete_account(self, name: str) -> None:
        """Delete an account.

        Historical transactions naming the account are left untouched.

        Raises:
            NotFoundError: No such account
        """
        deleted = await self.accounts.delete_by_name(name)
        if deleted is None:
            raise NotFoundError(f"Account {name} not found")
        logger.info(f"Deleted account {name}")

    async def aggregate_balances(self) -> list[dict[str, Any]]:
        """Total balance and account count per currency, ordered by currency."""
        return [
            {"currency": currency, "total_balance": total, "account_count": count}
            for currency, total, count in await self.accounts.aggregate_by_currency()
        ]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def append_transaction(self, record: dict[str, Any]) -> Transaction:
        """Append a transaction record to the log.

        Args:
            record: Column values; ``transaction_id`` must be set by the caller

        Returns:
            The stored transaction (flushed, not committed)

        Raises:
            ValueError: ``transaction_id`` missing
            sqlalchemy.exc.IntegrityError: Duplicate ``transaction_id`` or
                idempotency key
        """
        if not record.get("transaction_id"):
            raise ValueError("transaction_id must be set before appending a transaction")
        return await self.transactions.create(obj_in=record)

    async def get_transaction(self, id: int) -> Transaction | None:
        """Look up a transaction by row id."""
        return await self.transactions.get(id)

    async def get_transaction_by_transaction_id(self, transaction_id: str) -> Transaction | None:
        """Look up a transaction by its external UUID handle."""
        return await self.transactions.get_by_transaction_id(transaction_id)

    async def get_transaction_by_idempotency_key(self, key: str) -> Transaction | None:
        """Look up the transaction committed under an idempotency key."""
        return await self.transactions.get_by_idempotency_key(key)

    async def list_transactions(
        self,
        *,
        account: str | None = None,
        currency: Currency | None = None,
        status: TransactionStatus | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Transaction]:
        """List the transaction log newest first."""
        return await self.transactions.list_filtered(
            account=account,
            currency=currency,
            status=status,
            from_date=from_date,
            to_date=to_date,
            skip=skip,
            limit=limit,
        )

    async def delete_transaction(self, id: int) -> None:
        """Purge a transaction record (administrative).

        Balances are NOT reversed: the transfer's effect on both accounts
        stays in place.

        Raises:
            NotFoundError: No such transaction
        """
        deleted = await self.transactions.delete(id=id)
        if deleted is None:
            raise NotFoundError(f"Transaction {id} not found")
        logger.warning(f"Deleted transaction {deleted.transaction_id} (balances not reversed)")

    async def transaction_stats(self) -> dict[str, Any]:
        """Aggregate statistics over completed transactions."""
        return await self.transactions.stats()

    async def currency_stats(self) -> list[dict[str, Any]]:
        """Per-currency statistics over completed transactions."""
        return await self.transactions.currency_stats()

    async def daily_totals(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Completed transaction totals per day and currency."""
        return await self.transactions.daily_totals(start, end)
