"""Account repository for account-specific database operations."""

from decimal import Decimal

from sqlalchemy import func, select, update

from treasury.db.base import utcnow
from treasury.models.account import Account, Currency
from treasury.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for Account model with name-keyed queries.

    Every read uses ``populate_existing`` so a session that already holds an
    account in its identity map still sees the latest committed balance.

    Example:
        >>> repo = AccountRepository(Account, db)
        >>> account = await repo.get_by_name("Bank_USD_1")
    """

    async def get_by_name(self, name: str, *, for_update: bool = False) -> Account | None:
        """Get an account by its unique name.

        Args:
            name: Exact account name
            for_update: Take a row lock (``SELECT ... FOR UPDATE``) where the
                backend supports it; ignored by SQLite

        Returns:
            Account if found, None otherwise
        """
        stmt = (
            select(Account)
            .where(Account.name == name)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_by_name(self, name: str) -> bool:
        """Check if an account name is already taken."""
        result = await self.db.execute(select(Account.id).where(Account.name == name))
        return result.scalar_one_or_none() is not None

    async def list_ordered(self, currency: Currency | None = None) -> list[Account]:
        """List accounts ordered by currency, then name.

        Args:
            currency: Only return accounts in this currency

        Returns:
            Deterministically ordered accounts
        """
        stmt = select(Account).execution_options(populate_existing=True)
        if currency is not None:
            stmt = stmt.where(Account.currency == currency)
        result = await self.db.execute(stmt.order_by(Account.currency, Account.name))
        return list(result.scalars().all())

    async def update_balance(
        self,
        name: str,
        new_balance: Decimal,
        *,
        expected_version: int | None = None,
    ) -> int:
        """Write a new balance and bump the row version.

        With ``expected_version`` the write is a compare-and-swap: it only
        applies if the row still carries that version.

        Args:
            name: Account name
            new_balance: Balance to store
            expected_version: Version observed when the balance was read

        Returns:
            Number of rows updated (0 means missing row or stale version)
        """
        stmt = (
            update(Account)
            .where(Account.name == name)
            .values(
                balance=new_balance,
                version=Account.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if expected_version is not None:
            stmt = stmt.where(Account.version == expected_version)

        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete_by_name(self, name: str) -> Account | None:
        """Delete an account by name.

        Returns:
            The deleted account, or None if it did not exist
        """
        account = await self.get_by_name(name)
        if account is None:
            return None
        await self.db.delete(account)
        await self.db.flush()
        return account

    async def aggregate_by_currency(self) -> list[tuple[Currency, Decimal, int]]:
        """Sum balances and count accounts per currency, ordered by currency."""
        result = await self.db.execute(
            select(
                Account.currency,
                func.coalesce(func.sum(Account.balance), 0),
                func.count(Account.id),
            )
            .group_by(Account.currency)
            .order_by(Account.currency)
        )
        return [
            (currency, Decimal(str(total)), int(count))
            for currency, total, count in result.all()
        ]
