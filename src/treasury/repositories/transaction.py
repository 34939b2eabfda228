"""Transaction repository for the append-only transfer log."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, distinct, func, or_, select

from treasury.models.account import Currency
from treasury.models.transaction import Transaction, TransactionStatus
from treasury.repositories.base import BaseRepository


def _to_decimal(value: Any) -> Decimal:
    """Normalize aggregate results (None, float or Decimal) to Decimal."""
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model.

    There is no update method: committed transactions are immutable.
    The log is always read newest first, with the row id breaking ties
    between identical timestamps.

    Example:
        >>> repo = TransactionRepository(Transaction, db)
        >>> recent = await repo.list_filtered(account="Bank_USD_1", limit=10)
    """

    async def get_by_transaction_id(self, transaction_id: str) -> Transaction | None:
        """Get a transaction by its external UUID handle."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, key: str) -> Transaction | None:
        """Get the transaction committed under a client idempotency key."""
        result = await self.db.execute(
            select(Transaction).where(Transaction.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def list_filtered(
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
        """List transactions newest first with optional filters.

        Args:
            account: Match either side of the transfer
            currency: Source currency of the transfer
            status: Transaction status
            from_date: Inclusive lower bound on created_at
            to_date: Inclusive upper bound on created_at
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return (None for all)

        Returns:
            Transactions ordered by created_at desc, then id desc
        """
        stmt = select(Transaction)

        if account:
            stmt = stmt.where(
                or_(Transaction.from_account == account, Transaction.to_account == account)
            )
        if currency is not None:
            stmt = stmt.where(Transaction.currency == currency)
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        if from_date is not None:
            stmt = stmt.where(Transaction.created_at >= from_date)
        if to_date is not None:
            stmt = stmt.where(Transaction.created_at <= to_date)

        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc()).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def stats(self) -> dict[str, Any]:
        """Aggregate statistics over completed transactions."""
        result = await self.db.execute(
            select(
                func.count(Transaction.id),
                func.sum(Transaction.amount),
                func.avg(Transaction.amount),
                func.count(distinct(Transaction.from_account)),
                func.count(distinct(Transaction.to_account)),
            ).where(Transaction.status == TransactionStatus.COMPLETED)
        )
        count, total, average, senders, receivers = result.one()
        return {
            "total_transactions": int(count or 0),
            "total_amount": _to_decimal(total),
            "average_amount": _to_decimal(average),
            "unique_senders": int(senders or 0),
            "unique_receivers": int(receivers or 0),
        }

    async def currency_stats(self) -> list[dict[str, Any]]:
        """Per-currency statistics, largest total first."""
        total = func.sum(Transaction.amount)
        result = await self.db.execute(
            select(
                Transaction.currency,
                func.count(Transaction.id),
                total,
                func.avg(Transaction.amount),
                func.min(Transaction.amount),
                func.max(Transaction.amount),
            )
            .where(Transaction.status == TransactionStatus.COMPLETED)
            .group_by(Transaction.currency)
            .order_by(total.desc())
        )
        return [
            {
                "currency": currency,
                "transaction_count": int(count),
                "total_amount": _to_decimal(total_amount),
                "average_amount": _to_decimal(average),
                "min_amount": _to_decimal(minimum),
                "max_amount": _to_decimal(maximum),
            }
            for currency, count, total_amount, average, minimum, maximum in result.all()
        ]

    async def daily_totals(self, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """Completed transactions per day and currency between two instants.

        Returns:
            Rows ordered by date desc, then currency
        """
        day = func.date(Transaction.created_at, type_=Date)
        result = await self.db.execute(
            select(
                day.label("day"),
                Transaction.currency,
                func.count(Transaction.id),
                func.sum(Transaction.amount),
            )
            .where(
                Transaction.status == TransactionStatus.COMPLETED,
                Transaction.created_at >= start,
                Transaction.created_at <= end,
            )
            .group_by(day, Transaction.currency)
            .order_by(day.desc(), Transaction.currency)
        )
        rows = []
        for day_value, currency, count, total in result.all():
            if isinstance(day_value, str):
                day_value = date.fromisoformat(day_value)
            rows.append(
                {
                    "date": day_value,
                    "currency": currency,
                    "transaction_count": int(count),
                    "total_amount": _to_decimal(total),
                }
            )
        return rows
