"""Service layer for reading the transaction log.

Thin read-only functions over ``LedgerStore``. Route handlers call these so
that date handling and filter normalization live in one place. Every read
runs under ``read_only_transaction``, so nothing here can commit.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any

from treasury.core.constants import APIConstants
from treasury.core.exceptions import NotFoundError, ValidationError
from treasury.db.base import utcnow
from treasury.db.session import read_only_transaction
from treasury.models.transaction import Transaction
from treasury.schemas.transaction import TransactionFilters
from treasury.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


async def list_transactions(store: LedgerStore, filters: TransactionFilters) -> list[Transaction]:
    """List transactions newest first.

    Args:
        store: Ledger store for the current session
        filters: Account, currency, status, date and paging filters

    Returns:
        Matching transactions ordered by created_at desc, then id desc
    """
    async with read_only_transaction(store.db):
        return await store.list_transactions(**filters.model_dump())


async def get_transaction(store: LedgerStore, id: int) -> Transaction:
    """Get a transaction by row id.

    Raises:
        NotFoundError: No such transaction
    """
    async with read_only_transaction(store.db):
        transaction = await store.get_transaction(id)
    if transaction is None:
        raise NotFoundError(f"Transaction {id} not found")
    return transaction


async def get_stats(store: LedgerStore) -> dict[str, Any]:
    """Aggregate statistics over completed transactions."""
    async with read_only_transaction(store.db):
        return await store.transaction_stats()


async def get_currency_stats(store: LedgerStore) -> list[dict[str, Any]]:
    """Per-currency statistics over completed transactions."""
    async with read_only_transaction(store.db):
        return await store.currency_stats()


def resolve_date_range(
    start_date: date | None = None,
    end_date: date | None = None,
    days: int | None = None,
    *,
    today: date | None = None,
) -> tuple[datetime, datetime]:
    """Turn report parameters into an inclusive ``[start, end]`` instant range.

    ``days`` (the last N days including today) takes precedence; without it
    both dates are required. The end date covers the whole day.

    Raises:
        ValidationError: Missing, inverted or oversized range
    """
    if days is not None:
        if days <= 0 or days > APIConstants.MAX_REPORT_DAYS:
            raise ValidationError(
                errors=[
                    {
                        "field": "days",
                        "message": f"Days must be between 1 and {APIConstants.MAX_REPORT_DAYS}",
                    }
                ]
            )
        end_date = today or utcnow().date()
        start_date = end_date - timedelta(days=days - 1)
    elif start_date is None or end_date is None:
        raise ValidationError(
            "Either provide days or both start_date and end_date",
            errors=[
                {
                    "field": "days",
                    "message": "Either provide days or both start_date and end_date",
                }
            ],
        )

    if start_date > end_date:
        raise ValidationError(
            errors=[{"field": "start_date", "message": "start_date cannot be later than end_date"}]
        )

    tz = utcnow().tzinfo
    return (
        datetime.combine(start_date, time.min, tzinfo=tz),
        datetime.combine(end_date, time.max, tzinfo=tz),
    )


async def get_daily_totals(
    store: LedgerStore,
    start_date: date | None = None,
    end_date: date | None = None,
    days: int | None = None,
) -> list[dict[str, Any]]:
    """Completed transaction totals per day and currency over a date range."""
    start, end = resolve_date_range(start_date, end_date, days)
    logger.debug(f"Daily totals between {start.isoformat()} and {end.isoformat()}")
    async with read_only_transaction(store.db):
        return await store.daily_totals(start, end)
