"""Tests for transaction query service."""

from datetime import date, datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import select

from treasury.core.exceptions import NotFoundError, ValidationError
from treasury.models.account import Account, Currency
from treasury.schemas.transaction import TransactionFilters
from treasury.services import transaction_query_service as queries
from treasury.services.ledger_store import LedgerStore
from treasury.services.transfer_service import TransferEngine


@pytest.mark.unit
class TestResolveDateRange:
    """Report date-range resolution."""

    def test_explicit_dates_are_inclusive(self) -> None:
        """Test that the end date covers the whole day."""
        start, end = queries.resolve_date_range(date(2026, 1, 1), date(2026, 1, 31))

        assert start.date() == date(2026, 1, 1) and start.time() == time.min
        assert end.date() == date(2026, 1, 31) and end.time() == time.max
        assert start.tzinfo is not None

    def test_days_counts_back_from_today(self) -> None:
        """Test that days=7 covers today and the six days before it."""
        start, end = queries.resolve_date_range(days=7, today=date(2026, 10, 18))

        assert start.date() == date(2026, 10, 12)
        assert end.date() == date(2026, 10, 18)

    def test_single_day(self) -> None:
        """Test that days=1 covers exactly today."""
        start, end = queries.resolve_date_range(days=1, today=date(2026, 10, 18))

        assert start.date() == end.date() == date(2026, 10, 18)

    def test_days_win_over_dates(self) -> None:
        """Test that days takes precedence over explicit dates."""
        start, end = queries.resolve_date_range(
            date(2026, 3, 1), date(2026, 3, 2), 30, today=date(2026, 10, 18)
        )

        assert start.date() == date(2026, 9, 19)
        assert end.date() == date(2026, 10, 18)

    def test_requires_dates_or_days(self) -> None:
        """Test that a half-specified range without days is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            queries.resolve_date_range(start_date=date(2026, 1, 1))

        assert exc_info.value.fields == ["days"]

    @pytest.mark.parametrize("days", [0, -3, 367])
    def test_days_out_of_range(self, days: int) -> None:
        """Test that days must be between 1 and 366."""
        with pytest.raises(ValidationError):
            queries.resolve_date_range(days=days)

    def test_inverted_range(self) -> None:
        """Test that start_date after end_date is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            queries.resolve_date_range(date(2026, 2, 1), date(2026, 1, 1))

        assert exc_info.value.fields == ["start_date"]


@pytest.mark.asyncio
class TestTransactionQueries:
    """Read functions over the transaction log."""

    async def test_list_with_filters(
        self, store: LedgerStore, transfer_engine: TransferEngine, usd_and_kes
    ) -> None:
        """Test that filters are passed through to the store."""
        await transfer_engine.execute_transfer("A", "B", Decimal("1"))
        await transfer_engine.execute_transfer("A", "B", Decimal("2"))

        newest = await queries.list_transactions(store, TransactionFilters(limit=1))
        kes = await queries.list_transactions(store, TransactionFilters(currency=Currency.KES))

        assert [tx.amount for tx in newest] == [Decimal("2.00")]
        assert kes == []

    async def test_get_missing_transaction(self, store: LedgerStore) -> None:
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await queries.get_transaction(store, 999)

    async def test_daily_totals_for_today(
        self, store: LedgerStore, transfer_engine: TransferEngine, usd_and_kes
    ) -> None:
        """Test that today's transfers are grouped by currency."""
        await transfer_engine.execute_transfer("A", "B", Decimal("10"))
        await transfer_engine.execute_transfer("A", "B", Decimal("5.50"))

        rows = await queries.get_daily_totals(store, days=1)

        assert len(rows) == 1
        assert rows[0]["currency"] == Currency.USD
        assert rows[0]["transaction_count"] == 2
        assert rows[0]["total_amount"] == Decimal("15.50")
        assert isinstance(rows[0]["date"], date)

    async def test_daily_totals_outside_range(
        self, store: LedgerStore, transfer_engine: TransferEngine, usd_and_kes
    ) -> None:
        """Test that transfers outside the requested dates are excluded."""
        await transfer_engine.execute_transfer("A", "B", Decimal("10"))

        rows = await queries.get_daily_totals(store, date(2000, 1, 1), date(2000, 1, 31))

        assert rows == []

    async def test_stats_after_transfers(
        self, store: LedgerStore, transfer_engine: TransferEngine, usd_and_kes
    ) -> None:
        """Test statistics over committed transfers."""
        await transfer_engine.execute_transfer("A", "B", Decimal("10"))
        await transfer_engine.execute_transfer("A", "B", Decimal("30"))

        stats = await queries.get_stats(store)
        per_currency = await queries.get_currency_stats(store)

        assert stats["total_transactions"] == 2
        assert stats["total_amount"] == Decimal("40.00")
        assert per_currency[0]["min_amount"] == Decimal("10.00")
        assert per_currency[0]["max_amount"] == Decimal("30.00")

    async def test_reads_never_commit_pending_work(
        self, store: LedgerStore, transfer_engine: TransferEngine, usd_and_kes
    ) -> None:
        """Test that query functions leave uncommitted session state uncommitted."""
        await transfer_engine.execute_transfer("A", "B", Decimal("10"))
        store.db.add(Account(name="Pending", currency=Currency.USD, balance=Decimal("1")))

        await queries.list_transactions(store, TransactionFilters())
        await queries.get_stats(store)
        await queries.get_currency_stats(store)
        await queries.get_daily_totals(store, days=1)
        await store.db.rollback()

        result = await store.db.execute(select(Account).where(Account.name == "Pending"))
        assert result.scalar_one_or_none() is None



def test_naive_datetime_in_filters() -> None:
    """Test that date filters accept ISO datetimes."""
    filters = TransactionFilters(from_date="2026-01-01T00:00:00")

    assert filters.from_date == datetime(2026, 1, 1)
