"""Read-only views over account balances."""

import logging
from decimal import Decimal
from typing import Any

from treasury.models.account import Account, Currency
from treasury.services.conversion import ConversionTable, quantize_money
from treasury.services.ledger_store import LedgerStore, coerce_currency

logger = logging.getLogger(__name__)


class AccountQueryService:
    """Aggregations over the accounts held in a ``LedgerStore``.

    Example:
        >>> service = AccountQueryService(store, ConversionTable.from_settings())
        >>> await service.total_in_reference_currency(Currency.USD)
        Decimal('28375.00')
    """

    def __init__(self, store: LedgerStore, conversion_table: ConversionTable):
        self.store = store
        self.conversion_table = conversion_table

    async def balance_summary_by_currency(self) -> list[dict[str, Any]]:
        """Total balance and account count per currency, ordered by currency."""
        return await self.store.aggregate_balances()

    async def total_in_reference_currency(self, reference: Currency | str) -> Decimal:
        """Sum every account balance converted into ``reference``.

        Products are summed at full precision and rounded once at the end.

        Raises:
            InvalidCurrency: Unknown reference currency
            UnsupportedCurrencyPair: No rate from some account currency
        """
        target = coerce_currency(reference)
        total = Decimal("0")
        for row in await self.store.aggregate_balances():
            total += row["total_balance"] * self.conversion_table.rate(row["currency"], target)
        logger.debug(f"Total balance in {target.value}: {total}")
        return quantize_money(total)

    async def accounts_by_currency(self, currency: Currency | str) -> list[Account]:
        """Accounts held in one currency, ordered by name."""
        return await self.store.list_accounts(currency)
