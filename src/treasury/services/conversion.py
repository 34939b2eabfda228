"""Static currency conversion table.

Rates are configuration, not state: the table is built once from a mapping
(by default ``settings.EXCHANGE_RATES``), frozen, and injected wherever a
conversion is needed. Swapping in a live rate source means building a
different ``ConversionTable``; the transfer engine does not change.

Rate keys use the published ``"FROM_TO_TO"`` form (e.g. ``"USD_TO_KES"``).
The table is not assumed reciprocal: ``rate(KES, NGN) * rate(NGN, KES)`` is
not exactly 1 with the default values.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_EVEN, Decimal
from itertools import permutations
from types import MappingProxyType

from treasury.core.config import settings
from treasury.core.exceptions import UnsupportedCurrencyPair
from treasury.models.account import Currency

logger = logging.getLogger(__name__)

IDENTITY_RATE = Decimal("1")
CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round a monetary value to two decimal places (banker's rounding)."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def rate_key(from_currency: Currency | str, to_currency: Currency | str) -> str:
    """Build the published key for a currency pair."""
    return f"{Currency(from_currency).value}_TO_{Currency(to_currency).value}"


def parse_rate_key(key: str) -> tuple[Currency, Currency]:
    """Split ``"USD_TO_KES"`` into its two currencies.

    Raises:
        ValueError: If the key is malformed or names an unknown currency
    """
    try:
        source, target = key.split("_TO_")
        return Currency(source), Currency(target)
    except ValueError as e:
        raise ValueError(f"Invalid exchange rate key: {key!r}") from e


class ConversionTable:
    """Immutable pairwise exchange-rate table.

    Example:
        >>> table = ConversionTable.from_settings()
        >>> table.rate(Currency.USD, Currency.KES)
        Decimal('150')
        >>> table.convert(Decimal("100"), Currency.USD, Currency.KES)
        Decimal('15000.00')
    """

    def __init__(self, rates: Mapping[str, Decimal | str | float]):
        """Build a table from ``{"FROM_TO_TO": rate}``.

        Args:
            rates: Published rate mapping; values are coerced to Decimal

        Raises:
            ValueError: On malformed keys or non-positive rates
        """
        table: dict[tuple[Currency, Currency], Decimal] = {}
        for key, value in rates.items():
            pair = parse_rate_key(key)
            rate = Decimal(str(value))
            if not rate.is_finite() or rate <= 0:
                raise ValueError(f"Exchange rate for {key} must be a positive number")
            table[pair] = rate
        self._rates = MappingProxyType(table)

    @classmethod
    def from_settings(cls) -> "ConversionTable":
        """Build the table from the configured static rates."""
        return cls(settings.EXCHANGE_RATES)

    def rate(self, from_currency: Currency | str, to_currency: Currency | str) -> Decimal:
        """Get the multiplier from one currency to another.

        Args:
            from_currency: Source currency
            to_currency: Target currency

        Returns:
            Exactly ``Decimal("1")`` for identical currencies, else the table rate

        Raises:
            UnsupportedCurrencyPair: If the table has no entry for the pair
        """
        source, target = Currency(from_currency), Currency(to_currency)
        if source == target:
            return IDENTITY_RATE

        try:
            return self._rates[(source, target)]
        except KeyError:
            logger.error(f"No exchange rate configured for {source.value} -> {target.value}")
            raise UnsupportedCurrencyPair(source.value, target.value) from None

    def convert(
        self,
        amount: Decimal,
        from_currency: Currency | str,
        to_currency: Currency | str,
    ) -> Decimal:
        """Convert an amount, rounded to the target currency's precision."""
        return quantize_money(amount * self.rate(from_currency, to_currency))

    def all_rates(self) -> dict[str, Decimal]:
        """Published rates keyed ``"FROM_TO_TO"``, sorted by key."""
        return {rate_key(*pair): rate for pair, rate in sorted(self._rates.items())}

    def validate_complete(self, currencies: Iterable[Currency] = tuple(Currency)) -> None:
        """Ensure every ordered pair of distinct currencies has a rate.

        Raises:
            UnsupportedCurrencyPair: For the first missing pair
        """
        for source, target in permutations(currencies, 2):
            if (source, target) not in self._rates:
                raise UnsupportedCurrencyPair(source.value, target.value)

    def __len__(self) -> int:
        return len(self._rates)
