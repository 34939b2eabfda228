"""Exchange rate schemas."""

from decimal import Decimal

from pydantic import BaseModel


class ExchangeRatesResponse(BaseModel):
    """Published static exchange rate table."""

    rates: dict[str, Decimal]
    count: int
