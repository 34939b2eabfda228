"""Schemas package."""

from treasury.schemas.account import (
    AccountBalanceUpdate,
    AccountBase,
    AccountCreate,
    AccountResponse,
    CurrencyBalanceSummary,
    ReferenceTotalResponse,
)
from treasury.schemas.currency import ExchangeRatesResponse
from treasury.schemas.transaction import (
    CurrencyTransactionStats,
    DailyTransactionTotal,
    TransactionFilters,
    TransactionResponse,
    TransactionStats,
    TransferRequest,
)

__all__ = [
    # Account schemas
    "AccountBase",
    "AccountCreate",
    "AccountBalanceUpdate",
    "AccountResponse",
    "CurrencyBalanceSummary",
    "ReferenceTotalResponse",
    # Exchange rate schemas
    "ExchangeRatesResponse",
    # Transaction schemas
    "TransferRequest",
    "TransactionResponse",
    "TransactionFilters",
    "TransactionStats",
    "CurrencyTransactionStats",
    "DailyTransactionTotal",
]
