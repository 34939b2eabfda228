"""Transaction (transfer) schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from treasury.core.constants import APIConstants, TransferConstants
from treasury.models.account import Currency
from treasury.models.transaction import TransactionStatus


class TransferRequest(BaseModel):
    """Inbound transfer request.

    Only shape is checked here; the transfer engine owns the business
    validation (distinct accounts, positive amount, precision) so that
    direct callers get the same rules as HTTP clients.
    """

    from_account: str
    to_account: str
    amount: Decimal
    note: str | None = Field(None, max_length=TransferConstants.MAX_NOTE_LENGTH)
    transfer_date: date | None = None
    idempotency_key: str | None = Field(
        None, min_length=1, max_length=TransferConstants.MAX_IDEMPOTENCY_KEY_LENGTH
    )


class TransactionResponse(BaseModel):
    """Schema for transaction response."""

    id: int
    transaction_id: str
    from_account: str
    to_account: str
    amount: Decimal
    currency: Currency
    exchange_rate: Decimal
    converted_amount: Decimal
    note: str
    status: TransactionStatus
    transfer_date: date | None = None
    created_at: datetime
    formatted_amount: str | None = None
    formatted_converted_amount: str | None = None

    model_config = {"from_attributes": True}


class TransactionFilters(BaseModel):
    """Filters for listing the transaction log."""

    account: str | None = None
    currency: Currency | None = None
    status: TransactionStatus | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    skip: int = Field(0, ge=0)
    limit: int | None = Field(None, gt=0, le=APIConstants.MAX_PAGE_SIZE)


class TransactionStats(BaseModel):
    """Aggregate statistics over completed transactions."""

    total_transactions: int
    total_amount: Decimal
    average_amount: Decimal
    unique_senders: int
    unique_receivers: int


class CurrencyTransactionStats(BaseModel):
    """Per-currency statistics over completed transactions."""

    currency: Currency
    transaction_count: int
    total_amount: Decimal
    average_amount: Decimal
    min_amount: Decimal
    max_amount: Decimal
    formatted_total_amount: str | None = None


class DailyTransactionTotal(BaseModel):
    """Completed transactions grouped by day and currency."""

    date: date
    currency: Currency
    transaction_count: int
    total_amount: Decimal
    formatted_total_amount: str | None = None
