"""Account schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from treasury.core.constants import TransferConstants
from treasury.models.account import Currency


class AccountBase(BaseModel):
    """Base account schema."""

    name: str = Field(..., min_length=1, max_length=TransferConstants.MAX_ACCOUNT_NAME_LENGTH)
    currency: Currency


class AccountCreate(AccountBase):
    """Schema for creating an account."""

    balance: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)


class AccountBalanceUpdate(BaseModel):
    """Schema for the administrative balance override."""

    balance: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2)


class AccountResponse(AccountBase):
    """Schema for account response."""

    id: int
    balance: Decimal
    created_at: datetime
    updated_at: datetime
    formatted_balance: str | None = None

    model_config = {"from_attributes": True}


class CurrencyBalanceSummary(BaseModel):
    """Per-currency balance aggregate."""

    currency: Currency
    total_balance: Decimal
    account_count: int
    formatted_total_balance: str | None = None


class ReferenceTotalResponse(BaseModel):
    """All balances converted into one reference currency."""

    reference_currency: Currency
    total: Decimal
    formatted_total: str
