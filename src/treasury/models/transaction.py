"""Transaction model: the immutable record of a committed transfer."""

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from treasury.db.base import Base, utcnow
from treasury.models.account import MONEY, Currency


class TransactionStatus(str, enum.Enum):
    """Lifecycle states of a transaction record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(Base):
    """Committed transfer between two accounts.

    ``from_account`` and ``to_account`` hold account names as they were at
    transfer time. They are deliberately not foreign keys: deleting an account
    leaves its history readable.

    Attributes:
        id: Row id, also the insertion sequence used to break created_at ties
        transaction_id: UUID4 external handle
        amount: Debited amount, in ``currency`` (the source currency)
        exchange_rate: Multiplier applied to reach the destination currency
        converted_amount: Credited amount, in the destination currency
        transfer_date: Requested date, stored as an annotation only
        idempotency_key: Client-supplied deduplication key (optional)
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    from_account: Mapped[str] = mapped_column(String(255), index=True)
    to_account: Mapped[str] = mapped_column(String(255), index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY)
    currency: Mapped[Currency] = mapped_column(Enum(Currency, name="currency_code"))
    exchange_rate: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("1"))
    converted_amount: Mapped[Decimal] = mapped_column(MONEY)
    note: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(
            TransactionStatus,
            name="transaction_status",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=TransactionStatus.COMPLETED,
    )
    transfer_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    __table_args__ = (Index("ix_transactions_created_at_id", "created_at", "id"),)
