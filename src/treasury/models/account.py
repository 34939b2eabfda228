"""Account model for named, single-currency balance holders."""

import enum
from decimal import Decimal

from sqlalchemy import CheckConstraint, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from treasury.db.base import Base, TimestampMixin


class Currency(str, enum.Enum):
    """Supported currencies (closed set)."""

    KES = "KES"
    NGN = "NGN"
    USD = "USD"


# Fixed-point storage for balances and amounts: 15 digits, 2 decimal places
MONEY = Numeric(15, 2)


class Account(Base, TimestampMixin):
    """Named account holding a balance in exactly one currency.

    ``name`` is the external identifier used by transfers. ``version`` is
    bumped on every balance write and serves as the compare-and-swap token
    for concurrent transfers.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    currency: Mapped[Currency] = mapped_column(Enum(Currency, name="currency_code"), index=True)
    balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),)

    def __repr__(self) -> str:
        return f"<Account {self.name} {self.currency.value} {self.balance}>"
