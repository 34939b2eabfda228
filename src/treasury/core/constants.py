"""Application-wide constants.

Centralizes the magic numbers used by the ledger, the transfer engine and
the HTTP layer. Constants are grouped by concern.
"""

from decimal import Decimal


class MoneyConstants:
    """Constants for monetary values."""

    # Amounts and balances are stored as Numeric(15, 2)
    MAX_AMOUNT = Decimal("9999999999999.99")


class TransferConstants:
    """Constants for transfer requests."""

    MAX_NOTE_LENGTH = 500
    MAX_ACCOUNT_NAME_LENGTH = 255
    MAX_IDEMPOTENCY_KEY_LENGTH = 255


class APIConstants:
    """Constants for API behavior, limits, and defaults."""

    # Pagination defaults for list endpoints
    DEFAULT_PAGE_SIZE = 100  # Default items per page
    MAX_PAGE_SIZE = 1000  # Maximum allowed items per page

    # Longest window for the date-range report
    MAX_REPORT_DAYS = 366


# Starter accounts inserted by the seeding step: (name, currency, balance)
SEED_ACCOUNTS: tuple[tuple[str, str, Decimal], ...] = (
    ("Mpesa_KES_1", "KES", Decimal("50000.00")),
    ("Mpesa_KES_2", "KES", Decimal("75000.00")),
    ("Bank_KES_1", "KES", Decimal("100000.00")),
    ("Bank_USD_1", "USD", Decimal("5000.00")),
    ("Bank_USD_2", "USD", Decimal("7500.00")),
    ("Bank_USD_3", "USD", Decimal("10000.00")),
    ("Bank_NGN_1", "NGN", Decimal("500000.00")),
    ("Bank_NGN_2", "NGN", Decimal("750000.00")),
    ("Wallet_USD_1", "USD", Decimal("2500.00")),
    ("Wallet_NGN_1", "NGN", Decimal("250000.00")),
)
