"""Display formatting for monetary values in API responses."""

from decimal import Decimal

from treasury.models.account import Account, Currency
from treasury.models.transaction import Transaction
from treasury.schemas.account import AccountResponse
from treasury.schemas.transaction import TransactionResponse

CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.KES: "KSh",
    Currency.NGN: "₦",
}


def format_currency(amount: Decimal, currency: Currency | str) -> str:
    """Render an amount with its currency symbol, e.g. ``"KSh 15,000.00"``.

    Unknown currencies fall back to the code itself.
    """
    try:
        symbol = CURRENCY_SYMBOLS[Currency(currency)]
    except ValueError:
        symbol = str(currency)
    return f"{symbol} {Decimal(amount):,.2f}"


def account_response(account: Account) -> AccountResponse:
    """Build an account response with its formatted balance."""
    response = AccountResponse.model_validate(account)
    response.formatted_balance = format_currency(account.balance, account.currency)
    return response


def transaction_response(
    transaction: Transaction,
    destination_currency: Currency | None = None,
) -> TransactionResponse:
    """Build a transaction response with formatted amounts.

    The converted amount is in the destination currency, which the record
    does not store; without it only the number is shown.
    """
    response = TransactionResponse.model_validate(transaction)
    response.formatted_amount = format_currency(transaction.amount, transaction.currency)
    if destination_currency is not None:
        response.formatted_converted_amount = format_currency(
            transaction.converted_amount, destination_currency
        )
    else:
        response.formatted_converted_amount = f"{Decimal(transaction.converted_amount):,.2f}"
    return response
