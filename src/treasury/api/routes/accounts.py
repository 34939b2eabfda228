"""Account endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Request, Response, status

from treasury.api.formatting import account_response, format_currency
from treasury.core.deps import AccountQueries, Rates, Store
from treasury.core.rate_limit import account_limit
from treasury.schemas.account import (
    AccountBalanceUpdate,
    AccountCreate,
    AccountResponse,
    CurrencyBalanceSummary,
    ReferenceTotalResponse,
)
from treasury.schemas.currency import ExchangeRatesResponse
from treasury.services.ledger_store import coerce_currency

router = APIRouter()


@router.get("", response_model=list[AccountResponse])
@account_limit
async def list_accounts(
    request: Request,
    store: Store,
    currency: str | None = None,
) -> list[AccountResponse]:
    """
    List all accounts ordered by currency, then name.

    Args:
        currency: Only return accounts in this currency (KES, USD, NGN)
    """
    accounts = await store.list_accounts(currency)
    return [account_response(account) for account in accounts]


@router.get("/summary", response_model=list[CurrencyBalanceSummary])
@account_limit
async def balance_summary(
    request: Request,
    queries: AccountQueries,
) -> list[CurrencyBalanceSummary]:
    """Total balance and number of accounts per currency."""
    return [
        CurrencyBalanceSummary(
            **row,
            formatted_total_balance=format_currency(row["total_balance"], row["currency"]),
        )
        for row in await queries.balance_summary_by_currency()
    ]


@router.get("/total", response_model=ReferenceTotalResponse)
@account_limit
async def total_balance(
    request: Request,
    queries: AccountQueries,
    reference_currency: Annotated[str, Query()] = "USD",
) -> ReferenceTotalResponse:
    """
    Sum of all balances converted into one reference currency.

    Args:
        reference_currency: Currency to express the total in (default USD)
    """
    reference = coerce_currency(reference_currency)
    total = await queries.total_in_reference_currency(reference)
    return ReferenceTotalResponse(
        reference_currency=reference,
        total=total,
        formatted_total=format_currency(total, reference),
    )


@router.get("/exchange-rates", response_model=ExchangeRatesResponse)
@account_limit
async def exchange_rates(request: Request, rates: Rates) -> ExchangeRatesResponse:
    """Published static exchange rate table, keyed ``FROM_TO_TO``."""
    table = rates.all_rates()
    return ExchangeRatesResponse(rates=table, count=len(table))


@router.get("/currency/{currency}", response_model=list[AccountResponse])
@account_limit
async def accounts_by_currency(
    request: Request,
    currency: str,
    queries: AccountQueries,
) -> list[AccountResponse]:
    """All accounts held in one currency."""
    accounts = await queries.accounts_by_currency(currency)
    return [account_response(account) for account in accounts]


@router.get("/{name}", response_model=AccountResponse)
@account_limit
async def get_account(request: Request, name: str, store: Store) -> AccountResponse:
    """
    Get a single account by name.

    Raises:
        NotFoundError: If no account has this name
    """
    return account_response(await store.require_account(name))


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
@account_limit
async def create_account(
    request: Request,
    account_in: AccountCreate,
    store: Store,
) -> AccountResponse:
    """
    Create a new account.

    Raises:
        DuplicateName: If the name is already taken
    """
    account = await store.run_atomic(
        lambda s: s.create_account(account_in.name, account_in.currency, account_in.balance)
    )
    return account_response(account)


@router.put("/{name}/balance", response_model=AccountResponse)
@account_limit
async def update_balance(
    request: Request,
    name: str,
    balance_in: AccountBalanceUpdate,
    store: Store,
) -> AccountResponse:
    """
    Administrative balance override.

    Writes the balance directly without a transaction record, so it is not
    covered by the transfer conservation rules.

    Raises:
        NotFoundError: If no account has this name
    """
    account = await store.run_atomic(lambda s: s.set_balance(name, balance_in.balance))
    return account_response(account)


@router.delete("/{name}", status_code=status.HTTP_204_NO_CONTENT)
@account_limit
async def delete_account(request: Request, name: str, store: Store) -> Response:
    """
    Delete an account. Its transaction history stays readable.

    Raises:
        NotFoundError: If no account has this name
    """
    await store.run_atomic(lambda s: s.delete_account(name))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
