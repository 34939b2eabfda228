"""Transaction (transfer) endpoints."""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Header, Query, Request, Response, status

from treasury.api.formatting import format_currency, transaction_response
from treasury.core.constants import APIConstants
from treasury.core.deps import Engine, Store
from treasury.core.exceptions import ValidationError
from treasury.core.rate_limit import transaction_limit
from treasury.models.account import Currency
from treasury.models.transaction import TransactionStatus
from treasury.schemas.transaction import (
    CurrencyTransactionStats,
    DailyTransactionTotal,
    TransactionFilters,
    TransactionResponse,
    TransactionStats,
    TransferRequest,
)
from treasury.services import transaction_query_service
from treasury.services.ledger_store import LedgerStore, coerce_currency

router = APIRouter()


async def _currencies_by_account(store: LedgerStore) -> dict[str, Currency]:
    """Current currency of every account, for formatting converted amounts."""
    return {account.name: account.currency for account in await store.list_accounts()}


@router.get("", response_model=list[TransactionResponse])
@transaction_limit
async def list_transactions(
    request: Request,
    store: Store,
    account: str | None = None,
    currency: str | None = None,
    status_filter: Annotated[TransactionStatus | None, Query(alias="status")] = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(gt=0, le=APIConstants.MAX_PAGE_SIZE)] = (
        APIConstants.DEFAULT_PAGE_SIZE
    ),
) -> list[TransactionResponse]:
    """
    List the transaction log, newest first.

    Args:
        account: Transfers where this account is the source or destination
        currency: Source currency of the transfer
        status: Transaction status
        from_date: Only transactions created at or after this instant
        to_date: Only transactions created at or before this instant
        skip: Number of records to skip
        limit: Maximum number of records to return
    """
    filters = TransactionFilters(
        account=account,
        currency=coerce_currency(currency) if currency else None,
        status=status_filter,
        from_date=from_date,
        to_date=to_date,
        skip=skip,
        limit=limit,
    )
    transactions = await transaction_query_service.list_transactions(store, filters)
    currencies = await _currencies_by_account(store)
    return [transaction_response(tx, currencies.get(tx.to_account)) for tx in transactions]


@router.get("/stats", response_model=TransactionStats)
@transaction_limit
async def transaction_stats(request: Request, store: Store) -> TransactionStats:
    """Aggregate statistics over completed transactions."""
    return TransactionStats(**await transaction_query_service.get_stats(store))


@router.get("/currency-stats", response_model=list[CurrencyTransactionStats])
@transaction_limit
async def currency_stats(request: Request, store: Store) -> list[CurrencyTransactionStats]:
    """Per-currency statistics over completed transactions, largest total first."""
    return [
        CurrencyTransactionStats(
            **row,
            formatted_total_amount=format_currency(row["total_amount"], row["currency"]),
        )
        for row in await transaction_query_service.get_currency_stats(store)
    ]


@router.get("/date-range", response_model=list[DailyTransactionTotal])
@transaction_limit
async def daily_totals(
    request: Request,
    store: Store,
    start_date: date | None = None,
    end_date: date | None = None,
    days: int | None = None,
) -> list[DailyTransactionTotal]:
    """
    Completed transaction totals per day and currency.

    Pass ``days`` for the last N days including today, or both
    ``start_date`` and ``end_date``. ``days`` wins when both are given.
    """
    rows = await transaction_query_service.get_daily_totals(store, start_date, end_date, days)
    return [
        DailyTransactionTotal(
            **row,
            formatted_total_amount=format_currency(row["total_amount"], row["currency"]),
        )
        for row in rows
    ]


@router.get("/{transaction_id}", response_model=TransactionResponse)
@transaction_limit
async def get_transaction(
    request: Request,
    transaction_id: int,
    store: Store,
) -> TransactionResponse:
    """
    Get a transaction by row id.

    Raises:
        NotFoundError: If the transaction does not exist
    """
    transaction = await transaction_query_service.get_transaction(store, transaction_id)
    destination = await store.get_account(transaction.to_account)
    return transaction_response(transaction, destination.currency if destination else None)


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
@transaction_limit
async def create_transfer(
    request: Request,
    transfer: TransferRequest,
    engine: Engine,
    store: Store,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> TransactionResponse:
    """
    Transfer funds between two accounts.

    The amount is debited from ``from_account`` in its currency and the
    converted amount is credited to ``to_account``. Sending the same
    ``Idempotency-Key`` (header or body field) again returns the original
    transaction instead of moving money twice.

    Raises:
        ValidationError: Malformed request (400)
        AccountNotFound: Unknown source or destination (404)
        InsufficientFunds: Source balance too low (400)
        IdempotencyConflict: Key reused for a different transfer (409)
        TransferFailed: The transfer could not be committed (503)
    """
    key = idempotency_key or transfer.idempotency_key
    if idempotency_key and transfer.idempotency_key not in (None, idempotency_key):
        raise ValidationError(
            errors=[
                {
                    "field": "idempotency_key",
                    "message": "Idempotency-Key header and body field differ",
                }
            ]
        )

    transaction = await engine.execute_transfer(
        transfer.from_account,
        transfer.to_account,
        transfer.amount,
        transfer.note,
        transfer_date=transfer.transfer_date,
        idempotency_key=key,
    )
    destination = await store.get_account(transaction.to_account)
    return transaction_response(transaction, destination.currency if destination else None)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
@transaction_limit
async def delete_transaction(request: Request, transaction_id: int, store: Store) -> Response:
    """
    Purge a transaction record. Account balances are not reversed.

    Raises:
        NotFoundError: If the transaction does not exist
    """
    await store.run_atomic(lambda s: s.delete_transaction(transaction_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
