"""Transfer engine: validated, converted, atomic movement of funds.

A transfer debits the source account by ``amount`` (in the source currency),
credits the destination by ``amount * rate`` (in the destination currency)
and appends one immutable transaction record. The three writes commit
together or not at all.

Execution order:
1. Validate the request (no store access).
2. Replay a previously committed transfer for the same idempotency key.
3. Under the per-account locks, in one database transaction: resolve both
   accounts, check funds, convert, then CAS-write both balances and append
   the record.
4. Retry step 3 on a stale version or a transient database error, up to
   ``settings.TRANSFER_MAX_ATTEMPTS`` times.
5. Return the committed record re-read from the store.
"""

import asyncio
import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from treasury.core.config import settings
from treasury.core.constants import MoneyConstants, TransferConstants
from treasury.core.exceptions import (
    AccountNotFound,
    ConcurrentUpdateError,
    IdempotencyConflict,
    InsufficientFunds,
    TransferFailed,
    ValidationError,
)
from treasury.models.transaction import Transaction, TransactionStatus
from treasury.services.conversion import CENT, ConversionTable, quantize_money
from treasury.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def sanitize_note(note: str | None) -> str:
    """Trim a free-text note, strip angle brackets and cap its length."""
    if not note:
        return ""
    cleaned = note.strip().replace("<", "").replace(">", "")
    return cleaned[: TransferConstants.MAX_NOTE_LENGTH]


def parse_amount(value: Any) -> Decimal | None:
    """Coerce a transfer amount to Decimal, or None if it is not a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return None
    return None


def validate_transfer_request(
    from_name: Any,
    to_name: Any,
    amount: Any,
) -> tuple[str, str, Decimal]:
    """Check a transfer request without touching the store.

    Args:
        from_name: Source account name
        to_name: Destination account name
        amount: Amount in the source currency

    Returns:
        Tuple of (source name, destination name, amount), names trimmed and
        the amount as a two-place Decimal

    Raises:
        ValidationError: With one ``{field, message}`` entry per problem
    """
    errors: list[dict[str, str]] = []

    source = from_name.strip() if isinstance(from_name, str) else ""
    destination = to_name.strip() if isinstance(to_name, str) else ""

    if not source:
        errors.append(
            {"field": "from_account", "message": "Source account is required"}
        )
    if not destination:
        errors.append(
            {"field": "to_account", "message": "Destination account is required"}
        )
    if source and source == destination:
        errors.append(
            {
                "field": "to_account",
                "message": "Source and destination accounts cannot be the same",
            }
        )

    value = parse_amount(amount)
    if value is None or not value.is_finite():
        errors.append({"field": "amount", "message": "Amount must be a valid number"})
    elif value <= 0:
        errors.append({"field": "amount", "message": "Amount must be greater than zero"})
    elif value > MoneyConstants.MAX_AMOUNT:
        errors.append({"field": "amount", "message": "Amount exceeds the maximum allowed"})
    elif value != value.quantize(CENT):
        errors.append(
            {"field": "amount", "message": "Amount must have at most 2 decimal places"}
        )

    if errors:
        raise ValidationError("Validation failed", errors=errors)

    return source, destination, value.quantize(CENT)


class TransferEngine:
    """Executes transfers against a ``LedgerStore``.

    Example:
        >>> engine = TransferEngine(LedgerStore(db), ConversionTable.from_settings())
        >>> tx = await engine.execute_transfer("Bank_USD_1", "Mpesa_KES_1", Decimal("100"))
        >>> tx.converted_amount
        Decimal('15000.00')
    """

    def __init__(
        self,
        store: LedgerStore,
        conversion_table: ConversionTable,
        *,
        max_attempts: int | None = None,
        retry_backoff: float | None = None,
    ):
        self.store = store
        self.conversion_table = conversion_table
        self.max_attempts = (
            settings.TRANSFER_MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        self.retry_backoff = (
            settings.TRANSFER_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )

    async def execute_transfer(
        self,
        from_name: str,
        to_name: str,
        amount: Decimal | str | int | float,
        note: str | None = None,
        *,
        transfer_date: date | None = None,
        idempotency_key: str | None = None,
    ) -> Transaction:
        """Move funds between two accounts.

        Args:
            from_name: Source account name
            to_name: Destination account name
            amount: Amount to debit, in the source account's currency
            note: Optional free text, sanitized before storage
            transfer_date: Requested date, stored as an annotation only
            idempotency_key: Client key making retries safe

        Returns:
            The committed transaction, as re-read from the store

        Raises:
            ValidationError: Malformed request, or an amount that converts to
                less than one cent of the destination currency (never retried)
            IdempotencyConflict: Key already used for a different transfer
            AccountNotFound: Source or destination does not exist
            InsufficientFunds: Source balance below ``amount``
            UnsupportedCurrencyPair: No rate for the account currencies
            TransferFailed: Storage fault or retries exhausted; nothing applied
        """
        source, destination, value = validate_transfer_request(from_name, to_name, amount)
        clean_note = sanitize_note(note)
        key = idempotency_key.strip() if idempotency_key else None

        if key:
            replayed = await self._replay(key, source, destination, value)
            if replayed is not None:
                return replayed

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.store.lock_accounts(source, destination):
                    transaction = await self.store.run_atomic(
                        lambda store: self._apply(
                            store, source, destination, value, clean_note, transfer_date, key
                        )
                    )
                break
            except (ConcurrentUpdateError, OperationalError) as e:
                if attempt == self.max_attempts:
                    logger.error(
                        f"Transfer {source} -> {destination} failed after "
                        f"{attempt} attempts: {type(e).__name__}"
                    )
                    raise TransferFailed(
                        f"Transfer could not be completed after {attempt} attempts"
                    ) from e
                logger.warning(
                    f"Transfer {source} -> {destination} attempt {attempt} "
                    f"conflicted ({type(e).__name__}), retrying"
                )
                await asyncio.sleep(self.retry_backoff * attempt)
            except IntegrityError as e:
                if key:
                    # Another request committed the same key first
                    replayed = await self._replay(key, source, destination, value)
                    if replayed is not None:
                        return replayed
                logger.error(f"Transfer {source} -> {destination} violated a constraint: {e}")
                raise TransferFailed() from e
            except (SQLAlchemyError, OSError) as e:
                logger.error(
                    f"Transfer {source} -> {destination} rolled back: {type(e).__name__}: {e}"
                )
                raise TransferFailed() from e

        logger.info(
            f"Transfer {transaction.transaction_id} committed: {transaction.amount} "
            f"{transaction.currency.value} {source} -> {destination} "
            f"(rate {transaction.exchange_rate}, credited {transaction.converted_amount})"
        )

        committed = await self.store.get_transaction_by_transaction_id(
            transaction.transaction_id
        )
        if committed is None:
            raise TransferFailed("Committed transaction could not be read back")
        return committed

    async def _apply(
        self,
        store: LedgerStore,
        source: str,
        destination: str,
        amount: Decimal,
        note: str,
        transfer_date: date | None,
        idempotency_key: str | None,
    ) -> Transaction:
        """One attempt at the transfer; runs inside ``run_atomic``."""
        # Row locks are taken in the same order as the in-process locks
        accounts = {}
        for name in sorted((source, destination)):
            accounts[name] = await store.get_account(name, for_update=True)

        from_account = accounts[source]
        to_account = accounts[destination]
        if from_account is None:
            raise AccountNotFound(source, "source")
        if to_account is None:
            raise AccountNotFound(destination, "destination")

        if from_account.balance < amount:
            raise InsufficientFunds(available=from_account.balance, requested=amount)

        rate = self.conversion_table.rate(from_account.currency, to_account.currency)
        converted = quantize_money(amount * rate)
        if converted <= 0:
            raise ValidationError(
                errors=[
                    {
                        "field": "amount",
                        "message": (
                            f"Amount converts to {converted} {to_account.currency.value}; "
                            "the destination must receive at least 0.01"
                        ),
                    }
                ]
            )

        debit = from_account.balance - amount
        credit = to_account.balance + converted
        to_version = to_account.version

        await store.set_balance(source, debit, expected_version=from_account.version)
        await store.set_balance(destination, credit, expected_version=to_version)

        return await store.append_transaction(
            {
                "transaction_id": str(uuid.uuid4()),
                "from_account": source,
                "to_account": destination,
                "amount": amount,
                "currency": from_account.currency,
                "exchange_rate": rate,
                "converted_amount": converted,
                "note": note,
                "status": TransactionStatus.COMPLETED,
                "transfer_date": transfer_date,
                "idempotency_key": idempotency_key,
            }
        )

    async def _replay(
        self,
        key: str,
        source: str,
        destination: str,
        amount: Decimal,
    ) -> Transaction | None:
        """Return the transfer already committed under ``key``, if any.

        Raises:
            IdempotencyConflict: The key belongs to a different transfer
        """
        existing = await self.store.get_transaction_by_idempotency_key(key)
        if existing is None:
            return None

        if (existing.from_account, existing.to_account, existing.amount) != (
            source,
            destination,
            amount,
        ):
            logger.warning(f"Idempotency key {key} reused for a different transfer")
            raise IdempotencyConflict(
                f"Idempotency key {key} was already used for a different transfer",
                context={"transaction_id": existing.transaction_id},
            )

        logger.info(f"Replaying transfer {existing.transaction_id} for idempotency key {key}")
        return existing
