"""Centralized exception hierarchy and handlers for the application.

Every failure the ledger can produce is a typed, recoverable outcome with a
stable machine-readable ``error_code``, so the HTTP layer never has to inspect
free-text messages to pick a status code.

Exception Hierarchy:
    AppException (base)
    ├── ValidationError (400)
    │   ├── InvalidCurrency (400)
    │   └── NegativeBalance (400)
    ├── NotFoundError (404)
    │   └── AccountNotFound (404)
    ├── ConflictError (409)
    │   ├── DuplicateName (409)
    │   ├── IdempotencyConflict (409)
    │   └── ConcurrentUpdateError (409)
    ├── InsufficientFunds (400)
    ├── UnsupportedCurrencyPair (500)
    └── TransferFailed (503)

Usage in Services:
    from treasury.core.exceptions import InsufficientFunds

    if account.balance < amount:
        raise InsufficientFunds(available=account.balance, requested=amount)

The exception handler automatically converts these to HTTP responses.
"""

import logging
from decimal import Decimal
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for all application errors.

    Provides standard structure for application exceptions that can be
    automatically converted to HTTP responses with appropriate status codes.

    Attributes:
        status_code: HTTP status code for this error type
        detail: User-facing error message
        error_code: Machine-readable error code (optional)
        context: Structured diagnostics merged into the response body
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    error_code: str | None = None

    def __init__(
        self,
        detail: str | None = None,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            detail: Custom error message (overrides class default)
            error_code: Machine-readable error identifier
            context: Extra structured fields for the caller
        """
        self.detail = detail or self.__class__.detail
        self.error_code = error_code or self.__class__.error_code
        self.context = context or {}
        super().__init__(self.detail)


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Carries the offending fields in ``errors`` as a list of
    ``{"field": ..., "message": ...}`` entries. Never retried.
    Maps to HTTP 400 Bad Request.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        detail: str | None = None,
        *,
        errors: list[dict[str, str]] | None = None,
        error_code: str | None = None,
    ) -> None:
        self.errors = errors or []
        super().__init__(
            detail,
            error_code=error_code,
            context={"errors": self.errors} if self.errors else None,
        )

    @property
    def fields(self) -> list[str]:
        """Names of the fields that failed validation."""
        return [error["field"] for error in self.errors]


class InvalidCurrency(ValidationError):
    """Raised when a currency code is outside the supported enumeration."""

    detail = "Invalid currency"
    error_code = "INVALID_CURRENCY"


class NegativeBalance(ValidationError):
    """Raised when a balance would be created or set below zero."""

    detail = "Balance cannot be negative"
    error_code = "NEGATIVE_BALANCE"


class NotFoundError(AppException):
    """
    Raised when a requested resource is not found.

    Used for balance overrides, deletes and lookups targeting a missing row.
    Maps to HTTP 404 Not Found.
    """

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    error_code = "NOT_FOUND"


class AccountNotFound(NotFoundError):
    """Raised when a transfer references an unknown account.

    ``side`` is ``"source"`` or ``"destination"``.
    """

    detail = "Account not found"
    error_code = "ACCOUNT_NOT_FOUND"

    def __init__(self, name: str, side: str) -> None:
        self.name = name
        self.side = side
        label = "Source" if side == "source" else "Destination"
        super().__init__(
            f"{label} account {name} not found",
            context={"account": name, "side": side},
        )


class ConflictError(AppException):
    """
    Raised when there's a conflict in the operation.

    Used for concurrent modifications, duplicate entries, or state conflicts.
    Maps to HTTP 409 Conflict.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource conflict"
    error_code = "CONFLICT"


class DuplicateName(ConflictError):
    """Raised when an account name is already taken."""

    detail = "Account name already exists"
    error_code = "DUPLICATE_NAME"


class IdempotencyConflict(ConflictError):
    """Raised when an idempotency key is reused for a different transfer."""

    detail = "Idempotency key already used for a different transfer"
    error_code = "IDEMPOTENCY_CONFLICT"


class ConcurrentUpdateError(ConflictError):
    """Raised when a compare-and-swap balance write observes a stale version.

    The transfer engine catches this and retries; it only reaches callers
    that use ``LedgerStore.set_balance`` with ``expected_version`` directly.
    """

    detail = "Account was modified concurrently"
    error_code = "CONCURRENT_UPDATE"


class InsufficientFunds(AppException):
    """
    Raised when the source balance does not cover the requested amount.

    Maps to HTTP 400 Bad Request.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Insufficient balance"
    error_code = "INSUFFICIENT_FUNDS"

    def __init__(self, *, available: Decimal, requested: Decimal) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient balance. Available: {available}, Required: {requested}",
            context={"available": str(available), "requested": str(requested)},
        )


class UnsupportedCurrencyPair(AppException):
    """Raised when the rate table has no entry for a currency pair."""

    detail = "Unsupported currency pair"
    error_code = "UNSUPPORTED_CURRENCY_PAIR"

    def __init__(self, from_currency: str, to_currency: str) -> None:
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(
            f"No exchange rate configured for {from_currency} -> {to_currency}",
            context={"from_currency": from_currency, "to_currency": to_currency},
        )


class TransferFailed(AppException):
    """
    Raised when the atomic commit of a transfer could not complete.

    Covers storage faults and an exhausted optimistic-retry budget. The
    transfer was rolled back; retrying is only safe with an idempotency key.
    Maps to HTTP 503 Service Unavailable.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Transfer could not be completed"
    error_code = "TRANSFER_FAILED"


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """
    Handle application exceptions and convert to HTTP responses.

    Args:
        request: FastAPI request object
        exc: The exception instance

    Returns:
        JSONResponse with error details and HTTP status code

    Response Format:
        {
            "detail": "User-facing error message",
            "error_code": "MACHINE_READABLE_CODE",
            ...context fields
        }
    """
    if exc.status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__}: {exc.detail}",
            exc_info=True,
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )
    else:
        logger.warning(
            f"{exc.__class__.__name__}: {exc.detail}",
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )

    response_body: dict[str, Any] = {"detail": exc.detail}
    if exc.error_code:
        response_body["error_code"] = exc.error_code
    response_body.update(exc.context)

    return JSONResponse(
        status_code=exc.status_code,
        content=response_body,
    )
