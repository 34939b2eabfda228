"""Rate limiting configuration using slowapi.

Each router shares one counter across all of its endpoints:
``ACCOUNT_RATE_LIMIT`` for account endpoints and ``TRANSACTION_RATE_LIMIT``
for the transaction log and transfers. Clients are keyed by remote address.
"""

import logging
import re

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from treasury.core.config import settings

logger = logging.getLogger(__name__)

_UNIT_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


def retry_after_seconds(limit_detail: str) -> int:
    """Length of the limit window in seconds, parsed from ``"50 per 15 minute"``.

    Defaults to 60 when the detail cannot be parsed.
    """
    match = re.search(r"\d+\s+per\s+(\d+)?\s*(second|minute|hour|day)", limit_detail)
    if not match:
        return 60
    multiplier = int(match.group(1)) if match.group(1) else 1
    return multiplier * _UNIT_SECONDS[match.group(2)]


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a 429 in the same shape as application errors.

    Args:
        request: The incoming request
        exc: The RateLimitExceeded exception

    Returns:
        JSONResponse with ``detail``, ``error_code`` and ``retry_after``, plus
        a ``Retry-After`` header
    """
    retry_after = retry_after_seconds(str(exc.detail))
    client_host = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client_host} on {request.url.path}: {exc.detail}")

    response = JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please try again later.",
            "error_code": "RATE_LIMITED",
            "limit": str(exc.detail),
            "retry_after": retry_after,
        },
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # Routers apply their own shared limits
    enabled=settings.RATE_LIMIT_ENABLED,
    headers_enabled=False,  # Incompatible with FastAPI response models
)

account_limit = limiter.shared_limit(settings.ACCOUNT_RATE_LIMIT, scope="accounts")
transaction_limit = limiter.shared_limit(settings.TRANSACTION_RATE_LIMIT, scope="transactions")
