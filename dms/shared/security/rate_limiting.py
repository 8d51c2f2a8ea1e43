"""
Per-client request throttling for the API.

Limits come from settings. Import, sync and settings refresh routes use
the stricter heavy limit because each call fans out to market data
providers. Counters live in process memory.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from dms.core.config import settings
from dms.shared.errors.handlers import error_body

DEFAULT_RATE_LIMIT = settings.rate_limit_default
HEAVY_RATE_LIMIT = settings.rate_limit_heavy

RETRY_AFTER_SECONDS = "60"


def client_key(request: Request) -> str:
    """Identify the caller by the first forwarded hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    default_limits=[DEFAULT_RATE_LIMIT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Answer a throttled request with 429 and the standard error body."""
    return JSONResponse(
        status_code=429,
        content=error_body(
            "Rate limit exceeded", f"Too many requests: {exc.detail}", request
        ),
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )
