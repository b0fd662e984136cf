"""Rate limits for the admin trigger endpoints (SlowAPI, in-memory storage).

Sync, cleanup and insight runs fan out into many queries and X API calls,
so each trigger gets its own per-caller budget.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

SYNC_LIMIT = "5/minute"
CLEANUP_LIMIT = "10/minute"
GLOBAL_CLEANUP_LIMIT = "2/minute"
INSIGHTS_LIMIT = "10/minute"


def trigger_caller_key(request: Request) -> str:
    """Budget per client address and target user (global triggers share one bucket)."""
    user_id = request.path_params.get("user_id", "*")
    return f"{get_remote_address(request)}:{user_id}"


limiter = Limiter(key_func=trigger_caller_key)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 with the exceeded limit, e.g. "2 per 1 minute"."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Too many {request.method} {request.url.path} calls. Please try again later.",
            "limit": exc.detail,
        },
        headers={"Retry-After": "60"},
    )
