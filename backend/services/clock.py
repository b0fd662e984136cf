"""Clock helpers shared by the sync, cleanup, cache and insight services."""

from datetime import datetime, timezone
from typing import Callable

# Services take a clock so tiering and expiry can be tested deterministically
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
