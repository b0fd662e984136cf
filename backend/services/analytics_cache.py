"""In-process TTL cache for expensive analytics reads.

Entries live in process memory only and are lost on restart. Expired
entries are swept by the scheduler's cache job.
"""

import enum
import json
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, TypeVar

from services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheType(str, enum.Enum):
    DASHBOARD = "dashboard"
    OVERVIEW = "overview"
    ENGAGEMENT = "engagement"
    CONTENT_MIX = "contentMix"
    HASHTAGS = "hashtags"


CACHE_TTLS: dict[CacheType, timedelta] = {
    CacheType.DASHBOARD: timedelta(minutes=1),
    CacheType.OVERVIEW: timedelta(minutes=5),
    CacheType.ENGAGEMENT: timedelta(minutes=15),
    CacheType.CONTENT_MIX: timedelta(minutes=30),
    CacheType.HASHTAGS: timedelta(hours=1),
}


class CacheJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles datetimes and dataclass-like objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, enum.Enum):
            return obj.value
        if hasattr(obj, "__dict__"):
            return {k: v for k, v in vars(obj).items() if not k.startswith("_")}
        return str(obj)


def canonical_params(params: Optional[dict[str, Any]]) -> str:
    """Stable string form of query params (sorted keys)."""
    if not params:
        return ""
    return json.dumps(params, sort_keys=True, separators=(",", ":"), cls=CacheJSONEncoder)


@dataclass(frozen=True)
class CacheKey:
    cache_type: CacheType
    user_id: str
    params: str = ""

    def __str__(self) -> str:
        return f"{self.cache_type.value}:{self.user_id}:{self.params}"


@dataclass
class CachedAnalytics:
    data: Any
    computed_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class AnalyticsCache:
    """TTL memoization keyed by (type, user, params)."""

    def __init__(self, clock: Clock = utc_now, ttls: Optional[dict[CacheType, timedelta]] = None):
        self.clock = clock
        self.ttls = dict(ttls or CACHE_TTLS)
        self._entries: dict[CacheKey, CachedAnalytics] = {}

    async def get_cached_analytics(
        self,
        cache_type: CacheType,
        user_id: str,
        compute_fn: Callable[[], Awaitable[T]],
        params: Optional[dict[str, Any]] = None,
    ) -> T:
        """Return the cached value, or compute and store it when missing or expired.

        Exceptions from `compute_fn` propagate and nothing is stored.
        """
        cache_type = CacheType(cache_type)
        key = CacheKey(cache_type, user_id, canonical_params(params))
        cached = self._entries.get(key)

        if cached and cached.is_valid(self.clock()):
            logger.debug(f"Analytics cache hit: {cache_type.value} for user {user_id}")
            return cached.data

        logger.debug(f"Analytics cache miss: {cache_type.value} for user {user_id}, computing...")
        started = time.monotonic()
        try:
            data = await compute_fn()
        except Exception as e:
            logger.error(f"Failed to compute analytics {cache_type.value}: {e}")
            raise

        now = self.clock()
        self._entries[key] = CachedAnalytics(
            data=data,
            computed_at=now,
            expires_at=now + self.ttls[cache_type],
        )
        logger.debug(
            f"Analytics computed in {int((time.monotonic() - started) * 1000)}ms: {cache_type.value}"
        )
        return data

    def invalidate_user_cache(self, user_id: str, cache_type: Optional[CacheType] = None) -> int:
        """Drop a user's entries, optionally of a single type. Returns the number removed."""
        cache_type = CacheType(cache_type) if cache_type is not None else None
        stale = [
            key for key in self._entries
            if key.user_id == user_id and (cache_type is None or key.cache_type == cache_type)
        ]
        for key in stale:
            del self._entries[key]

        suffix = f" ({cache_type.value})" if cache_type else ""
        logger.debug(f"Invalidated {len(stale)} analytics cache entries for user {user_id}{suffix}")
        return len(stale)

    def invalidate_all_caches(self) -> None:
        self._entries.clear()
        logger.debug("All analytics caches invalidated")

    def get_cache_stats(self) -> dict[str, Any]:
        now = self.clock()
        valid = sum(1 for entry in self._entries.values() if entry.is_valid(now))

        # Rough memory estimate from the serialized payloads
        payload = json.dumps([entry.data for entry in self._entries.values()], cls=CacheJSONEncoder)
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid,
            "memory_usage": f"{len(payload) / 1024:.2f} KB",
        }

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired analytics cache entries")
        return len(expired)
