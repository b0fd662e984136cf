"""Data retention cleanup.

Deletes time-series rows older than each user's retention windows. A window
of 0 days turns cleanup off for that table. Expired or dismissed insights are
always removed.
"""

import logging
import time
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Any

from models.data_retention_settings import DataRetentionSettings
from repositories.accounts import AccountRepository
from repositories.analytics import AnalyticsRepository
from repositories.insights import InsightRepository
from repositories.retention import RetentionRepository
from repositories.snapshots import SnapshotRepository
from services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

RETENTION_FIELDS = {
    "snapshot_retention_days": int,
    "snapshot_active_tweet_days": int,
    "follower_history_retention_days": int,
    "daily_stats_retention_days": int,
    "content_analytics_retention_days": int,
    "auto_cleanup_enabled": bool,
}


@dataclass
class CleanupStats:
    snapshots_deleted: int = 0
    follower_history_deleted: int = 0
    daily_stats_deleted: int = 0
    content_analytics_deleted: int = 0
    insights_deleted: int = 0
    total_records_deleted: int = 0
    duration_ms: int = 0

    def add(self, other: "CleanupStats") -> None:
        self.snapshots_deleted += other.snapshots_deleted
        self.follower_history_deleted += other.follower_history_deleted
        self.daily_stats_deleted += other.daily_stats_deleted
        self.content_analytics_deleted += other.content_analytics_deleted
        self.insights_deleted += other.insights_deleted

    def finalize(self, started: float) -> "CleanupStats":
        self.total_records_deleted = (
            self.snapshots_deleted
            + self.follower_history_deleted
            + self.daily_stats_deleted
            + self.content_analytics_deleted
            + self.insights_deleted
        )
        self.duration_ms = int((time.monotonic() - started) * 1000)
        return self

    def to_dict(self) -> dict:
        return asdict(self)


def _validate_patch(patch: dict[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(patch) - set(RETENTION_FIELDS))
    if unknown:
        raise ValueError(f"Unknown retention settings: {', '.join(unknown)}")

    for key, value in patch.items():
        expected = RETENTION_FIELDS[key]
        if expected is bool:
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean")
        elif isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{key} must be a non-negative integer")
    return patch


class DataCleanupService:
    """Applies per-user retention windows."""

    def __init__(
        self,
        retention: RetentionRepository,
        accounts: AccountRepository,
        snapshots: SnapshotRepository,
        analytics: AnalyticsRepository,
        insights: InsightRepository,
        clock: Clock = utc_now,
    ):
        self.retention = retention
        self.accounts = accounts
        self.snapshots = snapshots
        self.analytics = analytics
        self.insights = insights
        self.clock = clock

    async def run_global_cleanup(self) -> CleanupStats:
        """Clean up every user with auto-cleanup enabled."""
        started = time.monotonic()
        totals = CleanupStats()
        user_ids = await self.retention.list_auto_cleanup_user_ids()
        logger.info(f"Starting global data cleanup for {len(user_ids)} users")

        for user_id in user_ids:
            try:
                totals.add(await self.cleanup_user_data(user_id))
            except Exception as e:
                logger.error(f"Data cleanup failed for user {user_id}: {e}")

        totals.finalize(started)
        logger.info(
            f"Global data cleanup complete: {totals.total_records_deleted} records "
            f"deleted in {totals.duration_ms}ms"
        )
        return totals

    async def cleanup_user_data(self, user_id: str) -> CleanupStats:
        """Delete a user's rows that fall outside their retention windows."""
        started = time.monotonic()
        stats = CleanupStats()
        settings = await self.get_user_retention_settings(user_id)

        if not settings.auto_cleanup_enabled:
            logger.info(f"Auto-cleanup disabled for user {user_id}, skipping")
            return stats.finalize(started)

        now = self.clock()

        if settings.snapshot_retention_days > 0:
            cutoff = (now - timedelta(days=settings.snapshot_retention_days)).date()
            stats.snapshots_deleted = await self.snapshots.delete_before(user_id, cutoff)

        if settings.follower_history_retention_days > 0:
            cutoff = now - timedelta(days=settings.follower_history_retention_days)
            stats.follower_history_deleted = await self.accounts.delete_follower_history_before(
                user_id, cutoff
            )

        if settings.daily_stats_retention_days > 0:
            cutoff = (now - timedelta(days=settings.daily_stats_retention_days)).date()
            stats.daily_stats_deleted = await self.analytics.delete_daily_stats_before(user_id, cutoff)

        if settings.content_analytics_retention_days > 0:
            cutoff = now - timedelta(days=settings.content_analytics_retention_days)
            stats.content_analytics_deleted = await self.analytics.delete_content_analytics_before(
                user_id, cutoff
            )

        stats.insights_deleted = await self.insights.delete_expired_or_dismissed(user_id, now)

        await self.retention.mark_cleaned(user_id, now)
        stats.finalize(started)
        logger.info(
            f"Data cleanup for user {user_id}: {stats.snapshots_deleted} snapshots, "
            f"{stats.follower_history_deleted} follower history, {stats.daily_stats_deleted} daily stats, "
            f"{stats.content_analytics_deleted} content analytics, {stats.insights_deleted} insights"
        )
        return stats

    async def get_user_retention_settings(self, user_id: str) -> DataRetentionSettings:
        """Get a user's retention settings, creating the default row when missing."""
        settings = await self.retention.get(user_id)
        if settings is None:
            settings = await self.retention.create_default(user_id, self.clock())
            logger.info(f"Created default retention settings for user {user_id}")
        return settings

    async def update_user_retention_settings(
        self, user_id: str, patch: dict[str, Any]
    ) -> DataRetentionSettings:
        """Apply a sparse update. Only the supplied keys change."""
        _validate_patch(patch)
        await self.get_user_retention_settings(user_id)

        if patch:
            await self.retention.update(user_id, dict(patch), self.clock())
            logger.info(f"Retention settings updated for user {user_id}: {sorted(patch)}")

        return await self.retention.get(user_id)
