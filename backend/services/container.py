"""Service wiring.

Builds every repository and service once at process start. The FastAPI app
keeps the container on `app.state.services`; the scheduler jobs receive it
directly.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import Settings
from models.tweet import TweetStatus
from repositories import (
    SqlAccountRepository,
    SqlAnalyticsRepository,
    SqlInsightRepository,
    SqlRetentionRepository,
    SqlSnapshotRepository,
    SqlTweetRepository,
)
from services.account_sync import AccountSyncService, Sleep, SyncPolicy
from services.analytics_cache import AnalyticsCache, CacheType
from services.clock import Clock, utc_now
from services.content_analytics import ContentAnalyticsService
from services.daily_stats import DailyStatsCollector
from services.data_cleanup import DataCleanupService
from services.engagement_client import EngagementClient, XEngagementClient
from services.insight_generator import InsightGenerator


@dataclass
class ServiceContainer:
    tweets: SqlTweetRepository
    accounts: SqlAccountRepository
    account_sync: AccountSyncService
    content_analytics: ContentAnalyticsService
    daily_stats: DailyStatsCollector
    data_cleanup: DataCleanupService
    cache: AnalyticsCache
    insight_generator: InsightGenerator

    async def get_dashboard_overview(self, user_id: str) -> dict[str, Any]:
        """Tweet counts per status, served through the dashboard cache."""

        async def compute() -> dict[str, Any]:
            counts = await self.tweets.count_by_status(user_id)
            overview = {"total_tweets": sum(counts.values())}
            for status in TweetStatus:
                overview[f"{status.value}_tweets"] = counts.get(status.value, 0)
            return overview

        return await self.cache.get_cached_analytics(CacheType.DASHBOARD, user_id, compute)


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    client: Optional[EngagementClient] = None,
    clock: Clock = utc_now,
    sleep: Sleep = asyncio.sleep,
) -> ServiceContainer:
    """Create repositories and services sharing one session factory."""
    accounts = SqlAccountRepository(session_factory)
    tweets = SqlTweetRepository(session_factory)
    snapshots = SqlSnapshotRepository(session_factory)
    insights = SqlInsightRepository(session_factory)
    retention = SqlRetentionRepository(session_factory)
    analytics = SqlAnalyticsRepository(session_factory)

    if client is None:
        client = XEngagementClient(
            bearer_token=settings.x_bearer_token,
            base_url=settings.x_api_base,
            timeout=settings.x_request_timeout,
        )

    content_analytics = ContentAnalyticsService(tweets, analytics, clock=clock)

    return ServiceContainer(
        tweets=tweets,
        accounts=accounts,
        account_sync=AccountSyncService(
            accounts,
            tweets,
            snapshots,
            client,
            policy=SyncPolicy.from_settings(settings),
            clock=clock,
            sleep=sleep,
            content_analytics=content_analytics,
        ),
        content_analytics=content_analytics,
        daily_stats=DailyStatsCollector(accounts, tweets, analytics, clock=clock),
        data_cleanup=DataCleanupService(retention, accounts, snapshots, analytics, insights, clock=clock),
        cache=AnalyticsCache(clock=clock),
        insight_generator=InsightGenerator(analytics, insights, clock=clock),
    )
