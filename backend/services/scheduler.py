"""Background scheduler for periodic tasks.

Uses APScheduler to run the daily engagement sync (with the stats rollup and
insight run), the daily retention cleanup and the analytics cache sweep.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings
from services.container import ServiceContainer

logger = logging.getLogger(__name__)


async def run_daily_analytics(services: ServiceContainer) -> dict:
    """Sync every user's accounts, roll up daily stats, then regenerate insights.

    Users are processed one at a time; a failure for one user is logged and
    the run continues with the next.
    """
    user_ids = await services.accounts.list_user_ids()
    logger.info(f"Starting daily analytics run for {len(user_ids)} users")

    summary = {
        "users": len(user_ids),
        "succeeded": 0,
        "failed": 0,
        "daily_stats_collected": 0,
        "insights_generated": 0,
    }
    for user_id in user_ids:
        try:
            stats = await services.account_sync.sync_user_accounts(user_id)
            daily = await services.daily_stats.collect_user(user_id)
            insights = await services.insight_generator.generate_all_insights(user_id)
            services.cache.invalidate_user_cache(user_id)

            summary["succeeded"] += 1
            summary["daily_stats_collected"] += daily.success
            summary["insights_generated"] += insights.insights_generated
            logger.info(
                f"Daily analytics for user {user_id}: {stats.total_tweets_synced} tweets synced, "
                f"{insights.insights_generated} insights"
            )
        except Exception as e:
            summary["failed"] += 1
            logger.error(f"Daily analytics failed for user {user_id}: {e}")

    logger.info(f"Daily analytics run complete: {summary}")
    return summary


async def run_data_cleanup(services: ServiceContainer) -> None:
    """Background task applying retention windows for all users."""
    try:
        await services.data_cleanup.run_global_cleanup()
    except Exception as e:
        logger.error(f"Scheduled data cleanup failed: {e}")


async def sweep_analytics_cache(services: ServiceContainer) -> int:
    """Drop expired cache entries; runs on the event loop alongside cache reads."""
    removed = services.cache.cleanup_expired()
    if removed:
        logger.debug(f"Analytics cache sweep removed {removed} entries")
    return removed


def start_scheduler(services: ServiceContainer, settings: Settings) -> AsyncIOScheduler:
    """Create and start the background scheduler with all jobs."""
    scheduler = AsyncIOScheduler(timezone="UTC")

    # Daily engagement sync, stats rollup and insight generation
    scheduler.add_job(
        run_daily_analytics,
        trigger=CronTrigger(hour=settings.daily_sync_hour, minute=0, timezone="UTC"),
        args=[services],
        id="daily_analytics",
        name="Sync account engagement and generate insights",
        replace_existing=True,
    )

    # Daily retention cleanup
    scheduler.add_job(
        run_data_cleanup,
        trigger=CronTrigger(hour=settings.daily_cleanup_hour, minute=0, timezone="UTC"),
        args=[services],
        id="data_cleanup",
        name="Delete data outside retention windows",
        replace_existing=True,
    )

    # Analytics cache sweep
    scheduler.add_job(
        sweep_analytics_cache,
        trigger=IntervalTrigger(minutes=settings.cache_sweep_minutes),
        args=[services],
        id="analytics_cache_sweep",
        name="Remove expired analytics cache entries",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"Background scheduler started (sync {settings.daily_sync_hour:02d}:00 UTC, "
        f"cleanup {settings.daily_cleanup_hour:02d}:00 UTC, "
        f"cache sweep every {settings.cache_sweep_minutes} min)"
    )
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
