import inspect
from datetime import timedelta

import pytest
import pytest_asyncio

from config import Settings
from services.analytics_cache import CacheType
from services.container import build_services
from services.scheduler import (
    run_daily_analytics,
    run_data_cleanup,
    start_scheduler,
    stop_scheduler,
    sweep_analytics_cache,
)
from tests.conftest import NOW
from tests.fakes import FakeEngagementClient, add_rows, make_account, make_tweet

SETTINGS = Settings(scheduler_enabled=False, daily_sync_hour=3, daily_cleanup_hour=5, cache_sweep_minutes=10)


@pytest_asyncio.fixture
async def services(session_factory, clock, sleep):
    return build_services(session_factory, SETTINGS, client=FakeEngagementClient(), clock=clock, sleep=sleep)


async def cached_value():
    return {"cached": True}


@pytest.mark.asyncio
async def test_daily_run_syncs_and_generates_per_user(services, session_factory):
    await add_rows(
        session_factory,
        make_account(),
        make_account("acc-2", user_id="user-2", provider_account_id="x-2", username="bob"),
        make_tweet("t1", NOW - timedelta(days=1)),
        make_tweet("t2", NOW - timedelta(days=9), user_id="user-2", twitter_account_id="x-2"),
    )
    await services.cache.get_cached_analytics(CacheType.DASHBOARD, "user-1", cached_value)

    summary = await run_daily_analytics(services)

    assert summary["users"] == 2
    assert summary["succeeded"] == 2
    assert summary["failed"] == 0
    assert summary["daily_stats_collected"] == 2
    # bob's only post is 9 days old, so he gets an inactive-account insight
    assert summary["insights_generated"] == 1
    assert services.cache.get_cache_stats()["total_entries"] == 0


@pytest.mark.asyncio
async def test_daily_run_continues_after_user_failure(services, session_factory, monkeypatch):
    await add_rows(
        session_factory,
        make_account(),
        make_account("acc-2", user_id="user-2", provider_account_id="x-2", username="bob"),
    )
    original = services.insight_generator.generate_all_insights

    async def flaky(user_id):
        if user_id == "user-1":
            raise RuntimeError("lost connection")
        return await original(user_id)

    monkeypatch.setattr(services.insight_generator, "generate_all_insights", flaky)

    summary = await run_daily_analytics(services)

    assert summary["succeeded"] == 1
    assert summary["failed"] == 1


@pytest.mark.asyncio
async def test_cleanup_job_logs_instead_of_raising(services, monkeypatch):
    async def broken():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(services.data_cleanup, "run_global_cleanup", broken)

    await run_data_cleanup(services)


@pytest.mark.asyncio
async def test_cache_sweep_removes_expired_entries(services, clock):
    await services.cache.get_cached_analytics(CacheType.DASHBOARD, "user-1", cached_value)
    clock.advance(minutes=2)

    assert await sweep_analytics_cache(services) == 1


@pytest.mark.asyncio
async def test_scheduled_jobs_are_coroutines(services):
    scheduler = start_scheduler(services, SETTINGS)
    try:
        for job in scheduler.get_jobs():
            # AsyncIOScheduler hands plain functions to a thread pool
            assert inspect.iscoroutinefunction(job.func), job.id
    finally:
        stop_scheduler(scheduler)


@pytest.mark.asyncio
async def test_scheduler_registers_jobs(services):
    scheduler = start_scheduler(services, SETTINGS)
    try:
        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {"daily_analytics", "data_cleanup", "analytics_cache_sweep"}
        assert str(jobs["daily_analytics"].trigger.fields[5]) == "3"
        assert str(jobs["data_cleanup"].trigger.fields[5]) == "5"
        assert jobs["analytics_cache_sweep"].trigger.interval == timedelta(minutes=10)
    finally:
        stop_scheduler(scheduler)

    assert not scheduler.running
