from datetime import timedelta

import pytest
from sqlalchemy import func, select

from models.account import Account
from models.account_sync_status import AccountSyncStatus, SyncOutcome
from models.engagement_snapshot import EngagementSnapshot
from models.follower_history import FollowerHistory
from models.tweet import Tweet, TweetStatus
from repositories import SqlAccountRepository, SqlSnapshotRepository, SqlTweetRepository
from services.account_sync import AccountSyncService, SyncPolicy
from services.engagement_client import EngagementAPIError, TweetDetails, TweetNotFoundError
from tests.conftest import NOW
from tests.fakes import (
    FakeAccountRepository,
    FakeEngagementClient,
    FakeSnapshotRepository,
    FakeTweetRepository,
    add_rows,
    make_account,
    make_tweet,
)


def build_fake_service(accounts, tweets, client, clock, sleep, **kwargs):
    account_repo = FakeAccountRepository(accounts)
    tweet_repo = FakeTweetRepository(tweets)
    snapshot_repo = FakeSnapshotRepository()
    service = AccountSyncService(
        account_repo, tweet_repo, snapshot_repo, client, clock=clock, sleep=sleep, **kwargs
    )
    return service, account_repo, tweet_repo, snapshot_repo


class RecordingContentAnalytics:
    def __init__(self):
        self.analyzed = []

    async def analyze_tweet(self, tweet_id):
        self.analyzed.append(tweet_id)


# ============== Tier window ==============

@pytest.mark.asyncio
async def test_sync_candidates_follow_tiers(session_factory):
    await add_rows(
        session_factory,
        make_tweet("fresh-updated", NOW - timedelta(days=6), updated_at=NOW - timedelta(hours=1)),
        make_tweet("active-recent", NOW - timedelta(days=8), updated_at=NOW - timedelta(hours=2)),
        make_tweet("active-stale", NOW - timedelta(days=8, hours=1), updated_at=NOW - timedelta(hours=25)),
        make_tweet("active-never", NOW - timedelta(days=8, hours=2)),
        make_tweet("old-never", NOW - timedelta(days=31)),
        make_tweet("fresh-scheduled", NOW - timedelta(days=1), status=TweetStatus.SCHEDULED.value),
        make_tweet("fresh-upper", NOW - timedelta(days=2), status="POSTED"),
        make_tweet("fresh-unlinked", NOW - timedelta(days=1), twitter_tweet_id=None),
        make_tweet("other-account", NOW - timedelta(days=1), twitter_account_id="x-2"),
    )

    candidates = await SqlTweetRepository(session_factory).list_sync_candidates(
        "x-1", SyncPolicy().window(NOW), limit=200
    )

    assert [t.id for t in candidates] == ["fresh-upper", "fresh-updated", "active-stale", "active-never"]


@pytest.mark.asyncio
async def test_unlinked_tweets_do_not_take_cap_slots(session_factory):
    await add_rows(
        session_factory,
        *(make_tweet(f"unlinked-{i}", NOW - timedelta(minutes=i + 1), twitter_tweet_id=None) for i in range(200)),
        make_tweet("linked", NOW - timedelta(days=3)),
    )

    candidates = await SqlTweetRepository(session_factory).list_sync_candidates(
        "x-1", SyncPolicy().window(NOW), limit=200
    )

    assert [t.id for t in candidates] == ["linked"]


def test_sync_policy_from_settings():
    class StubSettings:
        sync_max_tweets = 50
        sync_batch_size = 5
        sync_account_delay_seconds = 0.1
        sync_batch_delay_seconds = 0.2

    policy = SyncPolicy.from_settings(StubSettings())

    assert policy.max_tweets == 50
    assert policy.batch_size == 5
    assert policy.account_delay_seconds == 0.1
    assert policy.batch_delay_seconds == 0.2
    assert policy.fresh_days == 7
    assert policy.active_days == 30


# ============== SQL-backed sync ==============

@pytest.mark.asyncio
async def test_sync_fetches_only_tier_eligible_tweets(session_factory, clock, sleep):
    await add_rows(
        session_factory,
        make_account(),
        make_tweet("t-2d", NOW - timedelta(days=2)),
        make_tweet("t-10d", NOW - timedelta(days=10)),
        make_tweet("t-40d", NOW - timedelta(days=40)),
    )
    client = FakeEngagementClient({
        "tw-t-2d": TweetDetails(like_count=40, retweet_count=4, reply_count=3, view_count=900),
    })
    service = AccountSyncService(
        SqlAccountRepository(session_factory),
        SqlTweetRepository(session_factory),
        SqlSnapshotRepository(session_factory),
        client,
        clock=clock,
        sleep=sleep,
    )

    stats = await service.sync_user_accounts("user-1")

    assert sorted(client.tweet_calls) == ["tw-t-10d", "tw-t-2d"]
    assert client.user_calls == ["alice"]
    assert stats.total_accounts == 1
    assert stats.successful_accounts == 1
    assert stats.total_tweets_synced == 2
    assert stats.total_tweets_failed == 0

    async with session_factory() as db:
        fresh = await db.get(Tweet, "t-2d")
        assert fresh.like_count == 40
        assert fresh.impression_count == 900
        assert fresh.updated_at == NOW

        old = await db.get(Tweet, "t-40d")
        assert old.updated_at is None

        snapshots = (await db.execute(select(EngagementSnapshot))).scalars().all()
        assert {s.tweet_id for s in snapshots} == {"t-2d", "t-10d"}
        assert all(s.snapshot_date == NOW.date() for s in snapshots)
        assert {s.tweet_age_days for s in snapshots} == {2, 10}

        status = (await db.execute(select(AccountSyncStatus))).scalar_one()
        assert status.last_sync_status == SyncOutcome.SUCCESS.value
        assert status.tweets_synced == 2
        assert status.next_sync_at == NOW + timedelta(hours=24)

        account = await db.get(Account, "acc-1")
        assert account.follower_count == 1200
        assert account.total_tweets_synced == 2
        assert account.last_tweet_sync_at == NOW

        history = (await db.execute(select(FollowerHistory))).scalars().all()
        assert [(h.follower_count, h.following_count) for h in history] == [(1200, 80)]


@pytest.mark.asyncio
async def test_second_sync_same_day_skips_recently_updated_and_keeps_one_snapshot(
    session_factory, clock, sleep
):
    await add_rows(
        session_factory,
        make_account(),
        make_tweet("t-2d", NOW - timedelta(days=2)),
        make_tweet("t-10d", NOW - timedelta(days=10)),
    )
    client = FakeEngagementClient()
    service = AccountSyncService(
        SqlAccountRepository(session_factory),
        SqlTweetRepository(session_factory),
        SqlSnapshotRepository(session_factory),
        client,
        clock=clock,
        sleep=sleep,
    )

    await service.sync_user_accounts("user-1")
    clock.advance(hours=1)
    await service.sync_user_accounts("user-1")

    # The 10-day tweet was refreshed an hour ago, so only the fresh tweet is re-fetched
    assert client.tweet_calls.count("tw-t-2d") == 2
    assert client.tweet_calls.count("tw-t-10d") == 1

    async with session_factory() as db:
        count = await db.execute(select(func.count(EngagementSnapshot.id)))
        assert count.scalar() == 2
        status_rows = await db.execute(select(func.count(AccountSyncStatus.id)))
        assert status_rows.scalar() == 1


@pytest.mark.asyncio
async def test_sync_status_overview_lists_accounts_by_username(session_factory, clock, sleep):
    await add_rows(
        session_factory,
        make_account("acc-b", username="bob", provider_account_id="x-b"),
        make_account("acc-a", username="alice", provider_account_id="x-a"),
    )
    service = AccountSyncService(
        SqlAccountRepository(session_factory),
        SqlTweetRepository(session_factory),
        SqlSnapshotRepository(session_factory),
        FakeEngagementClient(),
        clock=clock,
        sleep=sleep,
    )
    await service.sync_account(make_account("acc-a", username="alice", provider_account_id="x-a"), "user-1")

    overview = await service.get_user_accounts_sync_status("user-1")

    assert [row["username"] for row in overview] == ["alice", "bob"]
    assert overview[0]["last_sync_status"] == "success"
    assert overview[1]["last_sync_status"] is None


# ============== Per-tweet outcomes ==============

@pytest.mark.asyncio
async def test_not_found_tweet_is_marked_deleted_not_failed(clock, sleep):
    client = FakeEngagementClient()
    client.errors["tw-t1"] = TweetNotFoundError("Tweet tw-t1 not found or has been deleted")
    service, accounts, tweets, _ = build_fake_service(
        [make_account()], [make_tweet("t1", NOW - timedelta(days=1))], client, clock, sleep
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_deleted == 1
    assert result.tweets_failed == 0
    assert result.tweets_synced == 0
    assert result.error is None
    assert tweets.tweets["t1"].status == TweetStatus.DELETED.value
    assert accounts.statuses["acc-1"]["status"] == SyncOutcome.SUCCESS


@pytest.mark.asyncio
async def test_deleted_detection_is_case_insensitive(clock, sleep):
    client = FakeEngagementClient()
    client.errors["tw-t1"] = RuntimeError("Upstream says: Tweet Was DELETED")
    service, accounts, tweets, _ = build_fake_service(
        [make_account()], [make_tweet("t1", NOW - timedelta(days=1))], client, clock, sleep
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_deleted == 1
    assert tweets.tweets["t1"].status == TweetStatus.DELETED.value


@pytest.mark.asyncio
async def test_transient_failure_counts_and_marks_partial(clock, sleep):
    client = FakeEngagementClient()
    client.errors["tw-t1"] = EngagementAPIError("X API rate limit exceeded. Please try again later.")
    service, accounts, tweets, snapshots = build_fake_service(
        [make_account()],
        [make_tweet("t1", NOW - timedelta(days=1)), make_tweet("t2", NOW - timedelta(days=2))],
        client,
        clock,
        sleep,
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_failed == 1
    assert result.tweets_synced == 1
    assert result.error is None
    assert tweets.tweets["t1"].status == TweetStatus.POSTED.value
    assert list(snapshots.snapshots) == [("t2", NOW.date())]
    assert accounts.statuses["acc-1"]["status"] == SyncOutcome.PARTIAL
    assert accounts.statuses["acc-1"]["tweets_failed"] == 1


@pytest.mark.asyncio
async def test_tweet_with_blank_external_id_is_skipped(clock, sleep):
    client = FakeEngagementClient()
    service, accounts, _, _ = build_fake_service(
        [make_account()],
        [make_tweet("t1", NOW - timedelta(days=1), twitter_tweet_id="")],
        client,
        clock,
        sleep,
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_skipped == 1
    assert client.tweet_calls == []
    assert accounts.statuses["acc-1"]["status"] == SyncOutcome.SUCCESS


@pytest.mark.asyncio
async def test_old_snapshot_not_written_past_thirty_days(clock, sleep):
    policy = SyncPolicy(active_days=60)
    service, accounts, _, snapshots = build_fake_service(
        [make_account()],
        [make_tweet("t1", NOW - timedelta(days=45))],
        FakeEngagementClient(),
        clock,
        sleep,
        policy=policy,
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_synced == 1
    assert snapshots.snapshots == {}


@pytest.mark.asyncio
async def test_synced_tweets_refresh_content_analytics(clock, sleep):
    client = FakeEngagementClient()
    client.errors["tw-t2"] = EngagementAPIError("boom")
    content_analytics = RecordingContentAnalytics()
    service, accounts, _, _ = build_fake_service(
        [make_account()],
        [make_tweet("t1", NOW - timedelta(days=1)), make_tweet("t2", NOW - timedelta(days=1))],
        client,
        clock,
        sleep,
        content_analytics=content_analytics,
    )

    await service.sync_account(accounts.accounts[0], "user-1")

    assert content_analytics.analyzed == ["t1"]


# ============== Account-level behavior ==============

@pytest.mark.asyncio
async def test_follower_failure_does_not_abort_tweet_sync(clock, sleep):
    client = FakeEngagementClient()
    client.user_error = EngagementAPIError("X user @alice not found")
    service, accounts, _, _ = build_fake_service(
        [make_account()], [make_tweet("t1", NOW - timedelta(days=1))], client, clock, sleep
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.followers_synced is False
    assert result.tweets_synced == 1
    assert result.error is None
    assert accounts.follower_syncs == []


@pytest.mark.asyncio
async def test_missing_username_skips_follower_sync(clock, sleep):
    client = FakeEngagementClient()
    service, accounts, _, _ = build_fake_service(
        [make_account(username=None)], [make_tweet("t1", NOW - timedelta(days=1))], client, clock, sleep
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.username == "unknown"
    assert result.followers_synced is False
    assert client.user_calls == []
    assert result.tweets_synced == 1


@pytest.mark.asyncio
async def test_account_failure_is_recorded_and_siblings_continue(clock, sleep):
    broken = make_account("acc-broken", username="broken", provider_account_id=None)
    healthy = make_account("acc-ok", username="healthy", provider_account_id="x-ok")
    service, accounts, _, _ = build_fake_service(
        [broken, healthy],
        [make_tweet("t1", NOW - timedelta(days=1), twitter_account_id="x-ok")],
        FakeEngagementClient(),
        clock,
        sleep,
    )

    stats = await service.sync_user_accounts("user-1")

    assert stats.total_accounts == 2
    assert stats.failed_accounts == 1
    assert stats.successful_accounts == 1
    assert stats.total_tweets_synced == 1
    assert stats.results[0].error == "Account has no provider account id"
    assert accounts.statuses["acc-broken"]["status"] == SyncOutcome.FAILED
    assert accounts.statuses["acc-broken"]["error"] == "Account has no provider account id"
    assert accounts.statuses["acc-ok"]["status"] == SyncOutcome.SUCCESS
    # One pause between the two accounts
    assert sleep.delays == [0.5]


@pytest.mark.asyncio
async def test_no_eligible_tweets_records_success_without_bookkeeping(clock, sleep):
    service, accounts, _, _ = build_fake_service(
        [make_account()], [make_tweet("t1", NOW - timedelta(days=40))], FakeEngagementClient(), clock, sleep
    )

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_processed == 0
    assert accounts.statuses["acc-1"]["status"] == SyncOutcome.SUCCESS
    assert accounts.statuses["acc-1"]["tweets_synced"] == 0
    assert accounts.tweet_syncs == []


@pytest.mark.asyncio
async def test_no_accounts_returns_empty_stats(clock, sleep):
    service, _, _, _ = build_fake_service([], [], FakeEngagementClient(), clock, sleep)

    stats = await service.sync_user_accounts("user-1")

    assert stats.total_accounts == 0
    assert stats.results == []


@pytest.mark.asyncio
async def test_disabled_accounts_are_not_synced(clock, sleep):
    client = FakeEngagementClient()
    service, _, _, _ = build_fake_service(
        [make_account(sync_enabled=False)], [], client, clock, sleep
    )

    stats = await service.sync_user_accounts("user-1")

    assert stats.total_accounts == 0
    assert client.user_calls == []


# ============== Batching ==============

@pytest.mark.asyncio
async def test_tweets_fetched_in_batches_with_pauses_between(clock, sleep):
    tweets = [make_tweet(f"t{i}", NOW - timedelta(hours=i + 1)) for i in range(25)]
    client = FakeEngagementClient()
    service, accounts, _, _ = build_fake_service([make_account()], tweets, client, clock, sleep)

    result = await service.sync_account(accounts.accounts[0], "user-1")

    assert result.tweets_processed == 25
    assert result.tweets_synced == 25
    assert len(client.tweet_calls) == 25
    # Batches of 10, 10 and 5: no pause after the last batch
    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_candidate_cap_keeps_newest_tweets(clock, sleep):
    tweets = [make_tweet(f"t{i}", NOW - timedelta(hours=i + 1)) for i in range(5)]
    client = FakeEngagementClient()
    service, accounts, _, _ = build_fake_service(
        [make_account()], tweets, client, clock, sleep, policy=SyncPolicy(max_tweets=3)
    )

    await service.sync_account(accounts.accounts[0], "user-1")

    assert sorted(client.tweet_calls) == ["tw-t0", "tw-t1", "tw-t2"]
