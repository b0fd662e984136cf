import itertools
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from models.content_analytics import ContentAnalytics
from models.insight import Insight, InsightPriority, InsightType
from models.tweet import TweetStatus
from repositories import SqlAnalyticsRepository, SqlInsightRepository
from services.insight_generator import InsightGenerator, format_hour
from tests.conftest import NOW
from tests.fakes import FakeInsightRepository, add_rows, make_account, make_tweet

_ids = itertools.count()


def analyzed_tweet(
    score,
    hour=10,
    day=0,
    video=False,
    image=False,
    gif=False,
    hashtags=None,
    status=TweetStatus.POSTED.value,
    account="x-1",
    posted_days_ago=1,
):
    n = next(_ids)
    tweet = make_tweet(
        f"t{n}", NOW - timedelta(days=posted_days_ago), status=status, twitter_account_id=account
    )
    analytics = ContentAnalytics(
        tweet_id=tweet.id,
        has_video=video,
        has_image=image,
        has_gif=gif,
        hashtags=hashtags or [],
        hashtag_count=len(hashtags or []),
        post_hour=hour,
        post_day=day,
        post_timestamp=NOW - timedelta(days=posted_days_ago) + timedelta(seconds=n),
        engagement_score=score,
        created_at=NOW,
    )
    return [tweet, analytics]


def rows(*groups):
    return [row for group in groups for row in group]


@pytest_asyncio.fixture
async def generator(session_factory, clock):
    return InsightGenerator(
        SqlAnalyticsRepository(session_factory),
        SqlInsightRepository(session_factory),
        clock=clock,
    )


def test_format_hour():
    assert format_hour(0) == "12 AM"
    assert format_hour(9) == "9 AM"
    assert format_hour(12) == "12 PM"
    assert format_hour(15) == "3 PM"


# ============== Content type ==============

@pytest.mark.asyncio
async def test_content_type_ratio_two_is_low_priority(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(20, image=True) for _ in range(5)),
        *(analyzed_tweet(10) for _ in range(5)),
    ))

    insight = await generator.generate_content_type_insight("user-1")

    assert insight.insight_type == InsightType.CONTENT_TYPE.value
    assert insight.data["engagement_multiplier"] == 2.0
    assert insight.data["best_type"] == "image"
    assert insight.priority == InsightPriority.LOW
    assert insight.message == "Posts with image get 2.0x more engagement than text-only posts."
    assert insight.expires_at == NOW + timedelta(days=7)


@pytest.mark.asyncio
async def test_content_type_video_outranks_image_flag(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(70, video=True, image=True) for _ in range(5)),
        *(analyzed_tweet(10) for _ in range(5)),
    ))

    insight = await generator.generate_content_type_insight("user-1")

    assert insight.data["best_type"] == "video"
    assert insight.data["engagement_multiplier"] == 7.0
    assert insight.priority == InsightPriority.HIGH


@pytest.mark.asyncio
async def test_content_type_ratio_below_threshold_emits_nothing(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(14, image=True) for _ in range(5)),
        *(analyzed_tweet(10) for _ in range(5)),
    ))

    assert await generator.generate_content_type_insight("user-1") is None


@pytest.mark.asyncio
async def test_content_type_zero_baseline_is_high_priority(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(10, image=True) for _ in range(5)),
        *(analyzed_tweet(0) for _ in range(5)),
    ))

    insight = await generator.generate_content_type_insight("user-1")

    assert insight is not None
    assert insight.priority == InsightPriority.HIGH
    assert insight.data["best_type"] == "image"
    assert insight.data["baseline_type"] == "text"
    assert insight.data["engagement_multiplier"] is None
    assert insight.message == "Posts with image get engagement while text-only posts get none."


@pytest.mark.asyncio
async def test_content_type_all_zero_emits_nothing(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(0, image=True) for _ in range(5)),
        *(analyzed_tweet(0) for _ in range(5)),
    ))

    assert await generator.generate_content_type_insight("user-1") is None


@pytest.mark.asyncio
async def test_content_type_needs_two_types_with_enough_samples(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(100, image=True) for _ in range(4)),
        *(analyzed_tweet(10) for _ in range(5)),
    ))

    assert await generator.generate_content_type_insight("user-1") is None


# ============== Best time ==============

@pytest.mark.asyncio
async def test_best_time_picks_highest_average_with_enough_samples(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(30, hour=14, day=1) for _ in range(3)),
        *(analyzed_tweet(100, hour=9, day=0) for _ in range(2)),
        *(analyzed_tweet(5, hour=20, day=4) for _ in range(3)),
    ))

    insight = await generator.generate_best_time_insight("user-1")

    assert insight.data["day_name"] == "Tuesday"
    assert insight.data["hour"] == 14
    assert insight.data["sample_size"] == 3
    assert insight.priority == InsightPriority.MEDIUM
    assert "Tuesday at 2 PM" in insight.message


@pytest.mark.asyncio
async def test_best_time_ignores_tweets_that_are_not_posted(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(80, hour=8, day=2, status=TweetStatus.SCHEDULED.value) for _ in range(3)),
    ))

    assert await generator.generate_best_time_insight("user-1") is None


# ============== Hashtags ==============

@pytest.mark.asyncio
async def test_top_hashtag_requires_three_uses(generator, session_factory):
    await add_rows(session_factory, *rows(
        *(analyzed_tweet(60, hashtags=["python", "ai"]) for _ in range(2)),
        analyzed_tweet(60, hashtags=["python"]),
        analyzed_tweet(500, hashtags=["viral"]),
        *(analyzed_tweet(10, hashtags=["news"]) for _ in range(3)),
    ))

    insight = await generator.generate_top_hashtag_insight("user-1")

    assert insight.data == {"hashtag": "python", "use_count": 3, "avg_engagement": 60.0}
    assert insight.priority == InsightPriority.HIGH
    assert insight.message.startswith("#python drives the most engagement")


@pytest.mark.asyncio
async def test_no_hashtags_no_insight(generator, session_factory):
    await add_rows(session_factory, *rows(analyzed_tweet(40)))

    assert await generator.generate_top_hashtag_insight("user-1") is None


# ============== Inactive accounts ==============

@pytest.mark.asyncio
async def test_inactive_accounts_ranked_by_idle_days(generator, session_factory):
    await add_rows(
        session_factory,
        make_account("acc-a", username="alice", provider_account_id="x-a"),
        make_account("acc-b", username="bob", provider_account_id="x-b"),
        make_account("acc-c", username="carol", provider_account_id="x-c"),
        make_account("acc-d", username="dave", provider_account_id="x-d"),
        make_tweet("ta", NOW - timedelta(days=10), twitter_account_id="x-a"),
        make_tweet("tb", NOW - timedelta(days=1), twitter_account_id="x-b", status=TweetStatus.SCHEDULED.value),
        make_tweet("tc", NOW - timedelta(days=1), twitter_account_id="x-c"),
        make_tweet("td", NOW - timedelta(days=20), twitter_account_id="x-d"),
    )

    insights = await generator.generate_inactive_account_insights("user-1")

    by_user = {i.data["username"]: i for i in insights}
    assert set(by_user) == {"alice", "bob", "dave"}
    assert by_user["alice"].priority == InsightPriority.MEDIUM
    assert by_user["alice"].message == "Account @alice hasn't posted in 10 days."
    assert by_user["bob"].priority == InsightPriority.LOW
    assert by_user["bob"].message == "Account @bob has never posted."
    assert by_user["bob"].data["days_since_last_post"] is None
    assert by_user["dave"].priority == InsightPriority.HIGH
    assert by_user["dave"].expires_at == NOW + timedelta(days=3)


# ============== Storage ==============

async def count_insights(session_factory, insight_type):
    async with session_factory() as db:
        result = await db.execute(
            select(func.count(Insight.id)).where(Insight.insight_type == insight_type)
        )
        return result.scalar()


@pytest.mark.asyncio
async def test_regeneration_updates_active_insight_in_place(generator, session_factory, clock):
    await add_rows(session_factory, *rows(*(analyzed_tweet(30, hour=14, day=1) for _ in range(3))))

    first = await generator.generate_all_insights("user-1")
    clock.advance(hours=6)
    second = await generator.generate_all_insights("user-1")

    assert first.insights_generated >= 1
    assert second.errors == []
    assert await count_insights(session_factory, InsightType.BEST_TIME.value) == 1

    active = await generator.list_active_insights("user-1")
    best_time = next(i for i in active if i.insight_type == InsightType.BEST_TIME.value)
    assert best_time.generated_at == NOW + timedelta(hours=6)
    assert best_time.expires_at == NOW + timedelta(hours=6, days=7)


@pytest.mark.asyncio
async def test_store_insight_twice_keeps_one_row(generator, session_factory):
    await add_rows(session_factory, *rows(*(analyzed_tweet(30, hour=14, day=1) for _ in range(3))))

    insight = await generator.generate_best_time_insight("user-1")
    await generator.store_insight(insight)
    await generator.store_insight(await generator.generate_best_time_insight("user-1"))

    assert await count_insights(session_factory, InsightType.BEST_TIME.value) == 1


@pytest.mark.asyncio
async def test_dismissed_insight_is_replaced_by_a_new_row(generator, session_factory):
    await add_rows(session_factory, *rows(*(analyzed_tweet(30, hour=14, day=1) for _ in range(3))))
    await generator.generate_all_insights("user-1")
    [active] = [
        i for i in await generator.list_active_insights("user-1")
        if i.insight_type == InsightType.BEST_TIME.value
    ]

    assert await generator.dismiss_insight("user-1", active.id) is True
    assert await generator.dismiss_insight("user-1", "missing") is False
    await generator.generate_all_insights("user-1")

    assert await count_insights(session_factory, InsightType.BEST_TIME.value) == 2
    current = [
        i for i in await generator.list_active_insights("user-1")
        if i.insight_type == InsightType.BEST_TIME.value
    ]
    assert len(current) == 1
    assert current[0].id != active.id


@pytest.mark.asyncio
async def test_multiple_inactive_accounts_share_one_active_row(generator, session_factory):
    await add_rows(
        session_factory,
        make_account("acc-a", username="alice", provider_account_id="x-a"),
        make_account("acc-b", username="bob", provider_account_id="x-b"),
    )

    result = await generator.generate_all_insights("user-1")

    assert result.insights_generated == 2
    assert await count_insights(session_factory, InsightType.INACTIVE_ACCOUNT.value) == 1


# ============== Run orchestration ==============

class BrokenTimeSlots:
    async def engagement_by_time_slot(self, user_id, min_samples):
        raise RuntimeError("boom")

    async def engagement_by_content_type(self, user_id, min_samples):
        return []

    async def hashtag_samples(self, user_id):
        return []

    async def last_posted_by_account(self, user_id):
        return []


@pytest.mark.asyncio
async def test_generator_errors_are_collected_without_aborting(clock):
    insights = FakeInsightRepository()
    generator = InsightGenerator(BrokenTimeSlots(), insights, clock=clock)

    result = await generator.generate_all_insights("user-1")

    assert result.success is True
    assert result.insights_generated == 0
    assert result.errors == ["generate_best_time_insight: boom"]


@pytest.mark.asyncio
async def test_expired_insights_removed_before_generation(clock):
    insights = FakeInsightRepository()
    await insights.add(Insight(
        id="old",
        user_id="user-1",
        insight_type=InsightType.TOP_HASHTAG.value,
        title="Top Hashtag",
        message="...",
        priority=0,
        generated_at=NOW - timedelta(days=8),
        expires_at=NOW - timedelta(days=1),
        dismissed=False,
    ))
    generator = InsightGenerator(BrokenTimeSlots(), insights, clock=clock)

    await generator.generate_all_insights("user-1")

    assert insights.insights == []
