"""Analytics repository - content analytics rows, daily stats and aggregate reads."""

import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Protocol

from sqlalchemy import and_, case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.account import Account
from models.content_analytics import ContentAnalytics
from models.daily_stats import DailyStats
from models.tweet import Tweet, TweetStatus


@dataclass(frozen=True)
class TimeSlotEngagement:
    post_hour: int
    post_day: int
    avg_engagement: float
    sample_size: int


@dataclass(frozen=True)
class ContentTypeEngagement:
    content_type: str  # video, image, gif or text
    avg_engagement: float
    sample_size: int


@dataclass(frozen=True)
class AccountActivity:
    account_id: str
    username: Optional[str]
    last_posted_at: Optional[datetime]


@dataclass(frozen=True)
class HashtagSample:
    hashtags: list[str]
    engagement_score: int


def _posted_tweets_of(user_id: str):
    return and_(Tweet.user_id == user_id, func.lower(Tweet.status) == TweetStatus.POSTED.value)


def _as_hashtag_list(value: Any) -> list[str]:
    """JSON columns can come back as text on some drivers."""
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    return [str(tag) for tag in value] if isinstance(value, list) else []


class AnalyticsRepository(Protocol):
    """Aggregate reads for the insight generator plus analytics writes/deletes."""

    async def upsert_content_analytics(
        self, tweet_id: str, values: dict[str, Any], computed_at: datetime
    ) -> ContentAnalytics:
        ...

    async def engagement_by_time_slot(self, user_id: str, min_samples: int) -> list[TimeSlotEngagement]:
        ...

    async def engagement_by_content_type(
        self, user_id: str, min_samples: int
    ) -> list[ContentTypeEngagement]:
        ...

    async def hashtag_samples(self, user_id: str) -> list[HashtagSample]:
        ...

    async def last_posted_by_account(self, user_id: str) -> list[AccountActivity]:
        ...

    async def get_daily_stats(self, account_id: str, day: date) -> Optional[DailyStats]:
        ...

    async def add_daily_stats(self, stats: DailyStats) -> bool:
        ...

    async def delete_daily_stats_before(self, user_id: str, cutoff: date) -> int:
        ...

    async def delete_content_analytics_before(self, user_id: str, cutoff: datetime) -> int:
        ...


class SqlAnalyticsRepository:
    """SQLAlchemy implementation of `AnalyticsRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_content_analytics(
        self, tweet_id: str, values: dict[str, Any], computed_at: datetime
    ) -> ContentAnalytics:
        """Insert or overwrite the analytics row of a tweet.

        `created_at` keeps the first computation time so retention counts
        from when the row was first derived.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(ContentAnalytics).where(ContentAnalytics.tweet_id == tweet_id)
            )
            row = result.scalar_one_or_none()

            if row:
                for key, value in values.items():
                    setattr(row, key, value)
            else:
                row = ContentAnalytics(tweet_id=tweet_id, created_at=computed_at, **values)
                session.add(row)

            await session.commit()
            return row

    async def engagement_by_time_slot(self, user_id: str, min_samples: int) -> list[TimeSlotEngagement]:
        """Average engagement per (hour, weekday), best slot first."""
        avg_engagement = func.avg(ContentAnalytics.engagement_score).label("avg_engagement")
        sample_size = func.count(ContentAnalytics.id).label("sample_size")

        async with self._session_factory() as session:
            result = await session.execute(
                select(ContentAnalytics.post_hour, ContentAnalytics.post_day, avg_engagement, sample_size)
                .join(Tweet, Tweet.id == ContentAnalytics.tweet_id)
                .where(_posted_tweets_of(user_id))
                .group_by(ContentAnalytics.post_hour, ContentAnalytics.post_day)
                .having(func.count(ContentAnalytics.id) >= min_samples)
                .order_by(avg_engagement.desc(), sample_size.desc())
            )
            return [
                TimeSlotEngagement(
                    post_hour=row.post_hour,
                    post_day=row.post_day,
                    avg_engagement=float(row.avg_engagement or 0),
                    sample_size=row.sample_size,
                )
                for row in result
            ]

    async def engagement_by_content_type(
        self, user_id: str, min_samples: int
    ) -> list[ContentTypeEngagement]:
        """Average engagement per derived content type, best type first."""
        content_type = case(
            (ContentAnalytics.has_video.is_(True), "video"),
            (ContentAnalytics.has_image.is_(True), "image"),
            (ContentAnalytics.has_gif.is_(True), "gif"),
            else_="text",
        ).label("content_type")

        # Group on the subquery column; PostgreSQL rejects GROUP BY on a CASE
        # whose literals are separate bind parameters
        typed = (
            select(content_type, ContentAnalytics.engagement_score)
            .join(Tweet, Tweet.id == ContentAnalytics.tweet_id)
            .where(_posted_tweets_of(user_id))
            .subquery()
        )
        avg_engagement = func.avg(typed.c.engagement_score).label("avg_engagement")
        sample_size = func.count().label("sample_size")

        async with self._session_factory() as session:
            result = await session.execute(
                select(typed.c.content_type, avg_engagement, sample_size)
                .group_by(typed.c.content_type)
                .having(func.count() >= min_samples)
                .order_by(avg_engagement.desc())
            )
            return [
                ContentTypeEngagement(
                    content_type=row.content_type,
                    avg_engagement=float(row.avg_engagement or 0),
                    sample_size=row.sample_size,
                )
                for row in result
            ]

    async def hashtag_samples(self, user_id: str) -> list[HashtagSample]:
        """Hashtag lists with the engagement score of their tweet."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ContentAnalytics.hashtags, ContentAnalytics.engagement_score)
                .join(Tweet, Tweet.id == ContentAnalytics.tweet_id)
                .where(_posted_tweets_of(user_id), ContentAnalytics.hashtag_count > 0)
                .order_by(ContentAnalytics.post_timestamp, ContentAnalytics.id)
            )
            return [
                HashtagSample(
                    hashtags=_as_hashtag_list(row.hashtags),
                    engagement_score=row.engagement_score or 0,
                )
                for row in result
            ]

    async def last_posted_by_account(self, user_id: str) -> list[AccountActivity]:
        """Every account of the user with its most recent posted tweet time (or None)."""
        last_posted_at = func.max(Tweet.created_at).label("last_posted_at")

        async with self._session_factory() as session:
            result = await session.execute(
                select(Account.id, Account.username, last_posted_at)
                .outerjoin(
                    Tweet,
                    and_(
                        Tweet.twitter_account_id == Account.provider_account_id,
                        func.lower(Tweet.status) == TweetStatus.POSTED.value,
                    ),
                )
                .where(Account.user_id == user_id)
                .group_by(Account.id, Account.username)
                .order_by(Account.username)
            )
            return [
                AccountActivity(
                    account_id=row.id,
                    username=row.username,
                    last_posted_at=row.last_posted_at,
                )
                for row in result
            ]

    async def get_daily_stats(self, account_id: str, day: date) -> Optional[DailyStats]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DailyStats).where(DailyStats.account_id == account_id, DailyStats.date == day)
            )
            return result.scalar_one_or_none()

    async def add_daily_stats(self, stats: DailyStats) -> bool:
        """Insert a daily rollup. False when the (account, date) row already exists."""
        async with self._session_factory() as session:
            session.add(stats)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
            return True

    async def delete_daily_stats_before(self, user_id: str, cutoff: date) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(DailyStats)
                .where(
                    DailyStats.date < cutoff,
                    DailyStats.account_id.in_(select(Account.id).where(Account.user_id == user_id)),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0

    async def delete_content_analytics_before(self, user_id: str, cutoff: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(ContentAnalytics)
                .where(
                    ContentAnalytics.created_at < cutoff,
                    ContentAnalytics.tweet_id.in_(select(Tweet.id).where(Tweet.user_id == user_id)),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0
