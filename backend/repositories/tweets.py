"""Tweet repository - sync candidate selection and engagement writes."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.tweet import Tweet, TweetStatus


@dataclass(frozen=True)
class SyncWindow:
    """Age tiers deciding which posted tweets get refreshed.

    - created after `fresh_since`: always eligible
    - created between `active_since` and `fresh_since`: eligible when never
      updated or last updated before `stale_before`
    - created before `active_since`: never eligible

    Tweets never linked to an X id are not candidates in any tier.
    """
    fresh_since: datetime
    active_since: datetime
    stale_before: datetime


class TweetRepository(Protocol):
    """Persistence surface for tweets."""

    async def list_sync_candidates(
        self, provider_account_id: str, window: SyncWindow, limit: int
    ) -> list[Tweet]:
        ...

    async def count_posted(self, provider_account_id: str) -> int:
        ...

    async def list_posted_between(self, provider_account_id: str, start: datetime, end: datetime) -> list[Tweet]:
        ...

    async def update_engagement(
        self,
        tweet_id: str,
        like_count: int,
        retweet_count: int,
        reply_count: int,
        impression_count: int,
        media: list[dict],
        updated_at: datetime,
    ) -> None:
        ...

    async def mark_deleted(self, tweet_id: str, updated_at: datetime) -> None:
        ...

    async def get(self, tweet_id: str) -> Optional[Tweet]:
        ...

    async def list_posted_ids(self, user_id: str) -> list[str]:
        ...

    async def count_by_status(self, user_id: str) -> dict[str, int]:
        ...


class SqlTweetRepository:
    """SQLAlchemy implementation of `TweetRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_sync_candidates(
        self, provider_account_id: str, window: SyncWindow, limit: int
    ) -> list[Tweet]:
        """Posted tweets of an account eligible under the tier window, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Tweet)
                .where(
                    Tweet.twitter_account_id == provider_account_id,
                    func.lower(Tweet.status) == TweetStatus.POSTED.value,
                    # Only rows linked to an X id, before the cap is applied
                    Tweet.twitter_tweet_id.is_not(None),
                    or_(
                        Tweet.created_at > window.fresh_since,
                        and_(
                            Tweet.created_at > window.active_since,
                            Tweet.created_at <= window.fresh_since,
                            or_(Tweet.updated_at.is_(None), Tweet.updated_at < window.stale_before),
                        ),
                    ),
                )
                .order_by(Tweet.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars())

    async def count_posted(self, provider_account_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(Tweet.id)).where(
                    Tweet.twitter_account_id == provider_account_id,
                    func.lower(Tweet.status) == TweetStatus.POSTED.value,
                )
            )
            return result.scalar() or 0

    async def list_posted_between(self, provider_account_id: str, start: datetime, end: datetime) -> list[Tweet]:
        """Posted tweets of an account created in (start, end], oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Tweet)
                .where(
                    Tweet.twitter_account_id == provider_account_id,
                    func.lower(Tweet.status) == TweetStatus.POSTED.value,
                    Tweet.created_at > start,
                    Tweet.created_at <= end,
                )
                .order_by(Tweet.created_at, Tweet.id)
            )
            return list(result.scalars())

    async def update_engagement(
        self,
        tweet_id: str,
        like_count: int,
        retweet_count: int,
        reply_count: int,
        impression_count: int,
        media: list[dict],
        updated_at: datetime,
    ) -> None:
        """Overwrite engagement counters and media of a tweet."""
        async with self._session_factory() as session:
            await session.execute(
                update(Tweet)
                .where(Tweet.id == tweet_id)
                .values(
                    like_count=like_count,
                    retweet_count=retweet_count,
                    reply_count=reply_count,
                    impression_count=impression_count,
                    media=media,
                    updated_at=updated_at,
                )
            )
            await session.commit()

    async def mark_deleted(self, tweet_id: str, updated_at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(Tweet)
                .where(Tweet.id == tweet_id)
                .values(status=TweetStatus.DELETED.value, updated_at=updated_at)
            )
            await session.commit()

    async def get(self, tweet_id: str) -> Optional[Tweet]:
        async with self._session_factory() as session:
            return await session.get(Tweet, tweet_id)

    async def list_posted_ids(self, user_id: str) -> list[str]:
        """Ids of a user's posted tweets, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Tweet.id)
                .where(Tweet.user_id == user_id, func.lower(Tweet.status) == TweetStatus.POSTED.value)
                .order_by(Tweet.created_at)
            )
            return list(result.scalars())

    async def count_by_status(self, user_id: str) -> dict[str, int]:
        """Tweet counts per (lower-cased) status for a user."""
        async with self._session_factory() as session:
            status = func.lower(Tweet.status)
            result = await session.execute(
                select(status, func.count(Tweet.id))
                .where(Tweet.user_id == user_id)
                .group_by(status)
            )
            return {row[0]: row[1] for row in result}
