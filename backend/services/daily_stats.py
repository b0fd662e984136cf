"""Daily stats collector - one engagement rollup row per account per day.

Built from data the engagement sync already stored: the account's follower
count, its latest follower history row and the counters of tweets posted
in the last 24 hours. Makes no X API calls.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from models.account import Account
from models.daily_stats import DailyStats
from repositories.accounts import AccountRepository
from repositories.analytics import AnalyticsRepository
from repositories.tweets import TweetRepository
from services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

ROLLUP_WINDOW = timedelta(hours=24)


@dataclass
class DailyStatsRunResult:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class DailyStatsCollector:
    """Writes the daily_stats row of each account once per UTC day."""

    def __init__(
        self,
        accounts: AccountRepository,
        tweets: TweetRepository,
        analytics: AnalyticsRepository,
        clock: Clock = utc_now,
    ):
        self.accounts = accounts
        self.tweets = tweets
        self.analytics = analytics
        self.clock = clock

    async def collect_account(self, account: Account) -> DailyStats:
        """Return today's row for the account, creating it on first call."""
        now = self.clock()
        today = now.date()

        existing = await self.analytics.get_daily_stats(account.id, today)
        if existing:
            logger.info(f"Daily stats already collected for account {account.id} on {today}")
            return existing

        if not account.provider_account_id:
            raise ValueError("Account has no provider account id")

        tweets = await self.tweets.list_posted_between(account.provider_account_id, now - ROLLUP_WINDOW, now)

        likes = replies = retweets = impressions = 0
        top_tweet_id, top_engagement = None, 0
        for tweet in tweets:
            likes += tweet.like_count or 0
            replies += tweet.reply_count or 0
            retweets += tweet.retweet_count or 0
            impressions += tweet.impression_count or 0
            if tweet.engagement_score > top_engagement:
                top_tweet_id, top_engagement = tweet.twitter_tweet_id, tweet.engagement_score

        followers = account.follower_count or 0
        history = await self.accounts.latest_follower_history(account.id)
        engagement_rate = (likes + replies + retweets) / followers * 100 if followers > 0 else 0.0

        stats = DailyStats(
            account_id=account.id,
            date=today,
            followers=followers,
            following=history.following_count if history else 0,
            total_likes=likes,
            total_replies=replies,
            total_retweets=retweets,
            total_impressions=impressions,
            engagement_rate=engagement_rate,
            top_tweet_id=top_tweet_id,
            posts_count=len(tweets),
            created_at=now,
        )
        if not await self.analytics.add_daily_stats(stats):
            # Written by a concurrent run
            return await self.analytics.get_daily_stats(account.id, today)

        logger.info(
            f"Daily stats for @{account.username} on {today}: {len(tweets)} posts, "
            f"{likes + replies + retweets} engagements, rate {engagement_rate:.2f}%"
        )
        return stats

    async def collect_user(self, user_id: str) -> DailyStatsRunResult:
        """Collect today's rollup for every sync-enabled account of a user."""
        result = DailyStatsRunResult()

        for account in await self.accounts.list_sync_enabled(user_id):
            try:
                await self.collect_account(account)
                result.success += 1
            except Exception as e:
                logger.error(f"Daily stats collection failed for account {account.id}: {e}")
                result.failed += 1
                result.errors.append(f"{account.username}: {e}")

        return result
