"""Account sync orchestrator - refreshes engagement and follower data per account.

Central service that walks a user's twitter accounts, refreshes follower
counts, re-fetches engagement for recently posted tweets under a tiered
policy, records daily engagement snapshots and writes per-account sync status.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from models.account import Account
from models.account_sync_status import SyncOutcome
from models.engagement_snapshot import EngagementSnapshot
from models.tweet import Tweet
from repositories.accounts import AccountRepository
from repositories.snapshots import SnapshotRepository
from repositories.tweets import SyncWindow, TweetRepository
from services.clock import Clock, utc_now
from services.engagement_client import EngagementClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class TweetSyncOutcome(str, enum.Enum):
    SYNCED = "synced"
    DELETED = "deleted"
    SKIPPED = "skipped"  # No external tweet id
    FAILED = "failed"


@dataclass(frozen=True)
class SyncPolicy:
    """Thresholds and pacing for engagement sync."""
    fresh_days: int = 7            # Tier 1: always re-fetched
    active_days: int = 30          # Tier 2 upper bound, older tweets are never fetched
    stale_after: timedelta = timedelta(hours=24)
    max_tweets: int = 200
    batch_size: int = 10
    account_delay_seconds: float = 0.5
    batch_delay_seconds: float = 1.0
    next_sync_after: timedelta = timedelta(hours=24)
    snapshot_max_age_days: int = 30

    @classmethod
    def from_settings(cls, settings) -> "SyncPolicy":
        return cls(
            max_tweets=settings.sync_max_tweets,
            batch_size=settings.sync_batch_size,
            account_delay_seconds=settings.sync_account_delay_seconds,
            batch_delay_seconds=settings.sync_batch_delay_seconds,
        )

    def window(self, now: datetime) -> SyncWindow:
        return SyncWindow(
            fresh_since=now - timedelta(days=self.fresh_days),
            active_since=now - timedelta(days=self.active_days),
            stale_before=now - self.stale_after,
        )


@dataclass
class AccountSyncResult:
    """Outcome of syncing one account."""
    account_id: str
    username: str
    tweets_processed: int = 0
    tweets_synced: int = 0
    tweets_failed: int = 0
    tweets_deleted: int = 0
    tweets_skipped: int = 0
    followers_synced: bool = False
    error: Optional[str] = None

    def count(self, outcome: TweetSyncOutcome) -> None:
        if outcome == TweetSyncOutcome.SYNCED:
            self.tweets_synced += 1
        elif outcome == TweetSyncOutcome.DELETED:
            self.tweets_deleted += 1
        elif outcome == TweetSyncOutcome.SKIPPED:
            self.tweets_skipped += 1
        else:
            self.tweets_failed += 1


@dataclass
class SyncStats:
    """Aggregate outcome of syncing all accounts of a user."""
    total_accounts: int = 0
    successful_accounts: int = 0
    failed_accounts: int = 0
    total_tweets_synced: int = 0
    total_tweets_failed: int = 0
    results: list[AccountSyncResult] = field(default_factory=list)


def _is_gone(exc: Exception) -> bool:
    message = str(exc).lower()
    return "not found" in message or "deleted" in message


class AccountSyncService:
    """Syncs engagement and follower data for a user's twitter accounts."""

    def __init__(
        self,
        accounts: AccountRepository,
        tweets: TweetRepository,
        snapshots: SnapshotRepository,
        client: EngagementClient,
        policy: Optional[SyncPolicy] = None,
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
        content_analytics=None,
    ):
        self.accounts = accounts
        self.tweets = tweets
        self.snapshots = snapshots
        self.client = client
        self.policy = policy or SyncPolicy()
        self.clock = clock
        self.sleep = sleep
        self.content_analytics = content_analytics

    async def sync_user_accounts(self, user_id: str) -> SyncStats:
        """Sync every sync-enabled account of a user, one account at a time."""
        stats = SyncStats()
        accounts = await self.accounts.list_sync_enabled(user_id)

        if not accounts:
            logger.info(f"No twitter accounts to sync for user {user_id}")
            return stats

        stats.total_accounts = len(accounts)
        logger.info(f"Starting account sync for user {user_id}: {len(accounts)} accounts")

        for index, account in enumerate(accounts):
            result = await self.sync_account(account, user_id)
            stats.results.append(result)

            if result.error:
                stats.failed_accounts += 1
            else:
                stats.successful_accounts += 1
            stats.total_tweets_synced += result.tweets_synced
            stats.total_tweets_failed += result.tweets_failed

            if index < len(accounts) - 1:
                await self.sleep(self.policy.account_delay_seconds)

        logger.info(
            f"Account sync complete for user {user_id}: "
            f"{stats.successful_accounts}/{stats.total_accounts} accounts, "
            f"{stats.total_tweets_synced} tweets synced, {stats.total_tweets_failed} failed"
        )
        return stats

    async def sync_account(self, account: Account, user_id: str) -> AccountSyncResult:
        """Sync followers and eligible tweets of one account.

        Never raises; account-level failures are recorded on the result and
        in the account's sync status.
        """
        result = AccountSyncResult(account_id=account.id, username=account.username or "unknown")
        started = time.monotonic()

        try:
            logger.info(f"Syncing account {account.id} (@{result.username})")
            now = self.clock()

            # 1. Followers (best-effort)
            try:
                await self._sync_followers(account)
                result.followers_synced = True
            except Exception as e:
                logger.error(f"Failed to sync follower count for account {account.id}: {e}")

            # 2. Tweet selection
            if not account.provider_account_id:
                raise ValueError("Account has no provider account id")

            candidates = await self.tweets.list_sync_candidates(
                account.provider_account_id, self.policy.window(now), self.policy.max_tweets
            )
            total_posted = await self.tweets.count_posted(account.provider_account_id)
            result.tweets_processed = len(candidates)
            logger.info(
                f"Account {account.id}: syncing {len(candidates)} recent tweets "
                f"(of {total_posted} posted)"
            )

            if not candidates:
                logger.info(f"Account {account.id}: no tweets to sync")
                await self._record_status(account.id, SyncOutcome.SUCCESS, None, 0, 0)
                return result

            # 3. Batched fetch
            batch_size = self.policy.batch_size
            for start in range(0, len(candidates), batch_size):
                batch = candidates[start:start + batch_size]
                outcomes = await asyncio.gather(
                    *(self._sync_tweet_safely(tweet, account) for tweet in batch)
                )
                for outcome in outcomes:
                    result.count(outcome)

                if start + batch_size < len(candidates):
                    await self.sleep(self.policy.batch_delay_seconds)

            # 4. Account bookkeeping and status
            await self.accounts.record_tweet_sync(account.id, result.tweets_synced, self.clock())

            outcome = SyncOutcome.SUCCESS if result.tweets_failed == 0 else SyncOutcome.PARTIAL
            await self._record_status(
                account.id, outcome, None, result.tweets_synced, result.tweets_failed
            )

            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Account {account.id} sync {outcome.value} in {duration_ms}ms: "
                f"{result.tweets_synced} synced, {result.tweets_failed} failed, "
                f"{result.tweets_deleted} deleted, {result.tweets_skipped} skipped"
            )
            return result

        except Exception as e:
            result.error = str(e) or e.__class__.__name__
            logger.error(f"Account sync failed for {account.id}: {result.error}")
            try:
                await self._record_status(
                    account.id, SyncOutcome.FAILED, result.error,
                    result.tweets_synced, result.tweets_failed,
                )
            except Exception as status_error:
                logger.error(f"Could not record failed sync status for {account.id}: {status_error}")
            return result

    async def get_user_accounts_sync_status(self, user_id: str) -> list[dict]:
        """Accounts of a user with their last sync status, ordered by username."""
        return await self.accounts.get_sync_overview(user_id)

    # ============== Internals ==============

    async def _sync_followers(self, account: Account) -> None:
        if not account.username:
            raise ValueError("Account has no username")

        analytics = await self.client.get_user_analytics(account.username)
        await self.accounts.record_follower_sync(
            account.id, analytics.followers, analytics.following, self.clock()
        )
        logger.debug(f"Follower count synced for @{account.username}: {analytics.followers}")

    async def _sync_tweet_safely(self, tweet: Tweet, account: Account) -> TweetSyncOutcome:
        try:
            return await self._sync_tweet(tweet, account)
        except Exception as e:
            logger.error(f"Failed to sync tweet {tweet.id}: {e}")
            return TweetSyncOutcome.FAILED

    async def _sync_tweet(self, tweet: Tweet, account: Account) -> TweetSyncOutcome:
        if not tweet.twitter_tweet_id:
            logger.warning(f"Tweet {tweet.id} has no X id, skipping")
            return TweetSyncOutcome.SKIPPED

        try:
            details = await self.client.get_tweet_details(tweet.twitter_tweet_id)
        except Exception as e:
            if not _is_gone(e):
                raise
            await self.tweets.mark_deleted(tweet.id, self.clock())
            logger.info(f"Tweet {tweet.id} ({tweet.twitter_tweet_id}) marked as deleted")
            return TweetSyncOutcome.DELETED

        now = self.clock()
        await self.tweets.update_engagement(
            tweet.id,
            like_count=details.like_count,
            retweet_count=details.retweet_count,
            reply_count=details.reply_count,
            impression_count=details.view_count,
            media=details.media or [],
            updated_at=now,
        )

        age_days = (now - tweet.created_at).days
        if age_days <= self.policy.snapshot_max_age_days:
            await self.snapshots.create_if_missing(EngagementSnapshot(
                tweet_id=tweet.id,
                account_id=account.id,
                snapshot_date=now.date(),
                tweet_age_days=age_days,
                like_count=details.like_count,
                retweet_count=details.retweet_count,
                reply_count=details.reply_count,
                impression_count=details.view_count,
                created_at=now,
            ))

        if self.content_analytics is not None:
            await self.content_analytics.analyze_tweet(tweet.id)

        logger.debug(
            f"Tweet {tweet.id} engagement synced: {details.like_count} likes, "
            f"{details.retweet_count} retweets, {details.reply_count} replies, "
            f"{details.view_count} views"
        )
        return TweetSyncOutcome.SYNCED

    async def _record_status(
        self,
        account_id: str,
        status: SyncOutcome,
        error: Optional[str],
        tweets_synced: int,
        tweets_failed: int,
    ) -> None:
        now = self.clock()
        await self.accounts.upsert_sync_status(
            account_id,
            status=status,
            error=error,
            tweets_synced=tweets_synced,
            tweets_failed=tweets_failed,
            synced_at=now,
            next_sync_at=now + self.policy.next_sync_after,
        )
