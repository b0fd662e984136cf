"""Account repository - accounts, follower history and sync status."""

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.account import Account
from models.account_sync_status import AccountSyncStatus, SyncOutcome
from models.follower_history import FollowerHistory

TWITTER_PROVIDER = "twitter"


class AccountRepository(Protocol):
    """Persistence surface used by the sync and cleanup services."""

    async def list_sync_enabled(self, user_id: str) -> list[Account]:
        ...

    async def list_user_ids(self) -> list[str]:
        ...

    async def record_follower_sync(
        self, account_id: str, follower_count: int, following_count: int, synced_at: datetime
    ) -> None:
        ...

    async def record_tweet_sync(self, account_id: str, tweets_synced: int, synced_at: datetime) -> None:
        ...

    async def upsert_sync_status(
        self,
        account_id: str,
        status: SyncOutcome,
        error: Optional[str],
        tweets_synced: int,
        tweets_failed: int,
        synced_at: datetime,
        next_sync_at: datetime,
    ) -> None:
        ...

    async def get_sync_overview(self, user_id: str) -> list[dict]:
        ...

    async def latest_follower_history(self, account_id: str) -> Optional[FollowerHistory]:
        ...

    async def delete_follower_history_before(self, user_id: str, cutoff: datetime) -> int:
        ...


class SqlAccountRepository:
    """SQLAlchemy implementation of `AccountRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_sync_enabled(self, user_id: str) -> list[Account]:
        """Twitter accounts of a user with sync enabled (NULL counts as enabled)."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Account)
                .where(
                    Account.user_id == user_id,
                    Account.provider == TWITTER_PROVIDER,
                    or_(Account.sync_enabled.is_(True), Account.sync_enabled.is_(None)),
                )
                .order_by(Account.created_at)
            )
            return list(result.scalars())

    async def list_user_ids(self) -> list[str]:
        """Distinct users owning at least one twitter account."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Account.user_id)
                .where(Account.provider == TWITTER_PROVIDER)
                .distinct()
                .order_by(Account.user_id)
            )
            return list(result.scalars())

    async def record_follower_sync(
        self, account_id: str, follower_count: int, following_count: int, synced_at: datetime
    ) -> None:
        """Update the account's follower count and append a history row."""
        async with self._session_factory() as session:
            await session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    follower_count=follower_count,
                    last_follower_sync_at=synced_at,
                    updated_at=synced_at,
                )
            )
            session.add(FollowerHistory(
                account_id=account_id,
                follower_count=follower_count,
                following_count=following_count,
                recorded_at=synced_at,
            ))
            await session.commit()

    async def record_tweet_sync(self, account_id: str, tweets_synced: int, synced_at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(
                    last_tweet_sync_at=synced_at,
                    total_tweets_synced=tweets_synced,
                    updated_at=synced_at,
                )
            )
            await session.commit()

    async def upsert_sync_status(
        self,
        account_id: str,
        status: SyncOutcome,
        error: Optional[str],
        tweets_synced: int,
        tweets_failed: int,
        synced_at: datetime,
        next_sync_at: datetime,
    ) -> None:
        """Insert or update the single sync status row of an account."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(AccountSyncStatus).where(AccountSyncStatus.account_id == account_id)
            )
            existing = result.scalar_one_or_none()

            if existing:
                existing.last_sync_at = synced_at
                existing.last_sync_status = status.value
                existing.last_error = error
                existing.tweets_synced = tweets_synced
                existing.tweets_failed = tweets_failed
                existing.next_sync_at = next_sync_at
                existing.updated_at = synced_at
            else:
                session.add(AccountSyncStatus(
                    account_id=account_id,
                    last_sync_at=synced_at,
                    last_sync_status=status.value,
                    last_error=error,
                    tweets_synced=tweets_synced,
                    tweets_failed=tweets_failed,
                    next_sync_at=next_sync_at,
                    created_at=synced_at,
                    updated_at=synced_at,
                ))
            await session.commit()

    async def get_sync_overview(self, user_id: str) -> list[dict]:
        """All twitter accounts of a user joined with their last sync status."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Account, AccountSyncStatus)
                .outerjoin(AccountSyncStatus, AccountSyncStatus.account_id == Account.id)
                .where(Account.user_id == user_id, Account.provider == TWITTER_PROVIDER)
                .order_by(Account.username)
            )
            overview = []
            for account, sync_status in result.all():
                overview.append({
                    "account_id": account.id,
                    "username": account.username,
                    "display_name": account.display_name,
                    "profile_image": account.profile_image,
                    "follower_count": account.follower_count,
                    "last_tweet_sync_at": account.last_tweet_sync_at,
                    "last_follower_sync_at": account.last_follower_sync_at,
                    "total_tweets_synced": account.total_tweets_synced,
                    "sync_enabled": account.sync_enabled is not False,
                    "last_sync_at": sync_status.last_sync_at if sync_status else None,
                    "last_sync_status": sync_status.last_sync_status if sync_status else None,
                    "last_error": sync_status.last_error if sync_status else None,
                    "tweets_synced": sync_status.tweets_synced if sync_status else 0,
                    "tweets_failed": sync_status.tweets_failed if sync_status else 0,
                    "next_sync_at": sync_status.next_sync_at if sync_status else None,
                })
            return overview

    async def latest_follower_history(self, account_id: str) -> Optional[FollowerHistory]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FollowerHistory)
                .where(FollowerHistory.account_id == account_id)
                .order_by(FollowerHistory.recorded_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def delete_follower_history_before(self, user_id: str, cutoff: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(FollowerHistory)
                .where(
                    FollowerHistory.recorded_at < cutoff,
                    FollowerHistory.account_id.in_(
                        select(Account.id).where(Account.user_id == user_id)
                    ),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0
