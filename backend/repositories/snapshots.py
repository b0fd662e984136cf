"""Engagement snapshot repository."""

from datetime import date
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.engagement_snapshot import EngagementSnapshot
from models.tweet import Tweet


class SnapshotRepository(Protocol):
    """Persistence surface for daily engagement snapshots."""

    async def create_if_missing(self, snapshot: EngagementSnapshot) -> bool:
        ...

    async def delete_before(self, user_id: str, cutoff: date) -> int:
        ...


class SqlSnapshotRepository:
    """SQLAlchemy implementation of `SnapshotRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_if_missing(self, snapshot: EngagementSnapshot) -> bool:
        """Insert the snapshot unless one exists for the same tweet and day.

        Returns True when a row was written.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(EngagementSnapshot.id).where(
                    EngagementSnapshot.tweet_id == snapshot.tweet_id,
                    EngagementSnapshot.snapshot_date == snapshot.snapshot_date,
                )
            )
            if result.first() is not None:
                return False

            session.add(snapshot)
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent sync wrote today's snapshot first
                await session.rollback()
                return False
            return True

    async def delete_before(self, user_id: str, cutoff: date) -> int:
        """Delete a user's snapshots dated strictly before `cutoff`."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(EngagementSnapshot)
                .where(
                    EngagementSnapshot.snapshot_date < cutoff,
                    EngagementSnapshot.tweet_id.in_(
                        select(Tweet.id).where(Tweet.user_id == user_id)
                    ),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0
