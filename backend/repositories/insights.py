"""Insight repository."""

from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.insight import Insight


class InsightRepository(Protocol):
    """Persistence surface for generated insights."""

    async def find_active(self, user_id: str, insight_type: str, now: datetime) -> Optional[Insight]:
        ...

    async def add(self, insight: Insight) -> None:
        ...

    async def update(self, insight_id: str, values: dict[str, Any]) -> None:
        ...

    async def delete_expired(self, user_id: str, now: datetime) -> int:
        ...

    async def delete_expired_or_dismissed(self, user_id: str, now: datetime) -> int:
        ...

    async def list_active(self, user_id: str, now: datetime) -> list[Insight]:
        ...

    async def dismiss(self, user_id: str, insight_id: str) -> bool:
        ...


class SqlInsightRepository:
    """SQLAlchemy implementation of `InsightRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_active(self, user_id: str, insight_type: str, now: datetime) -> Optional[Insight]:
        """The not-dismissed, not-expired insight of a type, if any."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Insight)
                .where(
                    Insight.user_id == user_id,
                    Insight.insight_type == insight_type,
                    Insight.dismissed.is_(False),
                    Insight.expires_at > now,
                )
                .order_by(Insight.generated_at.desc())
                .limit(1)
            )
            return result.scalars().first()

    async def add(self, insight: Insight) -> None:
        async with self._session_factory() as session:
            session.add(insight)
            await session.commit()

    async def update(self, insight_id: str, values: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(Insight).where(Insight.id == insight_id).values(**values)
            )
            await session.commit()

    async def delete_expired(self, user_id: str, now: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(Insight)
                .where(Insight.user_id == user_id, Insight.expires_at < now)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0

    async def delete_expired_or_dismissed(self, user_id: str, now: datetime) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(Insight)
                .where(
                    Insight.user_id == user_id,
                    or_(Insight.expires_at < now, Insight.dismissed.is_(True)),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount or 0

    async def list_active(self, user_id: str, now: datetime) -> list[Insight]:
        """Active insights of a user, highest priority first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Insight)
                .where(
                    Insight.user_id == user_id,
                    Insight.dismissed.is_(False),
                    Insight.expires_at > now,
                )
                .order_by(Insight.priority.desc(), Insight.generated_at.desc())
            )
            return list(result.scalars())

    async def dismiss(self, user_id: str, insight_id: str) -> bool:
        """Mark an insight dismissed. Returns False when it does not exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                update(Insight)
                .where(Insight.id == insight_id, Insight.user_id == user_id)
                .values(dismissed=True)
            )
            await session.commit()
            return (result.rowcount or 0) > 0
