"""Data retention settings repository."""

from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.data_retention_settings import DataRetentionSettings


class RetentionRepository(Protocol):
    """Persistence surface for per-user retention settings."""

    async def get(self, user_id: str) -> Optional[DataRetentionSettings]:
        ...

    async def create_default(self, user_id: str, created_at: datetime) -> DataRetentionSettings:
        ...

    async def update(self, user_id: str, values: dict[str, Any], updated_at: datetime) -> None:
        ...

    async def list_auto_cleanup_user_ids(self) -> list[str]:
        ...

    async def mark_cleaned(self, user_id: str, cleaned_at: datetime) -> None:
        ...


class SqlRetentionRepository:
    """SQLAlchemy implementation of `RetentionRepository`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, user_id: str) -> Optional[DataRetentionSettings]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DataRetentionSettings).where(DataRetentionSettings.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def create_default(self, user_id: str, created_at: datetime) -> DataRetentionSettings:
        """Insert a settings row with default windows and return it."""
        async with self._session_factory() as session:
            settings = DataRetentionSettings(
                user_id=user_id,
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(settings)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                existing = await self.get(user_id)
                if existing is None:
                    raise
                return existing
            await session.refresh(settings)
            return settings

    async def update(self, user_id: str, values: dict[str, Any], updated_at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(DataRetentionSettings)
                .where(DataRetentionSettings.user_id == user_id)
                .values(**values, updated_at=updated_at)
            )
            await session.commit()

    async def list_auto_cleanup_user_ids(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DataRetentionSettings.user_id)
                .where(DataRetentionSettings.auto_cleanup_enabled.is_(True))
                .order_by(DataRetentionSettings.user_id)
            )
            return list(result.scalars())

    async def mark_cleaned(self, user_id: str, cleaned_at: datetime) -> None:
        async with self._session_factory() as session:
            await session.execute(
                update(DataRetentionSettings)
                .where(DataRetentionSettings.user_id == user_id)
                .values(last_cleanup_at=cleaned_at, updated_at=cleaned_at)
            )
            await session.commit()
