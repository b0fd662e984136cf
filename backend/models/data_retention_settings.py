"""DataRetentionSettings model - per-user retention windows."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime

# Defaults applied when a user's row is lazily created
DEFAULT_SNAPSHOT_RETENTION_DAYS = 90
DEFAULT_SNAPSHOT_ACTIVE_TWEET_DAYS = 30
DEFAULT_FOLLOWER_HISTORY_RETENTION_DAYS = 365
DEFAULT_DAILY_STATS_RETENTION_DAYS = 180
DEFAULT_CONTENT_ANALYTICS_RETENTION_DAYS = 180


class DataRetentionSettings(Base):
    """Retention windows in days. A window of 0 disables cleanup for that table."""

    __tablename__ = "data_retention_settings"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    snapshot_retention_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_SNAPSHOT_RETENTION_DAYS, nullable=False
    )
    snapshot_active_tweet_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_SNAPSHOT_ACTIVE_TWEET_DAYS, nullable=False
    )
    follower_history_retention_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_FOLLOWER_HISTORY_RETENTION_DAYS, nullable=False
    )
    daily_stats_retention_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_DAILY_STATS_RETENTION_DAYS, nullable=False
    )
    content_analytics_retention_days: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_CONTENT_ANALYTICS_RETENTION_DAYS, nullable=False
    )
    auto_cleanup_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_cleanup_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<DataRetentionSettings {self.user_id}: snapshots {self.snapshot_retention_days}d>"
