"""EngagementSnapshot model - daily copy of a tweet's counters for trend lines."""

from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class EngagementSnapshot(Base):
    """Point-in-time snapshot of a tweet's engagement counters.

    Append-only table. At most one row per tweet per calendar day (UTC);
    rows are never updated and only removed by retention cleanup.
    """

    __tablename__ = "engagement_snapshots"
    __table_args__ = (
        UniqueConstraint("tweet_id", "snapshot_date", name="uix_engagement_snapshots_tweet_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    tweet_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tweets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    account_id: Mapped[str] = mapped_column(String(36), nullable=False)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    tweet_age_days: Mapped[int] = mapped_column(Integer, default=0)

    like_count: Mapped[int] = mapped_column(Integer, default=0)
    retweet_count: Mapped[int] = mapped_column(Integer, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, default=0)
    impression_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<EngagementSnapshot {self.tweet_id}@{self.snapshot_date}: {self.like_count} likes>"
