"""Tweet model - posted content with engagement counters."""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Integer, String, Text
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class TweetStatus(str, enum.Enum):
    """Lifecycle status of a tweet row."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    FAILED = "failed"
    DELETED = "deleted"  # Reported gone by the X API during sync


class Tweet(Base):
    """Tweet with engagement metrics.

    Counters are overwritten on every engagement sync pass. `updated_at`
    stays NULL until the first sync touches the row.
    """

    __tablename__ = "tweets"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Provider id of the owning account (accounts.provider_account_id)
    twitter_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    twitter_tweet_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String(20), default=TweetStatus.DRAFT.value, nullable=False)

    # Engagement metrics
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    retweet_count: Mapped[int] = mapped_column(Integer, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, default=0)
    impression_count: Mapped[int] = mapped_column(Integer, default=0)
    media: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # [{type, url, ...}]

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    @property
    def engagement_score(self) -> int:
        """Likes + retweets + replies."""
        return (self.like_count or 0) + (self.retweet_count or 0) + (self.reply_count or 0)

    def __repr__(self) -> str:
        return f"<Tweet {self.id}: {self.status} - {self.like_count} likes>"
