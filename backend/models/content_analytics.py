"""ContentAnalytics model - derived content features per tweet."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class ContentAnalytics(Base):
    """Content composition and engagement score of a single tweet.

    Upserted (keyed by tweet_id) whenever a tweet's analytics are recomputed.
    Feeds the insight generator's aggregate queries.
    """

    __tablename__ = "content_analytics"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    tweet_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tweets.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    # Composition
    has_image: Mapped[bool] = mapped_column(Boolean, default=False)
    has_video: Mapped[bool] = mapped_column(Boolean, default=False)
    has_gif: Mapped[bool] = mapped_column(Boolean, default=False)
    has_link: Mapped[bool] = mapped_column(Boolean, default=False)
    media_count: Mapped[int] = mapped_column(Integer, default=0)
    hashtag_count: Mapped[int] = mapped_column(Integer, default=0)
    hashtags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # ["tag1", "tag2"]
    mention_count: Mapped[int] = mapped_column(Integer, default=0)
    char_count: Mapped[int] = mapped_column(Integer, default=0)

    # Timing (UTC); post_day is the weekday, Monday=0
    post_hour: Mapped[int] = mapped_column(Integer, default=0)
    post_day: Mapped[int] = mapped_column(Integer, default=0)
    post_timestamp: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    engagement_score: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ContentAnalytics {self.tweet_id}: score {self.engagement_score}>"
