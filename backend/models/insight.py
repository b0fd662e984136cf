"""Insight model - generated, time-boxed recommendations."""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class InsightType(str, enum.Enum):
    """Kinds of generated insights."""
    BEST_TIME = "best_time"
    CONTENT_TYPE = "content_type"
    INACTIVE_ACCOUNT = "inactive_account"
    TOP_HASHTAG = "top_hashtag"


class InsightPriority(enum.IntEnum):
    """Display ranking of an insight."""
    LOW = 0
    MEDIUM = 1
    HIGH = 2


class Insight(Base):
    """Recommendation shown on the dashboard.

    Lifecycle: generated -> active -> dismissed | expired -> removed by cleanup.
    At most one active (not dismissed, not expired) row per (user_id, insight_type).
    """

    __tablename__ = "insights"
    __table_args__ = (
        Index("ix_insights_user_type", "user_id", "insight_type"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    insight_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=InsightPriority.LOW.value)
    data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    generated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    dismissed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def is_active(self, now: datetime) -> bool:
        """Check if the insight is neither dismissed nor expired."""
        return not self.dismissed and self.expires_at > now

    def __repr__(self) -> str:
        return f"<Insight {self.user_id}:{self.insight_type} p{self.priority}>"
