"""Account model - connected social accounts plus sync bookkeeping."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class Account(Base):
    """A social account connected by a user.

    Rows are created when the user connects the account (outside this
    service). Only the sync bookkeeping columns are written here.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(50), default="twitter", nullable=False)
    provider_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_image: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Sync bookkeeping
    follower_count: Mapped[int] = mapped_column(Integer, default=0)
    last_tweet_sync_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_follower_sync_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    total_tweets_synced: Mapped[int] = mapped_column(Integer, default=0)
    # NULL on accounts connected before sync settings existed; treated as enabled
    sync_enabled: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, default=True)

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
        return f"<Account {self.provider}:@{self.username} ({self.follower_count} followers)>"
