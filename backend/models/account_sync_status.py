"""AccountSyncStatus model - outcome of the last sync attempt per account."""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from database import Base, UTCDateTime


class SyncOutcome(str, enum.Enum):
    """Result of an account sync attempt."""
    SUCCESS = "success"
    PARTIAL = "partial"  # Some tweets failed to refresh
    FAILED = "failed"    # Account-level error


class AccountSyncStatus(Base):
    """Exactly one row per account, upserted after every sync attempt."""

    __tablename__ = "account_sync_status"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    last_sync_status: Mapped[str] = mapped_column(String(20), nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tweets_synced: Mapped[int] = mapped_column(Integer, default=0)
    tweets_failed: Mapped[int] = mapped_column(Integer, default=0)
    next_sync_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

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
        return f"<AccountSyncStatus {self.account_id}: {self.last_sync_status}>"
