"""Database models."""

from database import Base

# Accounts and content
from models.account import Account
from models.tweet import Tweet, TweetStatus

# Sync bookkeeping
from models.account_sync_status import AccountSyncStatus, SyncOutcome
from models.engagement_snapshot import EngagementSnapshot
from models.follower_history import FollowerHistory

# Analytics
from models.content_analytics import ContentAnalytics
from models.daily_stats import DailyStats
from models.data_retention_settings import DataRetentionSettings
from models.insight import Insight, InsightPriority, InsightType

__all__ = [
    # Base
    "Base",
    # Accounts and content
    "Account",
    "Tweet",
    "TweetStatus",
    # Sync bookkeeping
    "AccountSyncStatus",
    "SyncOutcome",
    "EngagementSnapshot",
    "FollowerHistory",
    # Analytics
    "ContentAnalytics",
    "DailyStats",
    "DataRetentionSettings",
    "Insight",
    "InsightPriority",
    "InsightType",
]
