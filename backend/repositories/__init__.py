"""Data access layer.

Each repository is a Protocol consumed by the services plus a SQLAlchemy
implementation that opens one session per operation.
"""

from repositories.accounts import AccountRepository, SqlAccountRepository
from repositories.analytics import (
    AccountActivity,
    AnalyticsRepository,
    ContentTypeEngagement,
    HashtagSample,
    SqlAnalyticsRepository,
    TimeSlotEngagement,
)
from repositories.insights import InsightRepository, SqlInsightRepository
from repositories.retention import RetentionRepository, SqlRetentionRepository
from repositories.snapshots import SnapshotRepository, SqlSnapshotRepository
from repositories.tweets import SqlTweetRepository, SyncWindow, TweetRepository

__all__ = [
    "AccountRepository",
    "SqlAccountRepository",
    "AnalyticsRepository",
    "SqlAnalyticsRepository",
    "AccountActivity",
    "ContentTypeEngagement",
    "HashtagSample",
    "TimeSlotEngagement",
    "InsightRepository",
    "SqlInsightRepository",
    "RetentionRepository",
    "SqlRetentionRepository",
    "SnapshotRepository",
    "SqlSnapshotRepository",
    "TweetRepository",
    "SqlTweetRepository",
    "SyncWindow",
]
