"""Content analytics - derives composition and timing features per tweet.

Rows written here feed the insight generator's best-time, content-type and
hashtag aggregates.
"""

import json
import logging
import re
from typing import Any, Optional

from models.content_analytics import ContentAnalytics
from models.tweet import Tweet
from repositories.analytics import AnalyticsRepository
from repositories.tweets import TweetRepository
from services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+")
HASHTAG_PATTERN = re.compile(r"#(\w+)")
MENTION_PATTERN = re.compile(r"@(\w+)")

IMAGE_TYPES = {"photo", "image"}
VIDEO_TYPES = {"video"}
GIF_TYPES = {"animated_gif", "gif"}


def _media_items(media: Any) -> list[dict]:
    if not media:
        return []
    if isinstance(media, str):
        try:
            media = json.loads(media)
        except ValueError:
            return []
    return [m for m in media if isinstance(m, dict)] if isinstance(media, list) else []


def extract_content_features(tweet: Tweet) -> dict[str, Any]:
    """Compute the content_analytics column values for a tweet."""
    content = tweet.content or ""
    media = _media_items(tweet.media)
    media_types = {str(m.get("type") or "").lower() for m in media}
    hashtags = HASHTAG_PATTERN.findall(content)
    posted_at = tweet.created_at

    return {
        "has_image": bool(media_types & IMAGE_TYPES),
        "has_video": bool(media_types & VIDEO_TYPES),
        "has_gif": bool(media_types & GIF_TYPES),
        "has_link": bool(URL_PATTERN.search(content)),
        "media_count": len(media),
        "hashtag_count": len(hashtags),
        "hashtags": hashtags,
        "mention_count": len(MENTION_PATTERN.findall(content)),
        "char_count": len(content),
        "post_hour": posted_at.hour,
        "post_day": posted_at.weekday(),
        "post_timestamp": posted_at,
        "engagement_score": tweet.engagement_score,
    }


class ContentAnalyticsService:
    """Upserts content analytics rows for tweets."""

    def __init__(self, tweets: TweetRepository, analytics: AnalyticsRepository, clock: Clock = utc_now):
        self.tweets = tweets
        self.analytics = analytics
        self.clock = clock

    async def analyze_tweet(self, tweet_id: str) -> Optional[ContentAnalytics]:
        """Recompute and store the analytics of one tweet. None if the tweet is unknown."""
        tweet = await self.tweets.get(tweet_id)
        if tweet is None:
            logger.warning(f"Cannot analyze unknown tweet {tweet_id}")
            return None

        features = extract_content_features(tweet)
        row = await self.analytics.upsert_content_analytics(tweet_id, features, self.clock())
        logger.debug(
            f"Content analytics stored for tweet {tweet_id}: "
            f"score {features['engagement_score']}, {features['hashtag_count']} hashtags"
        )
        return row

    async def backfill_user(self, user_id: str) -> int:
        """Analyze every posted tweet of a user. Returns the number of rows written."""
        tweet_ids = await self.tweets.list_posted_ids(user_id)
        analyzed = 0
        for tweet_id in tweet_ids:
            try:
                if await self.analyze_tweet(tweet_id) is not None:
                    analyzed += 1
            except Exception as e:
                logger.error(f"Failed to analyze tweet {tweet_id}: {e}")

        logger.info(f"Content analytics backfill for user {user_id}: {analyzed}/{len(tweet_ids)} tweets")
        return analyzed
