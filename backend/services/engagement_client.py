"""X/Twitter engagement API client.

Fetches per-tweet engagement counters and per-user follower counts from the
X API v2 using app-only bearer token auth. Read-only - never posts content.

Services depend on the `EngagementClient` protocol; `XEngagementClient` is
the production implementation.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

TWEET_FIELDS = "public_metrics,created_at,attachments"
MEDIA_FIELDS = "type,url,preview_image_url,width,height,duration_ms,alt_text"


class EngagementAPIError(Exception):
    """Raised when the engagement API call fails (transient or unknown)."""


class TweetNotFoundError(EngagementAPIError):
    """Raised when the API reports the tweet as missing or deleted."""


@dataclass
class TweetDetails:
    """Engagement counters for a single tweet."""
    like_count: int = 0
    retweet_count: int = 0
    reply_count: int = 0
    view_count: int = 0
    media: list[dict] = field(default_factory=list)


@dataclass
class UserAnalytics:
    """Follower counts for a single user."""
    followers: int = 0
    following: int = 0


class EngagementClient(Protocol):
    """Narrow surface of the external API used by the sync service."""

    async def get_tweet_details(self, tweet_id: str) -> TweetDetails:
        ...

    async def get_user_analytics(self, username: str) -> UserAnalytics:
        ...


def _parse_media(tweet: dict, includes: dict) -> list[dict]:
    """Resolve a tweet's media keys against the response expansions."""
    media_map = {m["media_key"]: m for m in includes.get("media", []) if m.get("media_key")}
    media_items = []
    for key in tweet.get("attachments", {}).get("media_keys", []):
        media = media_map.get(key)
        if not media:
            continue
        media_items.append({
            "type": media.get("type"),  # photo, video, animated_gif
            "url": media.get("url") or media.get("preview_image_url"),
            "width": media.get("width"),
            "height": media.get("height"),
            "duration_ms": media.get("duration_ms"),
            "alt_text": media.get("alt_text"),
        })
    return media_items


def _is_not_found(errors: list[dict]) -> bool:
    for error in errors:
        text = f"{error.get('title', '')} {error.get('type', '')} {error.get('detail', '')}".lower()
        if "not found" in text or "not-found" in text or "deleted" in text:
            return True
    return False


class XEngagementClient:
    """X API v2 implementation of `EngagementClient`."""

    def __init__(
        self,
        bearer_token: str,
        base_url: str = "https://api.twitter.com/2",
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._bearer_token = bearer_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._bearer_token}"},
            transport=self._transport,
        )

    async def get_tweet_details(self, tweet_id: str) -> TweetDetails:
        """Fetch engagement counters and media for a tweet.

        Raises TweetNotFoundError when the tweet no longer exists.
        """
        async with self._client() as client:
            try:
                response = await client.get(
                    f"/tweets/{tweet_id}",
                    params={
                        "tweet.fields": TWEET_FIELDS,
                        "expansions": "attachments.media_keys",
                        "media.fields": MEDIA_FIELDS,
                    },
                )
            except httpx.HTTPError as e:
                raise EngagementAPIError(f"Failed to fetch tweet {tweet_id}: {e}") from e

        if response.status_code == 404:
            raise TweetNotFoundError(f"Tweet {tweet_id} not found or has been deleted")
        if response.status_code == 429:
            raise EngagementAPIError("X API rate limit exceeded. Please try again later.")
        if response.status_code != 200:
            raise EngagementAPIError(
                f"Failed to fetch tweet {tweet_id}: {response.status_code} - {response.text}"
            )

        payload = response.json()
        tweet = payload.get("data")
        if not tweet:
            # X answers 200 with an errors array for missing tweets
            if _is_not_found(payload.get("errors", [])) or not payload.get("errors"):
                raise TweetNotFoundError(f"Tweet {tweet_id} not found or has been deleted")
            raise EngagementAPIError(f"Failed to fetch tweet {tweet_id}: {payload['errors']}")

        metrics = tweet.get("public_metrics", {})
        details = TweetDetails(
            like_count=metrics.get("like_count", 0) or 0,
            retweet_count=metrics.get("retweet_count", 0) or 0,
            reply_count=metrics.get("reply_count", 0) or 0,
            view_count=metrics.get("impression_count", 0) or 0,
            media=_parse_media(tweet, payload.get("includes", {})),
        )
        logger.debug(
            f"Tweet {tweet_id} engagement fetched: {details.like_count} likes, "
            f"{details.retweet_count} retweets, {details.view_count} views"
        )
        return details

    async def get_user_analytics(self, username: str) -> UserAnalytics:
        """Fetch follower/following counts for a handle (without @)."""
        async with self._client() as client:
            try:
                response = await client.get(
                    f"/users/by/username/{username}",
                    params={"user.fields": "public_metrics"},
                )
            except httpx.HTTPError as e:
                raise EngagementAPIError(f"Failed to fetch X user @{username}: {e}") from e

        if response.status_code == 429:
            raise EngagementAPIError("X API rate limit exceeded. Please try again later.")
        if response.status_code == 404:
            raise EngagementAPIError(f"X user @{username} not found")
        if response.status_code != 200:
            raise EngagementAPIError(
                f"Failed to fetch X user @{username}: {response.status_code} - {response.text}"
            )

        user = response.json().get("data")
        if not user:
            raise EngagementAPIError(f"X user @{username} not found")

        metrics = user.get("public_metrics", {})
        analytics = UserAnalytics(
            followers=metrics.get("followers_count", 0) or 0,
            following=metrics.get("following_count", 0) or 0,
        )
        logger.info(f"X stats fetched for @{username}: {analytics.followers} followers")
        return analytics
