"""Insight generator - turns aggregated analytics into ranked recommendations.

Each generator reads aggregates for one user and yields an unsaved `Insight`
(or nothing). `store_insight` keeps at most one active insight per
(user, type) by updating the active row in place.
"""

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from models.insight import Insight, InsightPriority, InsightType
from repositories.analytics import AnalyticsRepository
from repositories.insights import InsightRepository
from services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

# Thresholds
BEST_TIME_MIN_SAMPLES = 3
CONTENT_TYPE_MIN_SAMPLES = 5
CONTENT_TYPE_MIN_RATIO = 1.5
INACTIVE_AFTER_DAYS = 5
HASHTAG_MIN_USES = 3

# Lifetimes
DEFAULT_INSIGHT_TTL = timedelta(days=7)
INACTIVE_INSIGHT_TTL = timedelta(days=3)


@dataclass
class InsightRunResult:
    success: bool = True
    insights_generated: int = 0
    errors: list[str] = field(default_factory=list)


def format_hour(hour: int) -> str:
    """Format a 0-23 hour as 12-hour clock text ("12 AM", "3 PM")."""
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def _engagement_priority(avg_engagement: float) -> InsightPriority:
    if avg_engagement > 50:
        return InsightPriority.HIGH
    if avg_engagement > 20:
        return InsightPriority.MEDIUM
    return InsightPriority.LOW


class InsightGenerator:
    """Generates and stores insights for a user."""

    def __init__(self, analytics: AnalyticsRepository, insights: InsightRepository, clock: Clock = utc_now):
        self.analytics = analytics
        self.insights = insights
        self.clock = clock

    def _build(
        self,
        user_id: str,
        insight_type: InsightType,
        title: str,
        message: str,
        priority: InsightPriority,
        data: dict,
        ttl: timedelta,
    ) -> Insight:
        now = self.clock()
        return Insight(
            user_id=user_id,
            insight_type=insight_type.value,
            title=title,
            message=message,
            priority=int(priority),
            data=data,
            generated_at=now,
            expires_at=now + ttl,
            dismissed=False,
        )

    # ============== Generators ==============

    async def generate_best_time_insight(self, user_id: str) -> Optional[Insight]:
        """Best (hour, weekday) slot by average engagement."""
        slots = await self.analytics.engagement_by_time_slot(user_id, BEST_TIME_MIN_SAMPLES)
        if not slots:
            return None

        best = slots[0]
        day_name = calendar.day_name[best.post_day]
        time_str = format_hour(best.post_hour)

        return self._build(
            user_id,
            InsightType.BEST_TIME,
            title="Best Posting Time",
            message=(
                f"Your best posting time is {day_name} at {time_str} with an average of "
                f"{round(best.avg_engagement)} engagements."
            ),
            priority=_engagement_priority(best.avg_engagement),
            data={
                "day": best.post_day,
                "day_name": day_name,
                "hour": best.post_hour,
                "avg_engagement": best.avg_engagement,
                "sample_size": best.sample_size,
            },
            ttl=DEFAULT_INSIGHT_TTL,
        )

    async def generate_content_type_insight(self, user_id: str) -> Optional[Insight]:
        """Compare the best content type against the weakest one."""
        types = await self.analytics.engagement_by_content_type(user_id, CONTENT_TYPE_MIN_SAMPLES)
        if len(types) < 2:
            return None

        best, baseline = types[0], types[-1]
        if best.avg_engagement <= 0:
            return None

        if baseline.avg_engagement <= 0:
            # Unbounded multiplier: stored as None, always High
            ratio = None
            priority = InsightPriority.HIGH
            message = (
                f"Posts with {best.content_type} get engagement while "
                f"{baseline.content_type}-only posts get none."
            )
        else:
            ratio = round(best.avg_engagement / baseline.avg_engagement, 1)
            if ratio < CONTENT_TYPE_MIN_RATIO:
                return None

            if ratio > 3:
                priority = InsightPriority.HIGH
            elif ratio > 2:
                priority = InsightPriority.MEDIUM
            else:
                priority = InsightPriority.LOW
            message = (
                f"Posts with {best.content_type} get {ratio}x more engagement than "
                f"{baseline.content_type}-only posts."
            )

        return self._build(
            user_id,
            InsightType.CONTENT_TYPE,
            title="Content Performance",
            message=message,
            priority=priority,
            data={
                "best_type": best.content_type,
                "baseline_type": baseline.content_type,
                "engagement_multiplier": ratio,
                "sample_size": best.sample_size,
            },
            ttl=DEFAULT_INSIGHT_TTL,
        )

    async def generate_inactive_account_insights(self, user_id: str) -> list[Insight]:
        """One insight per account idle for INACTIVE_AFTER_DAYS or more (or never posted)."""
        now = self.clock()
        insights = []

        for activity in await self.analytics.last_posted_by_account(user_id):
            if activity.last_posted_at is None:
                days_inactive = None
            else:
                days_inactive = (now - activity.last_posted_at).days
                if days_inactive < INACTIVE_AFTER_DAYS:
                    continue

            if days_inactive is None:
                message = f"Account @{activity.username} has never posted."
                priority = InsightPriority.LOW
            else:
                message = f"Account @{activity.username} hasn't posted in {days_inactive} days."
                if days_inactive >= 14:
                    priority = InsightPriority.HIGH
                elif days_inactive >= 7:
                    priority = InsightPriority.MEDIUM
                else:
                    priority = InsightPriority.LOW

            insights.append(self._build(
                user_id,
                InsightType.INACTIVE_ACCOUNT,
                title="Inactive Account",
                message=message,
                priority=priority,
                data={
                    "account_id": activity.account_id,
                    "username": activity.username,
                    "days_since_last_post": days_inactive,
                    "last_post_date": activity.last_posted_at.isoformat() if activity.last_posted_at else None,
                },
                ttl=INACTIVE_INSIGHT_TTL,
            ))

        return insights

    async def generate_top_hashtag_insight(self, user_id: str) -> Optional[Insight]:
        """Hashtag with the highest average engagement over at least HASHTAG_MIN_USES tweets."""
        samples = await self.analytics.hashtag_samples(user_id)
        if not samples:
            return None

        totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])  # tag -> [total, uses]
        for sample in samples:
            for tag in sample.hashtags:
                totals[tag][0] += sample.engagement_score
                totals[tag][1] += 1

        top_tag, top_avg, top_uses = None, 0.0, 0
        for tag, (total, uses) in totals.items():
            if uses < HASHTAG_MIN_USES:
                continue
            avg = total / uses
            if avg > top_avg:
                top_tag, top_avg, top_uses = tag, avg, uses

        if top_tag is None:
            return None

        return self._build(
            user_id,
            InsightType.TOP_HASHTAG,
            title="Top Hashtag",
            message=(
                f"#{top_tag} drives the most engagement with an average of {round(top_avg)} "
                f"interactions (used {top_uses} times)."
            ),
            priority=_engagement_priority(top_avg),
            data={"hashtag": top_tag, "use_count": top_uses, "avg_engagement": top_avg},
            ttl=DEFAULT_INSIGHT_TTL,
        )

    # ============== Storage ==============

    async def store_insight(self, insight: Insight) -> None:
        """Update the active insight of the same type in place, or insert."""
        existing = await self.insights.find_active(insight.user_id, insight.insight_type, self.clock())

        if existing:
            await self.insights.update(existing.id, {
                "title": insight.title,
                "message": insight.message,
                "priority": insight.priority,
                "data": insight.data,
                "generated_at": insight.generated_at,
                "expires_at": insight.expires_at,
            })
        else:
            await self.insights.add(insight)

    async def generate_all_insights(self, user_id: str) -> InsightRunResult:
        """Regenerate every insight type for a user.

        Generator failures are collected on the result without stopping the
        remaining generators.
        """
        result = InsightRunResult()

        try:
            await self.insights.delete_expired(user_id, self.clock())

            for generator in (
                self.generate_best_time_insight,
                self.generate_content_type_insight,
                self.generate_top_hashtag_insight,
            ):
                try:
                    insight = await generator(user_id)
                    if insight:
                        await self.store_insight(insight)
                        result.insights_generated += 1
                except Exception as e:
                    result.errors.append(f"{generator.__name__}: {e}")

            try:
                for insight in await self.generate_inactive_account_insights(user_id):
                    await self.store_insight(insight)
                    result.insights_generated += 1
            except Exception as e:
                result.errors.append(f"generate_inactive_account_insights: {e}")

        except Exception as e:
            logger.error(f"Failed to generate insights for user {user_id}: {e}")
            result.success = False
            result.errors.append(str(e))
            return result

        logger.info(
            f"Insights generated for user {user_id}: {result.insights_generated} stored, "
            f"{len(result.errors)} errors"
        )
        return result

    async def list_active_insights(self, user_id: str) -> list[Insight]:
        return await self.insights.list_active(user_id, self.clock())

    async def dismiss_insight(self, user_id: str, insight_id: str) -> bool:
        dismissed = await self.insights.dismiss(user_id, insight_id)
        if dismissed:
            logger.info(f"Insight {insight_id} dismissed by user {user_id}")
        return dismissed
