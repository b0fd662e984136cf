"""Engagement router - admin triggers for sync, cleanup, insights and analytics cache."""

from dataclasses import asdict
from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from middleware.auth import verify_api_key
from middleware.rate_limit import (
    CLEANUP_LIMIT,
    GLOBAL_CLEANUP_LIMIT,
    INSIGHTS_LIMIT,
    SYNC_LIMIT,
    limiter,
)
from services.analytics_cache import CacheType
from services.container import ServiceContainer

router = APIRouter(
    prefix="/api/engagement",
    tags=["engagement"],
    dependencies=[Depends(verify_api_key)],
)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


Services = Annotated[ServiceContainer, Depends(get_services)]


# ============== Request/Response Models ==============

class RetentionSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    snapshot_retention_days: int
    snapshot_active_tweet_days: int
    follower_history_retention_days: int
    daily_stats_retention_days: int
    content_analytics_retention_days: int
    auto_cleanup_enabled: bool
    last_cleanup_at: Optional[datetime] = None


class RetentionSettingsUpdate(BaseModel):
    """Sparse update - omitted fields keep their value."""
    model_config = ConfigDict(extra="forbid")

    snapshot_retention_days: Optional[int] = Field(default=None, ge=0)
    snapshot_active_tweet_days: Optional[int] = Field(default=None, ge=0)
    follower_history_retention_days: Optional[int] = Field(default=None, ge=0)
    daily_stats_retention_days: Optional[int] = Field(default=None, ge=0)
    content_analytics_retention_days: Optional[int] = Field(default=None, ge=0)
    auto_cleanup_enabled: Optional[bool] = None


class InsightResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    insight_type: str
    title: str
    message: str
    priority: int
    data: Optional[dict[str, Any]] = None
    generated_at: datetime
    expires_at: datetime
    dismissed: bool


class InsightRunResponse(BaseModel):
    success: bool
    insights_generated: int
    errors: list[str]


# ============== Account Sync ==============

@router.post("/users/{user_id}/sync")
@limiter.limit(SYNC_LIMIT)
async def sync_user_accounts(request: Request, user_id: str, services: Services):
    """Sync engagement and followers for all of a user's accounts."""
    stats = await services.account_sync.sync_user_accounts(user_id)
    services.cache.invalidate_user_cache(user_id)
    return {
        **asdict(stats),
        "message": (
            f"Synced {stats.total_tweets_synced} tweets across {stats.successful_accounts} accounts. "
            f"{stats.failed_accounts} accounts failed."
        ),
    }


@router.get("/users/{user_id}/sync-status")
async def get_sync_status(user_id: str, services: Services):
    """Last sync outcome for each of the user's accounts."""
    return await services.account_sync.get_user_accounts_sync_status(user_id)


# ============== Retention & Cleanup ==============

@router.get("/users/{user_id}/retention", response_model=RetentionSettingsResponse)
async def get_retention_settings(user_id: str, services: Services):
    return await services.data_cleanup.get_user_retention_settings(user_id)


@router.patch("/users/{user_id}/retention", response_model=RetentionSettingsResponse)
async def update_retention_settings(
    user_id: str,
    update: RetentionSettingsUpdate,
    services: Services,
):
    """Update only the supplied retention fields."""
    patch = update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await services.data_cleanup.update_user_retention_settings(user_id, patch)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.post("/users/{user_id}/cleanup")
@limiter.limit(CLEANUP_LIMIT)
async def cleanup_user_data(request: Request, user_id: str, services: Services):
    stats = await services.data_cleanup.cleanup_user_data(user_id)
    return stats.to_dict()


@router.post("/cleanup")
@limiter.limit(GLOBAL_CLEANUP_LIMIT)
async def run_global_cleanup(request: Request, services: Services):
    """Apply retention windows for every user with auto-cleanup enabled."""
    stats = await services.data_cleanup.run_global_cleanup()
    return stats.to_dict()


# ============== Insights ==============

@router.post("/users/{user_id}/insights/generate", response_model=InsightRunResponse)
@limiter.limit(INSIGHTS_LIMIT)
async def generate_insights(request: Request, user_id: str, services: Services):
    result = await services.insight_generator.generate_all_insights(user_id)
    return InsightRunResponse(**asdict(result))


@router.get("/users/{user_id}/insights", response_model=list[InsightResponse])
async def list_insights(user_id: str, services: Services):
    """Active insights, highest priority first."""
    return await services.insight_generator.list_active_insights(user_id)


@router.post("/users/{user_id}/insights/{insight_id}/dismiss")
async def dismiss_insight(user_id: str, insight_id: str, services: Services):
    dismissed = await services.insight_generator.dismiss_insight(user_id, insight_id)
    if not dismissed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Insight not found")
    return {"success": True}


# ============== Analytics Cache ==============

@router.get("/users/{user_id}/dashboard")
async def get_dashboard_overview(user_id: str, services: Services):
    """Tweet counts per status (cached for one minute)."""
    return await services.get_dashboard_overview(user_id)


@router.get("/cache/stats")
async def get_cache_stats(services: Services):
    return services.cache.get_cache_stats()


@router.delete("/users/{user_id}/cache")
async def invalidate_user_cache(
    user_id: str,
    services: Services,
    cache_type: Annotated[Optional[CacheType], Query(alias="type")] = None,
):
    removed = services.cache.invalidate_user_cache(user_id, cache_type)
    return {"removed": removed}


@router.delete("/cache")
async def invalidate_all_caches(services: Services):
    services.cache.invalidate_all_caches()
    return {"success": True}
