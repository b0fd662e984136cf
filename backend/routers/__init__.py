"""Routers package."""

from .engagement import router as engagement_router

__all__ = [
    "engagement_router",
]
