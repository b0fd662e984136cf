"""Engagement Pipeline - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from config import get_settings
from database import async_session, engine
from models import Base
from routers import engagement_router
from services.container import build_services
from services.scheduler import start_scheduler, stop_scheduler
from middleware.rate_limit import limiter, rate_limit_exceeded_handler

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - create tables and services on startup, stop jobs on shutdown."""
    # Startup: create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.services = build_services(async_session, settings)

    if not settings.x_bearer_token:
        logger.warning("X_BEARER_TOKEN is not set - engagement sync calls will fail")
    if not settings.debug and settings.admin_api_key == "change-this-in-production":
        logger.warning("SECURITY WARNING: Using default admin API key in production!")

    # Start background scheduler for periodic tasks
    scheduler = start_scheduler(app.state.services, settings) if settings.scheduler_enabled else None

    yield

    # Shutdown: stop scheduler and dispose the connection pool
    if scheduler:
        stop_scheduler(scheduler)
    await engine.dispose()


app = FastAPI(
    title="Engagement Pipeline API",
    description="Engagement sync, retention cleanup and insights for connected X accounts",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Include routers
app.include_router(engagement_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "engagement-pipeline"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Engagement Pipeline API",
        "version": "0.1.0",
        "docs": "/docs",
    }
