"""
Main FastAPI application for the section news feed.
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from newsfeed.api.routes import router, set_feed_service, set_scheduler
from newsfeed.config import get_settings
from newsfeed.core.logging import configure_logging
from newsfeed.services.feed import NewsFeedService
from newsfeed.services.scheduler import RefreshScheduler

settings = get_settings()
configure_logging(settings.log_level, json_logs=settings.json_logs)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    settings = get_settings()

    logger.info("Initializing feed service", environment=settings.environment)
    feed_service = NewsFeedService(settings=settings)
    set_feed_service(feed_service)

    scheduler = RefreshScheduler(feed_service, settings=settings)
    set_scheduler(scheduler)
    if settings.scheduler_enabled:
        scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down")
    scheduler.stop()
    set_scheduler(None)
    set_feed_service(None)
    await feed_service.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Per-section news feeds merged from several providers.",
    version=settings.app_version,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "section-news-feed",
        "version": get_settings().app_version,
    }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": get_settings().app_name,
        "version": get_settings().app_version,
        "docs": "/docs",
        "endpoints": {
            "news": "/api/v1/news/{section}",
            "sections": "/api/v1/sections",
            "status": "/api/v1/status",
            "refresh": "/api/v1/admin/refresh",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsfeed.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
