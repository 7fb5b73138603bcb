"""
FastAPI routes for the section news feed API.
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from newsfeed.config import get_settings
from newsfeed.models.domain import SectionFeed
from newsfeed.services.feed import NewsFeedService
from newsfeed.services.rate_limiter import get_rate_limiter
from newsfeed.services.scheduler import RefreshScheduler

logger = structlog.get_logger(__name__)
router = APIRouter()

# Set by the application lifespan
_feed_service: Optional[NewsFeedService] = None
_scheduler: Optional[RefreshScheduler] = None


def set_feed_service(service: Optional[NewsFeedService]) -> None:
    global _feed_service
    _feed_service = service


def set_scheduler(scheduler: Optional[RefreshScheduler]) -> None:
    global _scheduler
    _scheduler = scheduler


def get_feed_service() -> NewsFeedService:
    """Dependency to get the feed service."""
    if _feed_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Feed service not initialized",
        )
    return _feed_service


FeedServiceDep = Annotated[NewsFeedService, Depends(get_feed_service)]


# ============================================================================
# Feed Routes
# ============================================================================


@router.get("/news/{section}", response_model=SectionFeed)
async def get_section_news(
    section: str,
    service: FeedServiceDep,
    use_cache: bool = Query(True, description="Serve a cached feed when one is available"),
):
    """
    Get the ranked feed for a section.

    Unknown sections are served the default section. The response is
    always successful; degraded results are flagged with `is_fallback`
    and `is_fallback_mock`.
    """
    return await service.get_section_feed(section, use_cache=use_cache)


@router.get("/sections")
async def list_sections(service: FeedServiceDep):
    """List the available sections and the providers serving each."""
    section_router = service.router
    return {
        "sections": [
            {
                "name": section.name,
                "tag": section.tag,
                "sources": service.aggregator.active_sources(section.name),
            }
            for section in section_router
        ],
        "default": section_router.default_section,
    }


# ============================================================================
# Status & Admin Routes
# ============================================================================


@router.get("/status")
async def get_status(service: FeedServiceDep):
    """Scheduler, rate limiter and cache status."""
    return {
        "scheduler": _scheduler.get_status() if _scheduler else None,
        "rate_limits": get_rate_limiter().get_all_status(),
        "cache_backend": service.cache.backend.name,
        "providers": service.aggregator.get_source_stats(),
    }


@router.post("/admin/refresh", status_code=status.HTTP_202_ACCEPTED)
async def trigger_refresh():
    """Start one refresh cycle in the background (development only)."""
    if get_settings().environment != "development":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only available in development mode",
        )
    if _scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scheduler not initialized",
        )

    _scheduler.trigger()
    logger.info("Manual refresh triggered")
    return {"message": "Refresh cycle started"}
