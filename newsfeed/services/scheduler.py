"""
Background refresh of every section's cached feed.

A refresh cycle walks the sections one after another and rebuilds each
cache entry from fresh provider data. Cycles never overlap: a trigger that
arrives while one is running is dropped, not queued.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from newsfeed.config import Settings, get_settings
from newsfeed.core.sections import SectionRouter, get_router
from newsfeed.services.feed import NewsFeedService

logger = structlog.get_logger(__name__)

REFRESH_JOB_ID = "section_refresh"
INITIAL_JOB_ID = "initial_section_refresh"


class RefreshScheduler:
    """Runs refresh cycles on an interval, plus once shortly after startup."""

    def __init__(
        self,
        feed_service: NewsFeedService,
        router: Optional[SectionRouter] = None,
        settings: Optional[Settings] = None,
    ):
        self.feed_service = feed_service
        self.router = router or feed_service.router or get_router()
        self.settings = settings or get_settings()

        self.interval_seconds = self.settings.refresh_interval_seconds
        self.initial_delay_seconds = self.settings.refresh_initial_delay_seconds

        self._lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._pending: set[asyncio.Task] = set()

        self.last_started_at: Optional[datetime] = None
        self.last_finished_at: Optional[datetime] = None
        self.last_results: dict[str, Union[int, str]] = {}

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def cycle_in_progress(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> bool:
        """
        Refresh every section sequentially.

        Returns False without doing anything if a cycle is already running.
        A failing section is logged and recorded; the rest still refresh.
        """
        if self._lock.locked():
            logger.info("Refresh cycle already running, dropping trigger")
            return False

        async with self._lock:
            self.last_started_at = datetime.now(timezone.utc)
            results: dict[str, Union[int, str]] = {}
            logger.info("Starting refresh cycle", sections=self.router.names)

            for name in self.router.names:
                try:
                    results[name] = await self.feed_service.refresh_section(name)
                except Exception as e:
                    logger.error("Section refresh failed", section=name, error=str(e), exc_info=True)
                    results[name] = f"error: {e}"

            self.last_results = results
            self.last_finished_at = datetime.now(timezone.utc)
            logger.info(
                "Refresh cycle completed",
                duration_seconds=round((self.last_finished_at - self.last_started_at).total_seconds(), 2),
                results=results,
            )

        return True

    def trigger(self) -> None:
        """Start one cycle in the background without waiting for it."""
        task = asyncio.create_task(self.run_cycle())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def start(self) -> None:
        """Schedule the interval job and the one-off startup run. Needs a running loop."""
        if self.is_running:
            return

        self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(seconds=self.interval_seconds),
            id=REFRESH_JOB_ID,
            name="Section Feed Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.run_cycle,
            DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay_seconds)),
            id=INITIAL_JOB_ID,
            name="Initial Section Feed Refresh",
            replace_existing=True,
        )
        self._scheduler.start()

        logger.info(
            "Scheduler started",
            interval_seconds=self.interval_seconds,
            initial_delay_seconds=self.initial_delay_seconds,
        )

    def stop(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Scheduler stopped")

    def get_status(self) -> dict:
        return {
            "running": self.is_running,
            "cycle_in_progress": self.cycle_in_progress,
            "interval_seconds": self.interval_seconds,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_finished_at": self.last_finished_at.isoformat() if self.last_finished_at else None,
            "last_results": dict(self.last_results),
        }
