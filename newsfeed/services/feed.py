"""
Section feed service - the single entry point for reading a section.

Resolution order for a request:
1. Cache (when the caller allows it)
2. Fresh aggregation, merged and ranked, then written back to the cache
3. Any cached entry, flagged as a fallback
4. The built-in mock set, flagged as a mock fallback and never cached

get_section_feed never raises; the worst case is the mock set.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from newsfeed.config import Settings, get_settings
from newsfeed.core.sections import Section, SectionRouter, get_router
from newsfeed.models.domain import NormalizedArticle, SectionFeed
from newsfeed.services.aggregator import Aggregator
from newsfeed.services.cache import CacheGateway
from newsfeed.services.ranking import RankingService
from newsfeed.sources.mock import MockAdapter, get_mock_adapter

logger = structlog.get_logger(__name__)


class NewsFeedService:
    """Builds section feeds from providers, the cache and the mock set."""

    def __init__(
        self,
        aggregator: Optional[Aggregator] = None,
        ranking: Optional[RankingService] = None,
        cache: Optional[CacheGateway] = None,
        mock: Optional[MockAdapter] = None,
        router: Optional[SectionRouter] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.router = router or get_router()
        self.aggregator = aggregator or Aggregator(router=self.router, settings=self.settings)
        self.ranking = ranking or RankingService(router=self.router)
        self.cache = cache or CacheGateway(settings=self.settings)
        self.mock = mock or get_mock_adapter()
        self.page_size = self.settings.feed_page_size

    async def get_section_feed(
        self,
        section_name: Optional[str],
        use_cache: bool = True,
    ) -> SectionFeed:
        """
        Get the ranked feed for a section.

        Args:
            section_name: Requested section; unknown names use the default
            use_cache: Read the cache before fetching fresh data

        Returns:
            SectionFeed with at most `feed_page_size` articles
        """
        section = self.router.resolve(section_name)

        if use_cache:
            cached = await self.cache.get(section.name)
            if cached:
                logger.info("Serving cached feed", section=section.name, count=len(cached))
                return self._build_feed(section, cached, from_cache=True)

        try:
            articles = await self._collect(section)
        except Exception as e:
            logger.error("Feed pipeline failed", section=section.name, error=str(e), exc_info=True)
            articles = []

        if articles:
            await self.cache.put(section.name, articles)
            return self._build_feed(section, articles)

        stale = await self.cache.get(section.name)
        if stale:
            logger.warning("No fresh articles, serving cached fallback", section=section.name)
            return self._build_feed(section, stale, from_cache=True, is_fallback=True)

        logger.warning("No articles available, serving mock fallback", section=section.name)
        mock_articles = self.ranking.process(self.mock.articles_for(section.name), section)
        return self._build_feed(section, mock_articles, is_fallback=True, is_fallback_mock=True)

    async def refresh_section(self, section_name: str) -> int:
        """Fetch, rank and cache a section. Returns the number of articles cached."""
        section = self.router.resolve(section_name)
        articles = await self._collect(section)
        await self.cache.put(section.name, articles)

        logger.info("Refreshed section", section=section.name, count=len(articles))
        return len(articles)

    async def _collect(self, section: Section) -> list[NormalizedArticle]:
        raw = await self.aggregator.aggregate(section.name)
        return self.ranking.process(raw, section)

    def _build_feed(
        self,
        section: Section,
        articles: list[NormalizedArticle],
        from_cache: bool = False,
        is_fallback: bool = False,
        is_fallback_mock: bool = False,
    ) -> SectionFeed:
        return SectionFeed(
            section=section.name,
            articles=articles[: self.page_size],
            total=len(articles),
            from_cache=from_cache,
            is_fallback=is_fallback,
            is_fallback_mock=is_fallback_mock,
            generated_at=datetime.now(timezone.utc),
            sources=self.aggregator.active_sources(section.name),
        )

    async def close(self) -> None:
        await self.cache.close()
