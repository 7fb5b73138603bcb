"""
Aggregator - collects a section's articles from all of its providers.

Primary (keyed API) calls come first, in the order the section declares
them, followed by each RSS feed capped to a few items. Calls run
concurrently, but results are always concatenated in declared order so
that deduplication downstream keeps a deterministic survivor.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from newsfeed.config import Settings, get_settings
from newsfeed.core.sections import RSS_SOURCE_LABEL, PROVIDER_LABELS, SectionRouter, get_router
from newsfeed.models.domain import Article, ProviderKind
from newsfeed.services.rate_limiter import RateLimiter
from newsfeed.sources.base import FetchParams, ProviderAdapter
from newsfeed.sources.naver import NaverAdapter
from newsfeed.sources.newsapi import NewsAPIAdapter
from newsfeed.sources.rss import RSSAdapter
from newsfeed.sources.x import XAdapter

logger = structlog.get_logger(__name__)


@dataclass
class FetchResult:
    """Outcome of one adapter call within an aggregation run."""
    provider: ProviderKind
    source: str
    articles_fetched: int
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        status = "ok" if self.success else f"error={self.error}"
        return (
            f"{self.source}: fetched={self.articles_fetched}, "
            f"{status}, time={self.duration_seconds:.1f}s"
        )


def create_adapters(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[ProviderKind, ProviderAdapter]:
    """Create one adapter per provider kind."""
    settings = settings or get_settings()
    kwargs = {"settings": settings, "rate_limiter": rate_limiter, "transport": transport}

    return {
        ProviderKind.NEWSAPI: NewsAPIAdapter(**kwargs),
        ProviderKind.NAVER: NaverAdapter(**kwargs),
        ProviderKind.X: XAdapter(**kwargs),
        ProviderKind.RSS: RSSAdapter(**kwargs),
    }


class Aggregator:
    """
    Invokes the section router's adapters and collects their articles.

    A failing adapter contributes nothing; the others still run.
    """

    def __init__(
        self,
        router: Optional[SectionRouter] = None,
        adapters: Optional[dict[ProviderKind, ProviderAdapter]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.router = router or get_router()
        self.adapters = adapters if adapters is not None else create_adapters(self.settings)

        enabled = [a.name for a in self.adapters.values() if a.enabled]
        logger.info("Initialized aggregator", adapters=len(self.adapters), enabled=enabled)

    async def aggregate(self, section: str) -> list[Article]:
        """Fetch every article for a section, primary results first."""
        articles, _ = await self.aggregate_with_results(section)
        return articles

    async def aggregate_with_results(
        self,
        section: str,
    ) -> tuple[list[Article], list[FetchResult]]:
        """
        Fetch a section and report per-call results.

        Args:
            section: Section name (unknown names use the default section)

        Returns:
            Tuple of (articles in canonical order, one FetchResult per call)
        """
        resolved = self.router.resolve(section)
        rss_cap = self.settings.rss.items_per_feed

        calls: list[tuple[ProviderKind, FetchParams, Optional[int]]] = [
            (call.kind, FetchParams.from_call(call), None) for call in resolved.calls
        ]
        calls += [
            (ProviderKind.RSS, FetchParams.for_feed(feed), rss_cap) for feed in resolved.feeds
        ]

        # gather() returns results in call order regardless of completion order
        results = await asyncio.gather(
            *(self._fetch_from_adapter(kind, params, cap) for kind, params, cap in calls),
            return_exceptions=True,
        )

        all_articles: list[Article] = []
        fetch_results: list[FetchResult] = []

        for (kind, params, _), result in zip(calls, results):
            if isinstance(result, Exception):
                logger.error("Adapter raised unexpectedly", provider=kind.value, error=str(result))
                fetch_results.append(FetchResult(
                    provider=kind,
                    source=self._describe(kind, params),
                    articles_fetched=0,
                    error=str(result),
                ))
                continue

            articles, fetch_result = result
            all_articles.extend(articles)
            fetch_results.append(fetch_result)

        primary_count = sum(r.articles_fetched for r in fetch_results if r.provider != ProviderKind.RSS)
        logger.info(
            "Aggregated section",
            section=resolved.name,
            primary=primary_count,
            supplementary=len(all_articles) - primary_count,
        )

        return all_articles, fetch_results

    async def _fetch_from_adapter(
        self,
        kind: ProviderKind,
        params: FetchParams,
        cap: Optional[int],
    ) -> tuple[list[Article], FetchResult]:
        """Fetch from a single adapter with timing and an optional cap."""
        source = self._describe(kind, params)
        adapter = self.adapters.get(kind)
        if adapter is None:
            logger.warning("No adapter registered for provider", provider=kind.value)
            return [], FetchResult(kind, source, 0, error="no adapter registered")

        start = time.monotonic()
        articles = await adapter.fetch(params)
        if cap is not None:
            articles = articles[:cap]

        return articles, FetchResult(
            provider=kind,
            source=source,
            articles_fetched=len(articles),
            duration_seconds=time.monotonic() - start,
        )

    def _describe(self, kind: ProviderKind, params: FetchParams) -> str:
        if params.feed is not None:
            return f"rss:{params.feed.name}"
        if params.category:
            return f"{kind.value}:{params.category}"
        return kind.value

    def active_sources(self, section: str) -> list[str]:
        """Display names of the enabled providers serving a section."""
        resolved = self.router.resolve(section)
        sources = []
        for kind in resolved.provider_kinds():
            adapter = self.adapters.get(kind)
            if adapter is not None and adapter.enabled:
                sources.append(PROVIDER_LABELS.get(kind, adapter.name))
        sources.append(RSS_SOURCE_LABEL)
        return sources

    def get_source_stats(self) -> dict:
        """Get statistics about configured providers."""
        return {
            "total_providers": len(self.adapters),
            "providers": [
                {
                    "name": adapter.name,
                    "kind": kind.value,
                    "enabled": adapter.enabled,
                    "timeout_seconds": adapter.timeout_seconds,
                }
                for kind, adapter in self.adapters.items()
            ],
        }
