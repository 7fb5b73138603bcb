"""
Shared fixtures for the section feed tests.

No test touches the network: HTTP goes through httpx.MockTransport and
the cache is the in-process backend.
"""

from datetime import datetime, timezone
from typing import Optional

import pytest

from newsfeed.config import NaverSettings, NewsAPISettings, Settings, XSettings
from newsfeed.models.domain import Article, EngagementMetrics, ProviderKind
from newsfeed.services.cache import CacheGateway, MemoryCacheBackend
from newsfeed.services.rate_limiter import RateLimiter

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    """Settings with every provider enabled and no retries."""
    return Settings(
        newsapi=NewsAPISettings(api_key="test-newsapi-key"),
        naver=NaverSettings(client_id="test-client-id", client_secret="test-client-secret"),
        x=XSettings(bearer_token="test-bearer-token"),
        redis_url=None,
        environment="development",
        scheduler_enabled=False,
        provider_retry_attempts=1,
        rate_limit_wait_seconds=0,
    )


@pytest.fixture
def rate_limiter() -> RateLimiter:
    """A fresh limiter so tests never share request history."""
    return RateLimiter()


@pytest.fixture
def cache(settings) -> CacheGateway:
    return CacheGateway(backend=MemoryCacheBackend(), settings=settings)


@pytest.fixture
def make_article():
    """Factory for raw provider articles."""

    def _make(
        title: str,
        url: Optional[str] = None,
        published_at: str = "",
        provider: ProviderKind = ProviderKind.NEWSAPI,
        source: str = "Test Source",
        description: str = "",
        metrics: Optional[EngagementMetrics] = None,
    ) -> Article:
        return Article(
            title=title,
            description=description,
            url=url if url is not None else "https://example.com/" + "-".join(title.lower().split()),
            published_at=published_at,
            source=source,
            provider=provider,
            metrics=metrics,
        )

    return _make
