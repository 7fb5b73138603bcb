"""
Base interface for provider adapters.
All providers (NewsAPI, Naver, X, RSS feeds) implement this interface.
"""
import html
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from newsfeed.config import Settings, get_settings
from newsfeed.core.exceptions import ProviderError
from newsfeed.core.sections import ProviderCall, RSSFeed
from newsfeed.models.domain import Article, ProviderKind
from newsfeed.services.rate_limiter import RateLimiter, get_rate_limiter

logger = structlog.get_logger(__name__)

MAX_TEXT_LENGTH = 500

_INLINE_TAG_RE = re.compile(r"</?(?:b|strong|em|i|u|span|a|font|mark)\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")


def clean_text(text: Optional[str], max_length: int = MAX_TEXT_LENGTH) -> str:
    """Strip markup and entities, collapse whitespace and truncate."""
    if not text:
        return ""

    # Inline markup (e.g. search-hit highlighting) must not split words
    clean = _INLINE_TAG_RE.sub("", text)
    clean = _TAG_RE.sub(" ", clean)
    clean = html.unescape(clean)
    clean = " ".join(clean.split())

    return clean[:max_length]


@dataclass(frozen=True)
class FetchParams:
    """Parameters for a single adapter invocation."""

    category: Optional[str] = None
    country: Optional[str] = None
    query: Optional[str] = None
    feed: Optional[RSSFeed] = None

    @classmethod
    def from_call(cls, call: ProviderCall) -> "FetchParams":
        return cls(category=call.category, country=call.country, query=call.query)

    @classmethod
    def for_feed(cls, feed: RSSFeed) -> "FetchParams":
        return cls(feed=feed)


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement `_fetch`, which may raise freely; `fetch`
    turns every failure into a logged warning and an empty result.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self._transport = transport

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Return the provider kind."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the provider."""
        pass

    @property
    @abstractmethod
    def timeout_seconds(self) -> float:
        """Per-request timeout."""
        pass

    @property
    def enabled(self) -> bool:
        """Whether the credentials this provider needs are configured."""
        return True

    @abstractmethod
    async def _fetch(self, params: FetchParams) -> list[Article]:
        """
        Fetch and normalize articles from the provider.

        Args:
            params: Invocation parameters from the section router

        Returns:
            List of Article objects
        """
        pass

    async def fetch(self, params: FetchParams) -> list[Article]:
        """Fetch articles, returning an empty list on any provider failure."""
        label = self._label(params)

        if not self.enabled:
            logger.warning("Provider disabled, credentials not configured", provider=label)
            return []

        try:
            articles = await self._fetch(params)
        except httpx.TimeoutException as e:
            logger.warning("Provider request timed out", provider=label, error=str(e) or type(e).__name__)
            return []
        except httpx.HTTPStatusError as e:
            logger.warning("Provider returned error status", provider=label, status=e.response.status_code)
            return []
        except httpx.HTTPError as e:
            logger.warning("Provider request failed", provider=label, error=str(e) or type(e).__name__)
            return []
        except ProviderError as e:
            logger.warning("Provider error", provider=label, error=e.message)
            return []
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Malformed provider response", provider=label, error=str(e))
            return []
        except Exception as e:
            logger.warning("Unexpected provider failure", provider=label, error=str(e), exc_info=True)
            return []

        logger.debug("Provider fetch completed", provider=label, count=len(articles))
        return articles

    def _label(self, params: FetchParams) -> str:
        return self.name

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        )

    async def _get(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> httpx.Response:
        """GET with rate limiting and retries on transport errors."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.settings.provider_retry_attempts),
            wait=wait_exponential(multiplier=0.5, max=4),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                acquired = await self.rate_limiter.acquire(
                    self.kind.value,
                    timeout=self.settings.rate_limit_wait_seconds,
                )
                if not acquired:
                    raise ProviderError(self.name, "rate limit wait exceeded")

                async with self._client() as client:
                    response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()

        return response
