"""
Cache gateway - per-section storage of ranked feeds.

Each section's processed articles are stored as one JSON value under
`news:{section}` with a fixed TTL. Backend failures never reach callers:
reads degrade to a miss and writes are dropped, both with a warning.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from newsfeed.config import Settings, get_settings
from newsfeed.core.exceptions import CacheBackendError
from newsfeed.models.domain import NormalizedArticle

logger = structlog.get_logger(__name__)

_ARTICLES = TypeAdapter(list[NormalizedArticle])


class CacheBackend(ABC):
    """String key/value store with per-key expiry."""

    name: str = "cache"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        pass

    async def close(self) -> None:
        pass


class MemoryCacheBackend(CacheBackend):
    """In-process backend; entries expire lazily on read."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + ttl_seconds)

    async def close(self) -> None:
        self._entries.clear()


class RedisCacheBackend(CacheBackend):
    """Redis backend using `SET key value EX ttl`."""

    name = "redis"

    def __init__(self, url: Optional[str] = None, client: Optional[Redis] = None):
        if client is None and url is None:
            raise ValueError("RedisCacheBackend needs a url or a client")
        self._client = client if client is not None else Redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            raise CacheBackendError(f"redis get failed: {e}", {"key": key}) from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise CacheBackendError(f"redis set failed: {e}", {"key": key}) from e

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as e:
            logger.warning("Error closing redis connection", error=str(e))


def create_cache_backend(settings: Optional[Settings] = None) -> CacheBackend:
    """Redis when a URL is configured, otherwise in-process memory."""
    settings = settings or get_settings()
    if settings.redis_url:
        logger.info("Using redis cache backend")
        return RedisCacheBackend(url=settings.redis_url)

    logger.info("Using in-process cache backend")
    return MemoryCacheBackend()


class CacheGateway:
    """Reads and writes ranked section feeds."""

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend or create_cache_backend(self.settings)
        self.ttl_seconds = self.settings.cache_ttl_seconds
        self.key_prefix = self.settings.cache_key_prefix

    def key_for(self, section: str) -> str:
        return f"{self.key_prefix}{section}"

    async def get(self, section: str) -> Optional[list[NormalizedArticle]]:
        """
        Read a section's cached feed.

        Returns None on a miss, an expired or empty entry, an undecodable
        value, or a backend failure.
        """
        key = self.key_for(section)
        try:
            raw = await self.backend.get(key)
        except CacheBackendError as e:
            logger.warning("Cache read failed", key=key, error=e.message)
            return None

        if not raw:
            logger.debug("Cache miss", key=key)
            return None

        try:
            articles = _ARTICLES.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding undecodable cache entry", key=key, errors=e.error_count())
            return None

        if not articles:
            return None

        logger.debug("Cache hit", key=key, count=len(articles))
        return articles

    async def put(
        self,
        section: str,
        articles: list[NormalizedArticle],
        ttl: Optional[int] = None,
    ) -> None:
        """Store a section's feed. Empty feeds are never written."""
        if not articles:
            return

        key = self.key_for(section)
        payload = _ARTICLES.dump_json(articles).decode("utf-8")
        try:
            await self.backend.set(key, payload, ttl if ttl is not None else self.ttl_seconds)
        except CacheBackendError as e:
            logger.warning("Cache write failed", key=key, error=e.message)
            return

        logger.debug("Cached section feed", key=key, count=len(articles))

    async def close(self) -> None:
        await self.backend.close()
