"""
Rate limiting for provider requests.

Keeps scheduled refreshes and client-driven fetches inside each
provider's quota.
"""

import asyncio
import time
from collections import defaultdict
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter with per-provider tracking.

    Each provider key has its own lock, so a provider that is being
    throttled never delays requests to another provider.
    """

    # Default limits per provider (requests, period_seconds)
    DEFAULT_LIMITS = {
        "newsapi": (60, 3600),    # developer plan is 100/day; keep well below
        "naver": (10, 1),         # 10 per second
        "x": (60, 900),           # recent search, app auth
        "rss": (10, 1),
        "default": (60, 60),
    }

    def __init__(self, limits: Optional[dict[str, tuple[int, int]]] = None):
        self._request_times: dict[str, list[float]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._custom_limits: dict[str, tuple[int, int]] = dict(limits or {})

    def set_limit(self, key: str, requests: int, period_seconds: int):
        """Set a custom rate limit for a provider key."""
        self._custom_limits[key] = (requests, period_seconds)

    def _get_limit(self, key: str) -> tuple[int, int]:
        if key in self._custom_limits:
            return self._custom_limits[key]
        return self.DEFAULT_LIMITS.get(key, self.DEFAULT_LIMITS["default"])

    async def acquire(self, key: str, timeout: Optional[float] = 30.0) -> bool:
        """
        Acquire permission to make a request.

        Args:
            key: Provider key
            timeout: Max seconds to wait (None = wait forever)

        Returns:
            True if acquired, False if the wait would exceed the timeout
        """
        start = time.monotonic()
        max_requests, period_seconds = self._get_limit(key)

        async with self._locks[key]:
            while True:
                now = time.monotonic()
                cutoff = now - period_seconds

                self._request_times[key] = [
                    t for t in self._request_times[key] if t > cutoff
                ]

                if len(self._request_times[key]) < max_requests:
                    self._request_times[key].append(now)
                    return True

                oldest = min(self._request_times[key])
                wait_seconds = oldest + period_seconds - now

                if timeout is not None and (now - start) + wait_seconds > timeout:
                    logger.warning(
                        "Rate limit wait exceeds timeout",
                        provider=key,
                        wait_seconds=round(wait_seconds, 1),
                    )
                    return False

                logger.debug("Rate limited, waiting", provider=key, wait_seconds=round(wait_seconds, 1))
                await asyncio.sleep(min(wait_seconds + 0.1, 1.0))

    def get_status(self, key: str) -> dict:
        """Get current rate limit status for a provider key."""
        max_requests, period_seconds = self._get_limit(key)
        cutoff = time.monotonic() - period_seconds
        recent = [t for t in self._request_times[key] if t > cutoff]

        return {
            "provider": key,
            "max_requests": max_requests,
            "period_seconds": period_seconds,
            "current_requests": len(recent),
            "available": max_requests - len(recent),
        }

    def get_all_status(self) -> list[dict]:
        """Get status for all tracked provider keys."""
        keys = set(self._request_times.keys()) | set(self._custom_limits.keys())
        return [self.get_status(k) for k in sorted(keys)]


# Global rate limiter instance
_global_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance."""
    global _global_limiter
    if _global_limiter is None:
        _global_limiter = RateLimiter()
    return _global_limiter
