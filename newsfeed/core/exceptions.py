"""Application exceptions carrying an error code and structured details."""

from typing import Any, Dict, Optional


class NewsFeedError(Exception):
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ProviderError(NewsFeedError):
    def __init__(self, provider: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"{provider}: {message}",
            error_code="PROVIDER_ERROR",
            details={"provider": provider, **(details or {})}
        )
        self.provider = provider


class CacheBackendError(NewsFeedError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CACHE_BACKEND_ERROR",
            details=details
        )
