"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class NewsAPISettings(BaseSettings):
    """Credentials and limits for the NewsAPI top-headlines endpoint."""

    model_config = SettingsConfigDict(
        env_prefix="NEWSAPI_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://newsapi.org/v2")
    timeout_seconds: float = Field(default=10.0, gt=0)
    page_size: int = Field(default=20, ge=1, le=100)

    @field_validator("api_key", mode="before")
    @classmethod
    def normalize_key(cls, v):
        return _blank_to_none(v)

    @property
    def enabled(self) -> bool:
        return self.api_key is not None


class NaverSettings(BaseSettings):
    """Credentials and limits for the Naver news search API."""

    model_config = SettingsConfigDict(
        env_prefix="NAVER_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://openapi.naver.com/v1/search/news.json")
    timeout_seconds: float = Field(default=10.0, gt=0)
    display: int = Field(default=20, ge=1, le=100)

    @field_validator("client_id", "client_secret", mode="before")
    @classmethod
    def normalize_credentials(cls, v):
        return _blank_to_none(v)

    @property
    def enabled(self) -> bool:
        return self.client_id is not None and self.client_secret is not None


class XSettings(BaseSettings):
    """Credentials and limits for the X (Twitter) v2 recent search API."""

    model_config = SettingsConfigDict(
        env_prefix="X_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bearer_token: Optional[str] = Field(default=None)
    base_url: str = Field(default="https://api.twitter.com/2")
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_results: int = Field(
        default=20,
        ge=10,
        le=100,
        description="The recent search endpoint rejects values below 10",
    )

    @field_validator("bearer_token", mode="before")
    @classmethod
    def normalize_token(cls, v):
        return _blank_to_none(v)

    @property
    def enabled(self) -> bool:
        return self.bearer_token is not None


class RSSSettings(BaseSettings):
    """Limits for supplementary RSS feeds."""

    model_config = SettingsConfigDict(
        env_prefix="RSS_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timeout_seconds: float = Field(default=8.0, gt=0)
    max_items: int = Field(
        default=10,
        ge=1,
        description="Items parsed from a single feed document",
    )
    items_per_feed: int = Field(
        default=5,
        ge=1,
        description="Items a single feed may contribute to a section",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; SectionFeed/1.0)",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Section News Feed"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Cache
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL; an in-process cache is used when unset",
    )
    cache_ttl_seconds: int = Field(default=600, ge=1)
    cache_key_prefix: str = Field(default="news:")

    # Feed
    feed_page_size: int = Field(default=20, ge=1, le=100)

    # Scheduler
    scheduler_enabled: bool = Field(default=True)
    refresh_interval_seconds: int = Field(default=600, ge=1)
    refresh_initial_delay_seconds: int = Field(default=30, ge=0)

    # Provider requests
    provider_retry_attempts: int = Field(default=2, ge=1, le=5)
    rate_limit_wait_seconds: float = Field(default=30.0, ge=0)

    # Providers (nested)
    newsapi: NewsAPISettings = Field(default_factory=NewsAPISettings)
    naver: NaverSettings = Field(default_factory=NaverSettings)
    x: XSettings = Field(default_factory=XSettings)
    rss: RSSSettings = Field(default_factory=RSSSettings)

    @field_validator("redis_url", mode="before")
    @classmethod
    def normalize_redis_url(cls, v):
        return _blank_to_none(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
