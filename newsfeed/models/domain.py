"""
Domain models for the section news feed.
These are the core entities, independent of provider or API representation.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class ProviderKind(str, Enum):
    """Providers an article can come from."""
    NEWSAPI = "newsapi"
    NAVER = "naver"
    X = "x"
    RSS = "rss"
    MOCK = "mock"


# =============================================================================
# Articles
# =============================================================================

class EngagementMetrics(BaseModel):
    """Public engagement counters supplied by social providers."""
    model_config = ConfigDict(frozen=True)

    retweet_count: int = 0
    like_count: int = 0
    reply_count: int = 0
    quote_count: int = 0

    @property
    def engagement(self) -> int:
        return self.retweet_count + self.like_count


class Article(BaseModel):
    """
    Article as returned by a provider adapter.

    Text fields are already cleaned; the timestamp is kept in the
    provider's own format and parsed only when ranking.
    """
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    url: str
    image_url: Optional[str] = None
    published_at: str = ""
    source: str
    content: str = ""
    language: str = Field(default="en", min_length=2, max_length=2)
    provider: ProviderKind
    metrics: Optional[EngagementMetrics] = None


class NormalizedArticle(Article):
    """A scored, tagged article ready for display."""

    id: str
    time_ago: str
    score: float = Field(ge=1.0, le=5.0)
    tags: list[str] = Field(default_factory=list, max_length=4)

    # Display copies; no translation is performed
    display_title: str
    display_description: str = ""


# =============================================================================
# Responses
# =============================================================================

class SectionFeed(BaseModel):
    """Feed returned for one section."""
    section: str
    articles: list[NormalizedArticle] = Field(default_factory=list)
    total: int = 0
    from_cache: bool = False
    is_fallback: bool = False
    is_fallback_mock: bool = False
    generated_at: datetime
    sources: list[str] = Field(default_factory=list)
