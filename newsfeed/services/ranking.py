"""
Merge/rank engine - turns a section's raw articles into its display feed.

Pipeline, in order:
1. Dedup: titles agreeing case-insensitively on their first 50 characters
   are the same story; the first one seen wins, so provider order decides
   which copy survives
2. Filter: drop articles without a title or URL
3. Sort: newest first; unparseable timestamps count as the epoch and sink
   to the bottom, ties keep their merge order
4. Score: 3.0 base plus provider trust, recency, keyword urgency and
   engagement bonuses, clamped to [1.0, 5.0]
5. Tag: source, section, provider class, content keywords, freshness
6. Derive a stable id and a relative-age label

Everything that depends on the clock takes an explicit `now`, so a fixed
input order and a fixed `now` always produce the same feed.
"""
import hashlib
import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

import structlog

from newsfeed.core.sections import Section, SectionRouter, get_router
from newsfeed.models.domain import Article, NormalizedArticle, ProviderKind

logger = structlog.get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DEDUP_PREFIX_LENGTH = 50
ID_LENGTH = 12
MAX_TAGS = 4

BASE_SCORE = 3.0
MIN_SCORE = 1.0
MAX_SCORE = 5.0

# Regionally-curated and real-time providers are trusted over generic aggregators
PROVIDER_WEIGHTS = {
    ProviderKind.NEWSAPI: 0.3,
    ProviderKind.NAVER: 0.5,
    ProviderKind.X: 0.7,
}

# (max age in hours, bonus); first match wins
RECENCY_BONUSES = (
    (2, 0.8),
    (6, 0.4),
    (24, 0.2),
)

URGENT_KEYWORDS = ("breaking", "urgent", "긴급")
URGENT_BONUS = 1.0
IMPORTANT_KEYWORDS = ("important", "major", "중요")
IMPORTANT_BONUS = 0.6

# Cumulative: both apply above the higher threshold
ENGAGEMENT_BONUSES = (
    (1_000, 0.5),
    (10_000, 0.8),
)

PROVIDER_TAGS = {
    ProviderKind.X: "실시간",
    ProviderKind.NEWSAPI: "해외",
    ProviderKind.NAVER: "국내",
}

KEYWORD_TAGS = (
    ("긴급", ("breaking", "긴급")),
    ("중요", ("important", "중요")),
    ("Hot", ("trending", "viral")),
)

JUST_NOW_HOURS = 2
JUST_NOW_TAG = "방금"

UNKNOWN_DATE_LABEL = "날짜 미상"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a provider timestamp (ISO 8601 or RFC 822) into an aware datetime.

    Naive timestamps are taken as UTC. Returns None when unparseable.
    """
    if not value or not value.strip():
        return None
    value = value.strip()

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError, IndexError):
            return None
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def dedup_key(article: Article) -> str:
    return (article.title or "").lower()[:DEDUP_PREFIX_LENGTH]


def deduplicate(articles: list[Article]) -> list[Article]:
    """Keep the first article for each title prefix, preserving input order."""
    seen: set[str] = set()
    unique: list[Article] = []

    for article in articles:
        key = dedup_key(article)
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)

    return unique


def sort_by_recency(articles: list[Article]) -> list[Article]:
    """Newest first. sorted() is stable, so equal timestamps keep input order."""
    return sorted(
        articles,
        key=lambda a: parse_timestamp(a.published_at) or EPOCH,
        reverse=True,
    )


def hours_since(published: datetime, now: datetime) -> float:
    return (now - published).total_seconds() / 3600


def format_time_ago(published: Optional[datetime], now: datetime) -> str:
    """Korean relative-age label, or a calendar date beyond a week."""
    if published is None:
        return UNKNOWN_DATE_LABEL

    diff_seconds = (now - published).total_seconds()
    if diff_seconds < 0:
        return "방금 전"

    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 1:
        return "방금 전"
    if minutes < 60:
        return f"{minutes}분 전"
    if hours < 24:
        return f"{hours}시간 전"
    if days < 7:
        return f"{days}일 전"

    return f"{published.year}년 {published.month}월 {published.day}일"


def article_id(url: str) -> str:
    """Stable short identifier derived from the URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:ID_LENGTH]


def _round_half_up(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


class RankingService:
    """Deduplicates, sorts, scores and tags a section's articles."""

    def __init__(self, router: Optional[SectionRouter] = None):
        self.router = router or get_router()

    def compute_score(self, article: Article, now: datetime) -> float:
        """
        Quality score in [1.0, 5.0], rounded to one decimal.

        - Provider: NewsAPI +0.3, Naver +0.5, X +0.7
        - Recency: < 2h +0.8, < 6h +0.4, < 24h +0.2
        - Keywords: urgent/breaking +1.0, important/major +0.6
        - Engagement: > 1,000 +0.5, > 10,000 another +0.8
        """
        rating = BASE_SCORE + PROVIDER_WEIGHTS.get(article.provider, 0.0)

        published = parse_timestamp(article.published_at)
        if published is not None:
            age_hours = hours_since(published, now)
            for max_hours, bonus in RECENCY_BONUSES:
                if age_hours < max_hours:
                    rating += bonus
                    break

        text = f"{article.title} {article.description}".lower()
        if _contains_any(text, URGENT_KEYWORDS):
            rating += URGENT_BONUS
        if _contains_any(text, IMPORTANT_KEYWORDS):
            rating += IMPORTANT_BONUS

        if article.metrics is not None:
            engagement = article.metrics.engagement
            for threshold, bonus in ENGAGEMENT_BONUSES:
                if engagement > threshold:
                    rating += bonus

        return min(MAX_SCORE, max(MIN_SCORE, _round_half_up(rating)))

    def generate_tags(self, article: Article, section: Section, now: datetime) -> list[str]:
        """At most four unique tags, in first-seen order."""
        tags = [article.source, section.tag]

        if provider_tag := PROVIDER_TAGS.get(article.provider):
            tags.append(provider_tag)

        text = f"{article.title} {article.description}".lower()
        for tag, keywords in KEYWORD_TAGS:
            if _contains_any(text, keywords):
                tags.append(tag)

        published = parse_timestamp(article.published_at)
        if published is not None and hours_since(published, now) < JUST_NOW_HOURS:
            tags.append(JUST_NOW_TAG)

        return list(dict.fromkeys(tag for tag in tags if tag))[:MAX_TAGS]

    def normalize(self, article: Article, section: Section, now: datetime) -> NormalizedArticle:
        """Derive the display fields for one article."""
        return NormalizedArticle(
            **article.model_dump(),
            id=article_id(article.url),
            time_ago=format_time_ago(parse_timestamp(article.published_at), now),
            score=self.compute_score(article, now),
            tags=self.generate_tags(article, section, now),
            # Identity passthrough: content is shown in its original language
            display_title=article.title,
            display_description=article.description,
        )

    def process(
        self,
        articles: list[Article],
        section: Union[Section, str],
        now: Optional[datetime] = None,
    ) -> list[NormalizedArticle]:
        """
        Merge a section's articles into its ranked feed.

        Args:
            articles: Raw articles in canonical merge order
            section: Section (or section name) the feed is built for
            now: Reference time for recency; defaults to the current time

        Returns:
            Normalized articles, newest first
        """
        if isinstance(section, str):
            section = self.router.resolve(section)
        now = now or datetime.now(timezone.utc)

        unique = deduplicate(articles)
        complete = [a for a in unique if a.title and a.url]
        ordered = sort_by_recency(complete)
        processed = [self.normalize(a, section, now) for a in ordered]

        logger.info(
            "Processed articles",
            section=section.name,
            received=len(articles),
            duplicates=len(articles) - len(unique),
            output=len(processed),
        )
        return processed
