"""
Naver news search adapter for domestic (Korean) news.
API docs: https://developers.naver.com/docs/serviceapi/search/news/news.md
"""
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from newsfeed.models.domain import Article, ProviderKind
from newsfeed.sources.base import FetchParams, ProviderAdapter, clean_text

DEFAULT_QUERY = "뉴스"
SOURCE_NAME = "네이버뉴스"


def to_iso(date_str: Optional[str]) -> str:
    """Convert an RFC 822 date to ISO 8601, keeping the input if it won't parse."""
    if not date_str:
        return ""
    try:
        parsed = parsedate_to_datetime(date_str)
    except (TypeError, ValueError):
        return date_str
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


class NaverAdapter(ProviderAdapter):
    """Adapter for the Naver news search API (client id/secret auth)."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.NAVER

    @property
    def name(self) -> str:
        return "Naver"

    @property
    def timeout_seconds(self) -> float:
        return self.settings.naver.timeout_seconds

    @property
    def enabled(self) -> bool:
        return self.settings.naver.enabled

    async def _fetch(self, params: FetchParams) -> list[Article]:
        config = self.settings.naver
        response = await self._get(
            config.base_url,
            params={
                "query": params.query or DEFAULT_QUERY,
                "display": config.display,
                "start": 1,
                "sort": "date",
            },
            headers={
                "X-Naver-Client-Id": config.client_id,
                "X-Naver-Client-Secret": config.client_secret,
            },
        )
        data = response.json()

        articles = []
        for item in data["items"]:
            article = self._parse_item(item)
            if article:
                articles.append(article)

        return articles

    def _parse_item(self, item: dict) -> Optional[Article]:
        title = clean_text(item.get("title"))
        url = item.get("link") or item.get("originallink")
        if not title or not url:
            return None

        description = clean_text(item.get("description"))

        return Article(
            title=title,
            description=description,
            url=url,
            image_url=None,
            published_at=to_iso(item.get("pubDate")),
            source=SOURCE_NAME,
            content=description,
            language="ko",
            provider=ProviderKind.NAVER,
        )
