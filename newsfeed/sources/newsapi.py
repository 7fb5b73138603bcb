"""
NewsAPI adapter for top headlines.
API docs: https://newsapi.org/docs/endpoints/top-headlines
"""
from typing import Optional

from newsfeed.core.exceptions import ProviderError
from newsfeed.models.domain import Article, ProviderKind
from newsfeed.sources.base import FetchParams, ProviderAdapter, clean_text

REMOVED_MARKER = "[Removed]"


class NewsAPIAdapter(ProviderAdapter):
    """Adapter for fetching headlines by category and country from NewsAPI."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.NEWSAPI

    @property
    def name(self) -> str:
        return "NewsAPI"

    @property
    def timeout_seconds(self) -> float:
        return self.settings.newsapi.timeout_seconds

    @property
    def enabled(self) -> bool:
        return self.settings.newsapi.enabled

    def _label(self, params: FetchParams) -> str:
        return f"{self.name}:{params.category or 'general'}"

    async def _fetch(self, params: FetchParams) -> list[Article]:
        config = self.settings.newsapi
        query = {
            "apiKey": config.api_key,
            "category": params.category or "general",
            "pageSize": config.page_size,
            "sortBy": "publishedAt",
        }
        if params.country:
            query["country"] = params.country
        if params.query:
            query["q"] = params.query

        response = await self._get(f"{config.base_url}/top-headlines", params=query)
        data = response.json()

        if data.get("status") != "ok":
            raise ProviderError(self.name, f"API error: {data.get('message')}", {"code": data.get("code")})

        articles = []
        for item in data.get("articles") or []:
            article = self._parse_article(item)
            if article:
                articles.append(article)

        return articles

    def _parse_article(self, item: dict) -> Optional[Article]:
        """Parse a NewsAPI article into our Article model."""
        title = clean_text(item.get("title"))
        if not title or title == REMOVED_MARKER:
            return None

        url = item.get("url")
        if not url:
            return None

        description = clean_text(item.get("description"))
        if description == REMOVED_MARKER:
            description = ""

        source = item.get("source") or {}

        return Article(
            title=title,
            description=description,
            url=url,
            image_url=item.get("urlToImage") or None,
            published_at=item.get("publishedAt") or "",
            source=source.get("name") or self.name,
            content=clean_text(item.get("content")),
            language="en",
            provider=ProviderKind.NEWSAPI,
        )
