"""
X (Twitter) v2 recent search adapter for real-time buzz.
API docs: https://developer.x.com/en/docs/x-api/tweets/search/api-reference/get-tweets-search-recent
"""
from typing import Optional

from newsfeed.models.domain import Article, EngagementMetrics, ProviderKind
from newsfeed.sources.base import FetchParams, ProviderAdapter, clean_text

DEFAULT_QUERY = "breaking news OR trending -is:retweet lang:en"
SOURCE_NAME = "X (Twitter)"
TITLE_LENGTH = 100


class XAdapter(ProviderAdapter):
    """Adapter for short-text social search; posts carry engagement metrics."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.X

    @property
    def name(self) -> str:
        return "X"

    @property
    def timeout_seconds(self) -> float:
        return self.settings.x.timeout_seconds

    @property
    def enabled(self) -> bool:
        return self.settings.x.enabled

    async def _fetch(self, params: FetchParams) -> list[Article]:
        config = self.settings.x
        response = await self._get(
            f"{config.base_url}/tweets/search/recent",
            params={
                "query": params.query or DEFAULT_QUERY,
                "max_results": config.max_results,
                "tweet.fields": "created_at,public_metrics,context_annotations",
                "user.fields": "name,username,verified",
                "expansions": "author_id",
            },
            headers={"Authorization": f"Bearer {config.bearer_token}"},
        )
        data = response.json()

        # No matches comes back without a "data" key
        posts = data.get("data") or []

        articles = []
        for post in posts:
            article = self._parse_post(post)
            if article:
                articles.append(article)

        return articles

    def _parse_post(self, post: dict) -> Optional[Article]:
        text = clean_text(post.get("text"))
        post_id = post.get("id")
        if not text or not post_id:
            return None

        title = text[:TITLE_LENGTH] + ("..." if len(text) > TITLE_LENGTH else "")

        metrics = None
        if public_metrics := post.get("public_metrics"):
            metrics = EngagementMetrics(
                retweet_count=public_metrics.get("retweet_count") or 0,
                like_count=public_metrics.get("like_count") or 0,
                reply_count=public_metrics.get("reply_count") or 0,
                quote_count=public_metrics.get("quote_count") or 0,
            )

        return Article(
            title=title,
            description=text,
            url=f"https://twitter.com/i/web/status/{post_id}",
            image_url=None,
            published_at=post.get("created_at") or "",
            source=SOURCE_NAME,
            content=text,
            language="en",
            provider=ProviderKind.X,
            metrics=metrics,
        )
