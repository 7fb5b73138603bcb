"""
Built-in fallback articles.
Served only when neither providers nor the cache have anything for a
section, so the response is degraded but never empty.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from newsfeed.models.domain import Article, ProviderKind

# Templates per section; hours_ago is relative to the time of the request
MOCK_DATA = {
    "world": [
        {
            "title": "Global Climate Summit Reaches Historic Agreement",
            "description": "World leaders announce breakthrough climate policies to combat global warming.",
            "url": "https://example.com/climate-summit",
            "source": "NewsAPI",
            "hours_ago": 2,
            "language": "en",
        },
        {
            "title": "UN Security Council Convenes Emergency Session",
            "description": "Members meet to discuss a ceasefire proposal as regional tensions rise.",
            "url": "https://example.com/un-emergency-session",
            "source": "BBC",
            "hours_ago": 5,
            "language": "en",
        },
    ],
    "kr": [
        {
            "title": "한국은행, 기준금리 동결 결정",
            "description": "한국은행 금융통화위원회가 물가와 성장 흐름을 고려해 기준금리를 동결했습니다.",
            "url": "https://example.com/kr-base-rate",
            "source": "네이버뉴스",
            "hours_ago": 1,
            "language": "ko",
        },
    ],
    "japan": [
        {
            "title": "Japan Unveils New Economic Stimulus Package",
            "description": "The government outlines spending to support households facing higher prices.",
            "url": "https://example.com/japan-stimulus",
            "source": "NHK",
            "hours_ago": 3,
            "language": "en",
        },
    ],
    "tech": [
        {
            "title": "Chipmakers Race to Expand AI Accelerator Production",
            "description": "Major manufacturers announce new fabs as demand for AI hardware keeps climbing.",
            "url": "https://example.com/ai-accelerators",
            "source": "NewsAPI",
            "hours_ago": 4,
            "language": "en",
        },
    ],
    "business": [
        {
            "title": "Markets Rally as Inflation Cools",
            "description": "Stocks climb after new data shows consumer prices rising more slowly than expected.",
            "url": "https://example.com/markets-rally",
            "source": "NewsAPI",
            "hours_ago": 6,
            "language": "en",
        },
    ],
    "buzz": [
        {
            "title": "Trending: Surprise Album Drop Breaks Streaming Records",
            "description": "Fans flooded streaming platforms within hours of the unannounced release.",
            "url": "https://example.com/album-drop",
            "source": "X (Twitter)",
            "hours_ago": 1,
            "language": "en",
        },
    ],
}

DEFAULT_SECTION_KEY = "world"


class MockAdapter:
    """Produces the fallback article set for a section without network access."""

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.MOCK

    @property
    def name(self) -> str:
        return "Mock"

    def articles_for(self, section: str, now: Optional[datetime] = None) -> list[Article]:
        """Build fallback articles for a section, using the default set for unknown ones."""
        now = now or datetime.now(timezone.utc)
        templates = MOCK_DATA.get(section) or MOCK_DATA[DEFAULT_SECTION_KEY]

        return [
            Article(
                title=template["title"],
                description=template["description"],
                url=template["url"],
                published_at=(now - timedelta(hours=template["hours_ago"])).isoformat(),
                source=template["source"],
                content=template["description"],
                language=template["language"],
                provider=ProviderKind.MOCK,
            )
            for template in templates
        ]


_mock_adapter: Optional[MockAdapter] = None


def get_mock_adapter() -> MockAdapter:
    """Get the shared mock adapter instance."""
    global _mock_adapter
    if _mock_adapter is None:
        _mock_adapter = MockAdapter()
    return _mock_adapter
