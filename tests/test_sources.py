"""
Tests for provider adapters.

These tests use httpx.MockTransport to verify request building and
parsing logic without requiring network access.
"""

from datetime import datetime, timedelta
from xml.etree import ElementTree

import httpx
import pytest

from newsfeed.config import NewsAPISettings, RSSSettings
from newsfeed.core.sections import RSSFeed
from newsfeed.models.domain import ProviderKind
from newsfeed.services.rate_limiter import RateLimiter
from newsfeed.sources import (
    FetchParams,
    MockAdapter,
    NaverAdapter,
    NewsAPIAdapter,
    RSSAdapter,
    XAdapter,
    clean_text,
)
from newsfeed.sources.mock import MOCK_DATA
from newsfeed.sources.naver import to_iso
from newsfeed.sources.rss import extract_image_url


SAMPLE_NEWSAPI_RESPONSE = {
    "status": "ok",
    "totalResults": 3,
    "articles": [
        {
            "source": {"id": "bbc-news", "name": "BBC News"},
            "title": "Chipmakers expand <b>AI</b> capacity",
            "description": "New fabs announced &amp; more to come.",
            "url": "https://example.com/chips",
            "urlToImage": "https://example.com/chips.jpg",
            "publishedAt": "2024-01-15T10:00:00Z",
            "content": "Full story here",
        },
        {
            "source": {"id": None, "name": "[Removed]"},
            "title": "[Removed]",
            "description": "[Removed]",
            "url": "https://removed.com",
            "publishedAt": "2024-01-15T09:00:00Z",
        },
        {
            "source": {"id": None, "name": "Wire"},
            "title": "No link story",
            "url": None,
            "publishedAt": "2024-01-15T08:00:00Z",
        },
    ],
}

SAMPLE_NAVER_RESPONSE = {
    "lastBuildDate": "Mon, 15 Jan 2024 20:00:00 +0900",
    "total": 2,
    "items": [
        {
            "title": "<b>삼성</b>전자, 신규 반도체 공장 착공",
            "originallink": "https://press.example.kr/123",
            "link": "https://n.news.naver.com/article/123",
            "description": "삼성전자가 &quot;차세대&quot; 공장을 착공했다.",
            "pubDate": "Mon, 15 Jan 2024 19:00:00 +0900",
        },
        {
            "title": "원문 링크만 있는 기사",
            "originallink": "https://press.example.kr/456",
            "link": "",
            "description": "설명",
            "pubDate": "Mon, 15 Jan 2024 18:00:00 +0900",
        },
    ],
}

LONG_POST = (
    "Breaking: a massive solar storm is lighting up skies across the northern hemisphere "
    "tonight, with auroras visible much further south than usual."
)

SAMPLE_X_RESPONSE = {
    "data": [
        {
            "id": "1746",
            "text": LONG_POST,
            "created_at": "2024-01-15T11:30:00.000Z",
            "public_metrics": {"retweet_count": 1200, "like_count": 9000, "reply_count": 40, "quote_count": 5},
        },
        {
            "id": "1747",
            "text": "Short post",
            "created_at": "2024-01-15T11:00:00.000Z",
        },
    ],
    "meta": {"result_count": 2},
}

SAMPLE_RSS_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>BBC News - World</title>
    <item>
      <title>Leaders meet for climate talks</title>
      <link>https://www.bbc.co.uk/news/world-1</link>
      <description><![CDATA[<p>Talks open in <b>Geneva</b>.</p>]]></description>
      <pubDate>Mon, 15 Jan 2024 09:00:00 GMT</pubDate>
      <media:thumbnail width="240" height="135" url="https://ichef.bbci.co.uk/1.jpg"/>
    </item>
    <item>
      <title>Ceasefire holds for a second day</title>
      <link>https://www.bbc.co.uk/news/world-2</link>
      <description>Aid convoys move in.</description>
      <dc:date>2024-01-15T08:00:00Z</dc:date>
      <enclosure url="https://ichef.bbci.co.uk/2.jpg" type="image/jpeg"/>
    </item>
    <item>
      <title></title>
      <link>https://www.bbc.co.uk/news/world-3</link>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM_RESPONSE = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>The Japan Times</title>
  <entry>
    <title>Yen steadies after intervention warning</title>
    <link rel="alternate" href="https://www.japantimes.co.jp/business/yen"/>
    <link rel="enclosure" href="https://www.japantimes.co.jp/yen.jpg"/>
    <summary>Officials signal readiness to act.</summary>
    <updated>2024-01-15T07:00:00Z</updated>
  </entry>
</feed>
"""

BBC = RSSFeed("BBC", "https://feeds.bbci.co.uk/news/world/rss.xml", "en")


def json_handler(payload, status_code=200, seen=None):
    """MockTransport handler returning a fixed JSON body and recording requests."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return handler


class TestCleanText:
    """Tests for text cleaning."""

    def test_inline_markup_does_not_split_words(self):
        assert clean_text("<b>삼성</b>전자 &amp; LG") == "삼성전자 & LG"

    def test_block_markup_becomes_space(self):
        assert clean_text("<p>Hello</p><p>World</p>") == "Hello World"

    def test_whitespace_and_truncation(self):
        assert clean_text("  a \n\n b  ") == "a b"
        assert len(clean_text("x" * 900)) == 500
        assert clean_text("abcdef", max_length=3) == "abc"

    def test_empty(self):
        assert clean_text(None) == ""
        assert clean_text("") == ""


class TestNewsAPIAdapter:
    """Tests for the NewsAPI adapter."""

    async def test_fetch_and_parse(self, settings, rate_limiter):
        seen = []
        adapter = NewsAPIAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(SAMPLE_NEWSAPI_RESPONSE, seen=seen)),
        )

        articles = await adapter.fetch(FetchParams(category="technology", country="us"))

        assert len(articles) == 1
        article = articles[0]
        assert article.title == "Chipmakers expand AI capacity"
        assert article.description == "New fabs announced & more to come."
        assert article.source == "BBC News"
        assert article.image_url == "https://example.com/chips.jpg"
        assert article.published_at == "2024-01-15T10:00:00Z"
        assert article.provider == ProviderKind.NEWSAPI
        assert article.language == "en"

        request = seen[0]
        assert request.url.path == "/v2/top-headlines"
        assert request.url.params["category"] == "technology"
        assert request.url.params["country"] == "us"
        assert request.url.params["apiKey"] == "test-newsapi-key"
        assert request.url.params["pageSize"] == "20"

    async def test_api_error_status_returns_empty(self, settings, rate_limiter):
        payload = {"status": "error", "code": "apiKeyInvalid", "message": "Your API key is invalid."}
        adapter = NewsAPIAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(payload)),
        )

        assert await adapter.fetch(FetchParams(category="general")) == []

    async def test_http_error_returns_empty(self, settings, rate_limiter):
        adapter = NewsAPIAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler({}, status_code=500)),
        )

        assert await adapter.fetch(FetchParams(category="general")) == []

    async def test_timeout_returns_empty(self, settings, rate_limiter):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = NewsAPIAdapter(settings=settings, rate_limiter=rate_limiter, transport=httpx.MockTransport(handler))

        assert await adapter.fetch(FetchParams(category="general")) == []

    async def test_disabled_without_key(self, settings, rate_limiter):
        seen = []
        disabled = settings.model_copy(update={"newsapi": NewsAPISettings(api_key="  ")})
        adapter = NewsAPIAdapter(
            settings=disabled,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(SAMPLE_NEWSAPI_RESPONSE, seen=seen)),
        )

        assert adapter.enabled is False
        assert await adapter.fetch(FetchParams(category="general")) == []
        assert seen == []

    async def test_retries_transport_errors(self, settings, rate_limiter):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=SAMPLE_NEWSAPI_RESPONSE)

        retrying = settings.model_copy(update={"provider_retry_attempts": 2})
        adapter = NewsAPIAdapter(settings=retrying, rate_limiter=rate_limiter, transport=httpx.MockTransport(handler))

        articles = await adapter.fetch(FetchParams(category="general"))

        assert len(attempts) == 2
        assert len(articles) == 1

    async def test_rate_limit_exhausted_skips_request(self, settings):
        seen = []
        limiter = RateLimiter({"newsapi": (1, 3600)})
        adapter = NewsAPIAdapter(
            settings=settings,
            rate_limiter=limiter,
            transport=httpx.MockTransport(json_handler(SAMPLE_NEWSAPI_RESPONSE, seen=seen)),
        )

        assert len(await adapter.fetch(FetchParams(category="general"))) == 1
        assert await adapter.fetch(FetchParams(category="general")) == []
        assert len(seen) == 1


class TestNaverAdapter:
    """Tests for the Naver adapter."""

    async def test_fetch_and_parse(self, settings, rate_limiter):
        seen = []
        adapter = NaverAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(SAMPLE_NAVER_RESPONSE, seen=seen)),
        )

        articles = await adapter.fetch(FetchParams(query="뉴스"))

        assert len(articles) == 2
        first = articles[0]
        assert first.title == "삼성전자, 신규 반도체 공장 착공"
        assert first.description == '삼성전자가 "차세대" 공장을 착공했다.'
        assert first.url == "https://n.news.naver.com/article/123"
        assert first.published_at == "2024-01-15T19:00:00+09:00"
        assert first.source == "네이버뉴스"
        assert first.language == "ko"
        assert first.provider == ProviderKind.NAVER

        # Falls back to the original link
        assert articles[1].url == "https://press.example.kr/456"

        request = seen[0]
        assert request.headers["X-Naver-Client-Id"] == "test-client-id"
        assert request.headers["X-Naver-Client-Secret"] == "test-client-secret"
        assert request.url.params["query"] == "뉴스"
        assert request.url.params["sort"] == "date"

    async def test_missing_items_returns_empty(self, settings, rate_limiter):
        adapter = NaverAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler({"errorMessage": "Authentication failed"})),
        )

        assert await adapter.fetch(FetchParams(query="뉴스")) == []

    def test_to_iso(self):
        assert to_iso("Mon, 15 Jan 2024 09:00:00 +0900") == "2024-01-15T09:00:00+09:00"
        assert to_iso("garbage") == "garbage"
        assert to_iso(None) == ""


class TestXAdapter:
    """Tests for the X adapter."""

    async def test_fetch_and_parse(self, settings, rate_limiter):
        seen = []
        adapter = XAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(SAMPLE_X_RESPONSE, seen=seen)),
        )

        articles = await adapter.fetch(FetchParams(query="breaking news"))

        assert len(articles) == 2
        post = articles[0]
        assert post.title == LONG_POST[:100] + "..."
        assert post.description == LONG_POST
        assert post.url == "https://twitter.com/i/web/status/1746"
        assert post.source == "X (Twitter)"
        assert post.metrics.engagement == 10200
        assert post.metrics.reply_count == 40

        short = articles[1]
        assert short.title == "Short post"
        assert short.metrics is None

        request = seen[0]
        assert request.url.path == "/2/tweets/search/recent"
        assert request.headers["Authorization"] == "Bearer test-bearer-token"
        assert request.url.params["max_results"] == "20"

    async def test_no_matches(self, settings, rate_limiter):
        adapter = XAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler({"meta": {"result_count": 0}})),
        )

        assert await adapter.fetch(FetchParams()) == []

    async def test_null_metric_counts(self, settings, rate_limiter):
        payload = {
            "data": [
                {
                    "id": "1748",
                    "text": "Quiet post",
                    "created_at": "2024-01-15T10:00:00.000Z",
                    "public_metrics": {"retweet_count": None, "like_count": 12},
                },
                SAMPLE_X_RESPONSE["data"][1],
            ]
        }
        adapter = XAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(json_handler(payload)),
        )

        articles = await adapter.fetch(FetchParams())

        assert [a.title for a in articles] == ["Quiet post", "Short post"]
        assert articles[0].metrics.retweet_count == 0
        assert articles[0].metrics.like_count == 12


class TestRSSAdapter:
    """Tests for RSS/Atom feeds."""

    def test_parse_rss(self, settings):
        adapter = RSSAdapter(settings=settings)
        articles = adapter.parse_feed(SAMPLE_RSS_RESPONSE, BBC)

        assert len(articles) == 2

        first = articles[0]
        assert first.title == "Leaders meet for climate talks"
        assert first.description == "Talks open in Geneva."
        assert first.url == "https://www.bbc.co.uk/news/world-1"
        assert first.published_at == "Mon, 15 Jan 2024 09:00:00 GMT"
        assert first.image_url == "https://ichef.bbci.co.uk/1.jpg"
        assert first.source == "BBC"
        assert first.provider == ProviderKind.RSS

        second = articles[1]
        assert second.published_at == "2024-01-15T08:00:00Z"
        assert second.image_url == "https://ichef.bbci.co.uk/2.jpg"

    def test_parse_atom(self, settings):
        adapter = RSSAdapter(settings=settings)
        feed = RSSFeed("Japan Times", "https://www.japantimes.co.jp/feed/", "en")

        articles = adapter.parse_feed(SAMPLE_ATOM_RESPONSE, feed)

        assert len(articles) == 1
        article = articles[0]
        assert article.title == "Yen steadies after intervention warning"
        assert article.url == "https://www.japantimes.co.jp/business/yen"
        assert article.description == "Officials signal readiness to act."
        assert article.published_at == "2024-01-15T07:00:00Z"
        assert article.image_url == "https://www.japantimes.co.jp/yen.jpg"

    def test_max_items(self, settings):
        items = "".join(
            f"<item><title>Story {i}</title><link>https://example.com/{i}</link></item>"
            for i in range(15)
        )
        xml = f"<rss><channel>{items}</channel></rss>"
        limited = settings.model_copy(update={"rss": RSSSettings(max_items=4)})

        articles = RSSAdapter(settings=limited).parse_feed(xml, BBC)

        assert [a.title for a in articles] == ["Story 0", "Story 1", "Story 2", "Story 3"]

    def test_extract_image_missing(self):
        item = ElementTree.fromstring("<item><title>No image</title></item>")
        assert extract_image_url(item) is None

    async def test_fetch(self, settings, rate_limiter):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text=SAMPLE_RSS_RESPONSE)

        adapter = RSSAdapter(settings=settings, rate_limiter=rate_limiter, transport=httpx.MockTransport(handler))

        articles = await adapter.fetch(FetchParams.for_feed(BBC))

        assert len(articles) == 2
        assert str(seen[0].url) == BBC.url
        assert "SectionFeed" in seen[0].headers["User-Agent"]

    async def test_malformed_feed_returns_empty(self, settings, rate_limiter):
        adapter = RSSAdapter(
            settings=settings,
            rate_limiter=rate_limiter,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<rss><channel><item>")),
        )

        assert await adapter.fetch(FetchParams.for_feed(BBC)) == []

    async def test_missing_feed_returns_empty(self, settings, rate_limiter):
        adapter = RSSAdapter(settings=settings, rate_limiter=rate_limiter)
        assert await adapter.fetch(FetchParams()) == []


class TestMockAdapter:
    """Tests for the built-in fallback set."""

    @pytest.mark.parametrize("section", sorted(MOCK_DATA))
    def test_every_section_has_articles(self, section):
        articles = MockAdapter().articles_for(section)

        assert articles
        assert all(a.provider == ProviderKind.MOCK for a in articles)

    def test_unknown_section_uses_default(self):
        titles = [a.title for a in MockAdapter().articles_for("sports")]
        assert titles == [t["title"] for t in MOCK_DATA["world"]]

    def test_timestamps_relative_to_now(self, now):
        articles = MockAdapter().articles_for("tech", now=now)
        expected = now - timedelta(hours=MOCK_DATA["tech"][0]["hours_ago"])

        assert datetime.fromisoformat(articles[0].published_at) == expected
