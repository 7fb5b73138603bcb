"""
RSS/Atom feed adapter for supplementary section content.

Feeds are low priority: each is fetched with a short timeout and
parsed leniently, and a broken feed only costs its own items.
"""

from datetime import datetime, timezone
from typing import Optional, Union
from xml.etree import ElementTree

import structlog

from newsfeed.core.exceptions import ProviderError
from newsfeed.core.sections import RSSFeed
from newsfeed.models.domain import Article, ProviderKind
from newsfeed.sources.base import FetchParams, ProviderAdapter, clean_text

logger = structlog.get_logger(__name__)

# XML namespaces
ATOM_NS = "{http://www.w3.org/2005/Atom}"
DC_NS = "{http://purl.org/dc/elements/1.1/}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"
MEDIA_NS = "{http://search.yahoo.com/mrss/}"


def _text(elem: ElementTree.Element, path: str) -> str:
    return (elem.findtext(path) or "").strip()


def extract_image_url(item: ElementTree.Element) -> Optional[str]:
    """
    Find a thumbnail for a feed item.

    Checks media:content, then media:thumbnail, then enclosures
    (RSS <enclosure url> or Atom <link rel="enclosure" href>).
    """
    for media in item.iter(f"{MEDIA_NS}content"):
        if media.get("url"):
            return media.get("url")

    for thumbnail in item.iter(f"{MEDIA_NS}thumbnail"):
        if thumbnail.get("url"):
            return thumbnail.get("url")

    enclosure = item.find("enclosure")
    if enclosure is not None and enclosure.get("url"):
        return enclosure.get("url")

    for link in item.findall(f"{ATOM_NS}link"):
        if link.get("rel") == "enclosure" and link.get("href"):
            return link.get("href")

    return None


class RSSAdapter(ProviderAdapter):
    """
    RSS 2.0 / Atom feed adapter.

    One instance serves every feed; the feed to read is passed in
    FetchParams.feed.
    """

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.RSS

    @property
    def name(self) -> str:
        return "RSS"

    @property
    def timeout_seconds(self) -> float:
        return self.settings.rss.timeout_seconds

    def _label(self, params: FetchParams) -> str:
        if params.feed:
            return f"{self.name}:{params.feed.name}"
        return self.name

    async def _fetch(self, params: FetchParams) -> list[Article]:
        feed = params.feed
        if feed is None:
            raise ProviderError(self.name, "no feed configured for RSS fetch")

        response = await self._get(
            feed.url,
            headers={
                "User-Agent": self.settings.rss.user_agent,
                "Accept": "application/rss+xml, application/xml, text/xml, */*",
            },
        )

        try:
            return self.parse_feed(response.content, feed)
        except ElementTree.ParseError as e:
            raise ProviderError(self.name, f"malformed feed from {feed.name}: {e}")

    def parse_feed(self, xml_content: Union[str, bytes], feed: RSSFeed) -> list[Article]:
        """Parse an RSS 2.0 or Atom document into at most `max_items` articles."""
        root = ElementTree.fromstring(xml_content)

        if root.tag == f"{ATOM_NS}feed":
            items = root.findall(f"{ATOM_NS}entry")
            parse_item = self._parse_atom_entry
        else:
            items = root.findall(".//item")
            parse_item = self._parse_rss_item

        articles = []
        for item in items[: self.settings.rss.max_items]:
            try:
                article = parse_item(item, feed)
            except ValueError as e:
                logger.warning("Skipping unparseable feed item", feed=feed.name, error=str(e))
                continue
            if article:
                articles.append(article)

        return articles

    def _parse_rss_item(self, item: ElementTree.Element, feed: RSSFeed) -> Optional[Article]:
        """Parse a single RSS item."""
        title = clean_text(item.findtext("title"))
        link = _text(item, "link")
        if not title or not link:
            return None

        description = item.findtext("description") or ""
        content = item.findtext(f"{CONTENT_NS}encoded") or description
        published = _text(item, "pubDate") or _text(item, f"{DC_NS}date")

        return Article(
            title=title,
            description=clean_text(description),
            url=link,
            image_url=extract_image_url(item),
            published_at=published or datetime.now(timezone.utc).isoformat(),
            source=feed.name,
            content=clean_text(content),
            language=feed.language,
            provider=ProviderKind.RSS,
        )

    def _parse_atom_entry(self, entry: ElementTree.Element, feed: RSSFeed) -> Optional[Article]:
        """Parse a single Atom entry."""
        title = clean_text(entry.findtext(f"{ATOM_NS}title"))
        if not title:
            return None

        link = None
        for link_elem in entry.findall(f"{ATOM_NS}link"):
            if link_elem.get("rel", "alternate") == "alternate":
                link = link_elem.get("href")
                break
        if not link:
            return None

        summary = entry.findtext(f"{ATOM_NS}summary") or ""
        content = entry.findtext(f"{ATOM_NS}content") or summary
        published = _text(entry, f"{ATOM_NS}published") or _text(entry, f"{ATOM_NS}updated")

        return Article(
            title=title,
            description=clean_text(summary or content),
            url=link,
            image_url=extract_image_url(entry),
            published_at=published or datetime.now(timezone.utc).isoformat(),
            source=feed.name,
            content=clean_text(content),
            language=feed.language,
            provider=ProviderKind.RSS,
        )
