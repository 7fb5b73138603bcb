"""
Static section routing.

Each section declares, in order:
- the primary provider calls to make (keyed APIs)
- the RSS feeds appended afterwards as supplementary content

Declaration order matters: when two providers return the same story,
the copy from the earlier call survives deduplication.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional

from newsfeed.models.domain import ProviderKind

DEFAULT_SECTION = "world"
RSS_SOURCE_LABEL = "RSS (보조)"

PROVIDER_LABELS = {
    ProviderKind.NEWSAPI: "NewsAPI",
    ProviderKind.NAVER: "Naver API",
    ProviderKind.X: "X API",
}


@dataclass(frozen=True)
class ProviderCall:
    """One invocation of a keyed provider with its parameters."""

    kind: ProviderKind
    category: Optional[str] = None
    country: Optional[str] = None
    query: Optional[str] = None


@dataclass(frozen=True)
class RSSFeed:
    """A supplementary RSS/Atom feed."""

    name: str
    url: str
    language: str = "en"


@dataclass(frozen=True)
class Section:
    """A named news topic and how to fill it."""

    name: str
    tag: str
    calls: tuple[ProviderCall, ...] = ()
    feeds: tuple[RSSFeed, ...] = ()

    def provider_kinds(self) -> list[ProviderKind]:
        """Distinct provider kinds used by primary calls, in call order."""
        kinds: list[ProviderKind] = []
        for call in self.calls:
            if call.kind not in kinds:
                kinds.append(call.kind)
        return kinds


DEFAULT_SECTIONS: tuple[Section, ...] = (
    Section(
        name="world",
        tag="국제",
        calls=(
            ProviderCall(ProviderKind.NEWSAPI, category="general", country="us,gb,ca,au"),
        ),
        feeds=(
            RSSFeed("BBC", "https://feeds.bbci.co.uk/news/world/rss.xml", "en"),
            RSSFeed("Reuters", "https://feeds.reuters.com/reuters/worldNews", "en"),
        ),
    ),
    Section(
        name="kr",
        tag="한국",
        calls=(
            ProviderCall(ProviderKind.NAVER, query="뉴스"),
        ),
        feeds=(
            RSSFeed("KBS", "https://world.kbs.co.kr/rss/rss_news.htm?lang=k", "ko"),
        ),
    ),
    Section(
        name="japan",
        tag="일본",
        calls=(
            ProviderCall(ProviderKind.NEWSAPI, category="general", country="jp"),
        ),
        feeds=(
            RSSFeed("NHK", "https://www3.nhk.or.jp/rss/news/cat0.xml", "ja"),
            RSSFeed("Japan Times", "https://www.japantimes.co.jp/feed/", "en"),
        ),
    ),
    Section(
        name="tech",
        tag="기술",
        calls=(
            ProviderCall(ProviderKind.NEWSAPI, category="technology", country="us"),
        ),
    ),
    Section(
        name="business",
        tag="경제",
        calls=(
            ProviderCall(ProviderKind.NEWSAPI, category="business", country="us"),
        ),
    ),
    Section(
        name="buzz",
        tag="버즈",
        calls=(
            ProviderCall(ProviderKind.X, query="breaking news OR trending -is:retweet lang:en"),
            ProviderCall(ProviderKind.NEWSAPI, category="entertainment", country="us"),
        ),
    ),
)


@dataclass
class SectionRouter:
    """Maps section names to their provider calls and feeds."""

    sections: dict[str, Section] = field(default_factory=dict)
    default_section: str = DEFAULT_SECTION

    def __post_init__(self):
        if self.default_section not in self.sections:
            raise ValueError(f"Default section '{self.default_section}' is not declared")

    @classmethod
    def from_sections(
        cls,
        sections: tuple[Section, ...] | list[Section],
        default_section: str = DEFAULT_SECTION,
    ) -> "SectionRouter":
        return cls(
            sections={s.name: s for s in sections},
            default_section=default_section,
        )

    def resolve(self, section_name: Optional[str]) -> Section:
        """Get a section by name, falling back to the default section."""
        key = (section_name or "").strip().lower()
        return self.sections.get(key) or self.sections[self.default_section]

    def route(self, section_name: Optional[str]) -> list[ProviderCall]:
        """Primary provider calls for a section, in declared order."""
        return list(self.resolve(section_name).calls)

    def rss_feeds(self, section_name: Optional[str]) -> list[RSSFeed]:
        """Supplementary feeds for a section, in declared order."""
        return list(self.resolve(section_name).feeds)

    def is_known(self, section_name: Optional[str]) -> bool:
        return (section_name or "").strip().lower() in self.sections

    @property
    def names(self) -> list[str]:
        return list(self.sections.keys())

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections.values())


def build_router() -> SectionRouter:
    """Build the router for the built-in sections."""
    return SectionRouter.from_sections(DEFAULT_SECTIONS)


# Global router instance
ROUTER = build_router()


def get_router() -> SectionRouter:
    """Get the global section router."""
    return ROUTER
