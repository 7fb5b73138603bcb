"""
Provider adapters for the section news feed.
"""
from newsfeed.sources.base import FetchParams, ProviderAdapter, clean_text
from newsfeed.sources.mock import MockAdapter, get_mock_adapter
from newsfeed.sources.naver import NaverAdapter
from newsfeed.sources.newsapi import NewsAPIAdapter
from newsfeed.sources.rss import RSSAdapter
from newsfeed.sources.x import XAdapter

__all__ = [
    "FetchParams",
    "ProviderAdapter",
    "clean_text",
    "NewsAPIAdapter",
    "NaverAdapter",
    "XAdapter",
    "RSSAdapter",
    "MockAdapter",
    "get_mock_adapter",
]
