# site_reader/crawler/models.py
"""
Data models for the SiteReader crawler and fetchers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class FetchOptions:
    """Options passed to a fetcher for one page."""

    render: bool = False
    screenshot: bool = False
    include_links: bool = False
    wait_for: Optional[str] = None


@dataclass(slots=True, frozen=True)
class FrontierEntry:
    """
    A discovered URL waiting in the crawl frontier, with its hop count from the seed.

    ``url`` is fetched as written; ``key`` is its normalized form for the visited set.
    """

    url: str
    depth: int
    key: str


@dataclass(slots=True)
class PageResult:
    """Cleaned content of one fetched page."""

    title: str
    content: str
    text_content: str
    url: str
    byline: Optional[str] = None
    site_name: Optional[str] = None
    screenshot: Optional[str] = None
    links: List[str] = field(default_factory=list)
    # JSON-LD blobs, passed through as-is
    schema: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "content": self.content,
            "textContent": self.text_content,
            "byline": self.byline,
            "siteName": self.site_name,
            "url": self.url,
            "links": list(self.links),
            "schema": list(self.schema),
        }
        if self.screenshot is not None:
            data["screenshot"] = self.screenshot
        return data


@dataclass(slots=True, frozen=True)
class CrawlError:
    """A page that was dequeued but could not be fetched."""

    url: str
    depth: int
    message: str


@dataclass(slots=True, frozen=True)
class CrawlStats:
    pages_scraped: int
    links_discovered: int
    duration_seconds: float


@dataclass(slots=True, frozen=True)
class CrawlResult:
    """Final outcome of a crawl: pages in fetch order plus run statistics."""

    pages: tuple[PageResult, ...]
    stats: CrawlStats
    errors: tuple[CrawlError, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": [p.to_dict() for p in self.pages],
            "stats": {
                "pagesScraped": self.stats.pages_scraped,
                "linksDiscovered": self.stats.links_discovered,
                "duration": round(self.stats.duration_seconds, 3),
            },
            "errors": [{"url": e.url, "depth": e.depth, "error": e.message} for e in self.errors],
        }
