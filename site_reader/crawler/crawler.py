# === FILE: site_reader/crawler/crawler.py ===
"""
Breadth-first site crawler.

Traversal is a single explicit loop over a FIFO frontier; one fetch is in
flight at a time. A URL is marked visited when it is dequeued, so the same
link may sit in the frontier more than once until its first dequeue; the
visited check at dequeue time collapses such duplicates.

The visited set holds normalized keys only. Pages are fetched, and their
relative links resolved, using the URL as it was written on the page.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Deque, List, Optional, Set
from urllib.parse import urldefrag

from site_reader.config import CrawlRequest
from site_reader.crawler.link_filter import base_domain, normalize_url, scoped_links
from site_reader.crawler.models import (
    CrawlError,
    CrawlResult,
    CrawlStats,
    FetchOptions,
    FrontierEntry,
    PageResult,
)
from site_reader.errors import InvalidStartUrl
from site_reader.fetcher import Fetcher

__all__ = ("SiteCrawler", "crawl")

# frontier + results may not grow past this multiple of max_pages
FRONTIER_FACTOR = 2


class SiteCrawler:
    """Обход сайта в ширину с ограничением по числу страниц, глубине и домену."""

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher
        self.logger = logging.getLogger("SiteReader")

    async def crawl(self, request: CrawlRequest) -> CrawlResult:
        """
        Run one crawl for *request*.

        Per-page fetch failures are logged and collected in ``errors``; only a
        malformed start URL raises (:class:`InvalidStartUrl`), before any fetch.
        """
        domain = base_domain(request.start_url)
        try:
            seed_url, _ = urldefrag(request.start_url)
            seed = FrontierEntry(seed_url, 0, normalize_url(seed_url))
        except ValueError as exc:
            raise InvalidStartUrl(request.start_url) from exc

        max_pages = request.max_pages
        max_depth = request.max_depth
        options = FetchOptions(
            render=request.render,
            screenshot=request.screenshot,
            include_links=True,
        )

        start = time.monotonic()
        visited: Set[str] = set()
        frontier: Deque[FrontierEntry] = deque([seed])
        results: List[PageResult] = []
        errors: List[CrawlError] = []
        links_discovered = 0

        self.logger.info(
            "Starting crawl of %s | Max Pages: %d | Max Depth: %d", seed.url, max_pages, max_depth
        )

        while frontier and len(results) < max_pages:
            entry = frontier.popleft()
            if entry.key in visited or entry.depth > max_depth:
                continue
            visited.add(entry.key)

            self.logger.info(
                "[%d/%d] Depth %d: %s", len(results) + 1, max_pages, entry.depth, entry.url
            )
            try:
                page = await self.fetcher(entry.url, options)
            except Exception as exc:
                self.logger.warning("Failed to scrape %s: %s", entry.url, exc)
                errors.append(CrawlError(entry.url, entry.depth, str(exc)))
                continue
            results.append(page)

            if entry.depth >= max_depth:
                continue

            links = scoped_links(page.links, entry.url, domain, request.allow_subdomains)
            links_discovered += len(links)
            self.logger.debug("%d in-scope links on %s", len(links), entry.url)

            # sorted for a deterministic frontier order
            for key in sorted(links):
                if key in visited:
                    continue
                if len(results) + len(frontier) >= max_pages * FRONTIER_FACTOR:
                    break
                frontier.append(FrontierEntry(links[key], entry.depth + 1, key))

        duration = time.monotonic() - start
        self.logger.info("Crawl complete: %d pages in %.2fs", len(results), duration)

        return CrawlResult(
            pages=tuple(results),
            stats=CrawlStats(
                pages_scraped=len(results),
                links_discovered=links_discovered,
                duration_seconds=duration,
            ),
            errors=tuple(errors),
        )


async def crawl(start_url: str, fetcher: Optional[Fetcher] = None, **options: Any) -> CrawlResult:
    """
    Crawl *start_url* with keyword *options* (``max_pages``, ``max_depth``,
    ``allow_subdomains``, ``render``, ``screenshot``).

    Without *fetcher* a :class:`~site_reader.fetcher.browser.BrowserFetcher`
    with default settings is used.
    """
    request = CrawlRequest(start_url=start_url, **options)
    if fetcher is None:
        from site_reader.fetcher.browser import BrowserFetcher

        fetcher = BrowserFetcher()
    return await SiteCrawler(fetcher).crawl(request)
