# site_reader/crawler/__init__.py
"""Breadth-first site crawler: frontier engine, link scope filter and data models."""
from site_reader.crawler.models import (
    CrawlError,
    CrawlResult,
    CrawlStats,
    FetchOptions,
    FrontierEntry,
    PageResult,
)
from site_reader.crawler.link_filter import base_domain, filter_links, normalize_url, scoped_links
from site_reader.crawler.crawler import SiteCrawler, crawl

__all__ = [
    "CrawlError",
    "CrawlResult",
    "CrawlStats",
    "FetchOptions",
    "FrontierEntry",
    "PageResult",
    "SiteCrawler",
    "base_domain",
    "crawl",
    "filter_links",
    "normalize_url",
    "scoped_links",
]
