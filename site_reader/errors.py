# site_reader/errors.py
"""
Exception hierarchy for SiteReader.
"""
from __future__ import annotations


class SiteReaderError(Exception):
    """Base class for all errors raised by SiteReader."""


class InvalidStartUrl(SiteReaderError, ValueError):
    """The crawl seed URL has no usable scheme or host."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid start URL: {url!r}")
        self.url = url


class FetchError(SiteReaderError):
    """A single page could not be fetched or extracted."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.reason = message


class VideoError(SiteReaderError):
    """Video metadata or stream retrieval failed."""


__all__ = ["SiteReaderError", "InvalidStartUrl", "FetchError", "VideoError"]
