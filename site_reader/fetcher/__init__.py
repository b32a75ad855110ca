# site_reader/fetcher/__init__.py
"""
Page fetchers: turn one URL into one :class:`~site_reader.crawler.models.PageResult`.

Any async callable ``(url, options) -> PageResult`` that raises
:class:`~site_reader.errors.FetchError` on failure can drive the crawler.
"""
from __future__ import annotations

from typing import Protocol

from site_reader.crawler.models import FetchOptions, PageResult
from site_reader.errors import FetchError


class Fetcher(Protocol):
    async def __call__(self, url: str, options: FetchOptions) -> PageResult: ...


__all__ = ["Fetcher", "FetchError", "FetchOptions", "PageResult"]
