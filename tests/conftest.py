# File: tests/conftest.py
from collections.abc import AsyncIterator
from typing import Dict, Iterable, List

import pytest
from aiohttp import web

from site_reader.config import ServiceConfig
from site_reader.crawler.link_filter import normalize_url
from site_reader.crawler.models import FetchOptions, PageResult
from site_reader.errors import FetchError


class FakeFetcher:
    """
    In-memory fetcher: *site* maps a normalized URL to the raw links found on it.
    URLs in *failing* (or missing from *site*) raise FetchError. Calls are
    recorded exactly as requested.
    """

    def __init__(self, site: Dict[str, List[str]], failing: Iterable[str] = ()) -> None:
        self.site = site
        self.failing = {normalize_url(u) for u in failing}
        self.calls: List[str] = []
        self.options: List[FetchOptions] = []

    async def __call__(self, url: str, options: FetchOptions) -> PageResult:
        self.calls.append(url)
        self.options.append(options)
        key = normalize_url(url)
        if key in self.failing:
            raise FetchError(url, "navigation failed")
        if key not in self.site:
            raise FetchError(url, "not found")
        return PageResult(
            title=f"Title of {url}",
            content=f"# {url}",
            text_content=url,
            url=url,
            links=list(self.site[key]) if options.include_links else [],
        )


@pytest.fixture()
def service_config() -> ServiceConfig:
    """
    Return a ServiceConfig that uses the plain HTTP fetcher with fast retries.
    """
    return ServiceConfig(fetcher="http", http_timeout=2.0, retry_times=0)


def html_page(body: str, title: str = "Test page") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


async def serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()
