# site_reader/fetcher/http.py
"""
Plain HTTP fetcher: aiohttp GET with retry/backoff and timeout, no JavaScript.
"""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_reader.crawler.models import FetchOptions, PageResult
from site_reader.errors import FetchError
from site_reader.parser.html_parser import extract_article, extract_json_ld, extract_links
from site_reader.utils import get_random_user_agent

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
_HTML_TYPES = ("text/html", "application/xhtml+xml")


class HttpFetcher:
    """Fetches pages over HTTP, retrying 5xx/429 with exponential backoff.

    Use as an async context manager so the underlying session is closed::

        async with HttpFetcher(timeout=10) as fetch:
            page = await fetch(url, FetchOptions(include_links=True))
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        retry_times: int = 2,
        user_agent: Optional[str] = None,
        retry_status: Sequence[int] = RETRY_STATUS,
        backoff_factor: float = 1.0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.timeout = timeout
        self.retry_times = retry_times
        self.user_agent = user_agent
        self._retry_status = retry_status
        self.backoff_factor = backoff_factor
        self.session = session
        self._owns_session = session is None
        self.logger = logging.getLogger("SiteReader")

    async def __aenter__(self) -> HttpFetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers={"User-Agent": get_random_user_agent(self.user_agent)},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
            self.session = None

    async def __call__(self, url: str, options: FetchOptions) -> PageResult:
        return await self.fetch(url, options)

    async def fetch(self, url: str, options: FetchOptions) -> PageResult:
        """
        Fetch *url* and extract its article. Raises FetchError on 4xx, non-HTML
        content, timeouts, or when retries are exhausted.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")
        if options.screenshot or options.wait_for:
            self.logger.debug("HTTP fetcher ignores screenshot/wait_for for %s", url)

        attempts = 0
        while True:
            try:
                async with self.session.get(url) as resp:
                    if resp.status in self._retry_status:
                        raise ClientError(f"retryable status {resp.status}")
                    if resp.status >= 400:
                        raise FetchError(url, f"HTTP {resp.status}")
                    mime = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
                    if mime not in _HTML_TYPES:
                        raise FetchError(url, f"unsupported content type {mime or 'unknown'!r}")
                    html = await resp.text()
                    final_url = str(resp.url)
                    break
            except asyncio.TimeoutError as exc:
                # no retry on timeout
                raise FetchError(url, "timed out") from exc
            except ClientError as exc:
                attempts += 1
                if attempts > self.retry_times:
                    raise FetchError(url, str(exc)) from exc
                backoff = min(60, self.backoff_factor * (2**attempts + random.random()))
                self.logger.debug(
                    "Retry %d/%d for %s after %.2f s", attempts, self.retry_times, url, backoff
                )
                await asyncio.sleep(backoff)

        article = extract_article(html, final_url)
        return PageResult(
            title=article.title,
            content=article.markdown,
            text_content=article.text_content,
            byline=article.byline,
            site_name=article.site_name,
            url=url,
            links=extract_links(html, final_url) if options.include_links else [],
            schema=extract_json_ld(html),
        )
