# File: site_reader/engine.py
"""site_reader.engine: Фасад для CLI и HTTP-сервиса: выбор загрузчика страниц, извлечение и обход."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from site_reader.config import CrawlRequest, ScrapeRequest, ServiceConfig
from site_reader.crawler.crawler import SiteCrawler
from site_reader.crawler.models import CrawlResult, FetchOptions, PageResult
from site_reader.fetcher import Fetcher
from site_reader.logger import logger

__all__ = ["Engine", "run_scrape", "run_crawl"]


class Engine:
    """Связывает конфигурацию сервиса с загрузчиком страниц и краулером."""

    def __init__(self, config: ServiceConfig) -> None:
        """Инициализирует Engine с заданной конфигурацией сервиса."""
        self.config = config

    @property
    def name(self) -> str:
        return f"{self.config.fetcher}-fetcher"

    @asynccontextmanager
    async def open_fetcher(self) -> AsyncIterator[Fetcher]:
        """Открывает загрузчик, выбранный в конфиге, и закрывает его по выходу."""
        cfg = self.config
        if cfg.fetcher == "http":
            from site_reader.fetcher.http import HttpFetcher

            async with HttpFetcher(
                timeout=cfg.http_timeout,
                retry_times=cfg.retry_times,
                user_agent=cfg.user_agent,
            ) as fetcher:
                yield fetcher
        else:
            from site_reader.fetcher.browser import BrowserFetcher

            yield BrowserFetcher(
                proxy_url=cfg.proxy_url,
                navigation_timeout=cfg.navigation_timeout,
                selector_timeout=cfg.selector_timeout,
                user_agent=cfg.user_agent,
            )

    async def scrape(self, request: ScrapeRequest) -> PageResult:
        """Извлекает одну страницу (ссылки включены)."""
        logger.info("Scrape request: %s", request.url)
        options = FetchOptions(
            render=request.render,
            screenshot=request.screenshot,
            include_links=True,
            wait_for=request.wait_for,
        )
        async with self.open_fetcher() as fetcher:
            return await fetcher(request.url, options)

    async def crawl(self, request: CrawlRequest) -> CrawlResult:
        """Запускает обход сайта и возвращает CrawlResult."""
        logger.info("Crawl request: %s | Max: %d pages", request.start_url, request.max_pages)
        async with self.open_fetcher() as fetcher:
            return await SiteCrawler(fetcher).crawl(request)


async def run_scrape(config: ServiceConfig, request: ScrapeRequest) -> PageResult:
    return await Engine(config).scrape(request)


async def run_crawl(config: ServiceConfig, request: CrawlRequest) -> CrawlResult:
    return await Engine(config).crawl(request)
