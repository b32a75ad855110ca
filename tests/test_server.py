# File: tests/test_server.py
"""Тесты HTTP-сервиса (`site_reader.server`) с aiohttp TestClient и подменённым Engine."""
from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

import site_reader.server as server_module
from site_reader.config import CrawlRequest, ScrapeRequest, ServiceConfig
from site_reader.crawler.models import CrawlError, CrawlResult, CrawlStats, PageResult
from site_reader.errors import InvalidStartUrl, VideoError
from site_reader.video import VideoFormat, VideoMetadata


def make_page(url: str) -> PageResult:
    return PageResult(
        title="Example",
        content="# Example",
        text_content="Example",
        url=url,
        byline="Jane Doe",
        site_name="Example Site",
        links=[f"{url}/next"],
    )


class StubEngine:
    name = "stub-fetcher"

    def __init__(self) -> None:
        self.crawl_requests: list[CrawlRequest] = []
        self.scrape_requests: list[ScrapeRequest] = []

    async def scrape(self, request: ScrapeRequest) -> PageResult:
        self.scrape_requests.append(request)
        if "fail" in request.url:
            raise RuntimeError("Navigation timeout of 60000 ms exceeded")
        return make_page(request.url)

    async def crawl(self, request: CrawlRequest) -> CrawlResult:
        self.crawl_requests.append(request)
        if not request.start_url.startswith("http"):
            raise InvalidStartUrl(request.start_url)
        return CrawlResult(
            pages=(make_page(request.start_url),),
            stats=CrawlStats(pages_scraped=1, links_discovered=1, duration_seconds=0.25),
            errors=(CrawlError(f"{request.start_url}/next", 1, "HTTP 404"),),
        )


@pytest.fixture()
def engine() -> StubEngine:
    return StubEngine()


@pytest_asyncio.fixture
async def client(engine: StubEngine) -> AsyncIterator[TestClient]:
    config = ServiceConfig(allowed_origins=["https://app.example"], port=4000)
    app = server_module.create_app(config, engine=engine)
    async with TestClient(TestServer(app)) as test_client:
        yield test_client


@pytest.mark.asyncio()
async def test_health(client: TestClient):
    resp = await client.get("/health")
    assert resp.status == 200
    data = await resp.json()
    assert data["status"] == "ok"
    assert "uptime" in data and "version" in data


@pytest.mark.asyncio()
async def test_status_page(client: TestClient):
    resp = await client.get("/")
    assert resp.status == 200
    text = await resp.text()
    assert "ONLINE" in text
    assert "4000" in text
    assert "DIRECT" in text


@pytest.mark.asyncio()
async def test_crawl_defaults(client: TestClient, engine: StubEngine):
    resp = await client.post("/v1/crawl", json={"url": "https://example.com"})
    assert resp.status == 200
    body = await resp.json()

    assert body["success"] is True
    assert body["data"]["stats"] == {"pagesScraped": 1, "linksDiscovered": 1, "duration": 0.25}
    assert body["data"]["pages"][0]["textContent"] == "Example"
    assert body["data"]["errors"][0]["url"] == "https://example.com/next"
    assert body["meta"]["engine"] == "stub-fetcher"

    req = engine.crawl_requests[0]
    assert (req.max_pages, req.max_depth, req.render, req.screenshot, req.allow_subdomains) == (
        10, 2, False, False, False,
    )


@pytest.mark.asyncio()
async def test_crawl_passes_options(client: TestClient, engine: StubEngine):
    payload = {
        "url": "https://example.com",
        "maxPages": 3,
        "maxDepth": 1,
        "render": True,
        "screenshot": True,
        "allowSubdomains": True,
    }
    resp = await client.post("/v1/crawl", json=payload)
    assert resp.status == 200
    req = engine.crawl_requests[0]
    assert (req.max_pages, req.max_depth, req.render, req.screenshot, req.allow_subdomains) == (
        3, 1, True, True, True,
    )


@pytest.mark.asyncio()
async def test_crawl_failure_is_500(client: TestClient):
    resp = await client.post("/v1/crawl", json={"url": "notaurl"})
    assert resp.status == 500
    body = await resp.json()
    assert body["success"] is False
    assert "notaurl" in body["error"]


@pytest.mark.asyncio()
async def test_crawl_invalid_bounds_is_400(client: TestClient):
    resp = await client.post("/v1/crawl", json={"url": "https://example.com", "maxPages": 0})
    assert resp.status == 400
    assert (await resp.json())["success"] is False


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "path", ["/v1/scrape", "/v1/crawl", "/v1/video/info", "/v1/video/download", "/v1/video/stream"]
)
async def test_missing_url_is_400(client: TestClient, path: str):
    resp = await client.post(path, json={})
    assert resp.status == 400
    assert (await resp.json()) == {"error": "Missing 'url' in body"}


@pytest.mark.asyncio()
async def test_non_json_body_is_treated_as_missing_url(client: TestClient):
    resp = await client.post("/v1/scrape", data="not json", headers={"Content-Type": "text/plain"})
    assert resp.status == 400


@pytest.mark.asyncio()
async def test_scrape(client: TestClient, engine: StubEngine):
    resp = await client.post(
        "/v1/scrape", json={"url": "https://example.com", "waitFor": "#main", "screenshot": True}
    )
    assert resp.status == 200
    body = await resp.json()
    assert body["data"]["byline"] == "Jane Doe"
    assert body["data"]["siteName"] == "Example Site"
    assert "duration_ms" in body["meta"]
    assert engine.scrape_requests[0].wait_for == "#main"
    assert engine.scrape_requests[0].screenshot is True


@pytest.mark.asyncio()
async def test_scrape_failure_is_500(client: TestClient):
    resp = await client.post("/v1/scrape", json={"url": "https://fail.example.com"})
    assert resp.status == 500
    body = await resp.json()
    assert body == {"success": False, "error": "Navigation timeout of 60000 ms exceeded"}


@pytest.mark.asyncio()
async def test_cors_allowed_origin(client: TestClient):
    resp = await client.get("/health", headers={"Origin": "https://app.example"})
    assert resp.headers["Access-Control-Allow-Origin"] == "https://app.example"
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]


@pytest.mark.asyncio()
async def test_cors_foreign_origin_not_echoed(client: TestClient):
    resp = await client.get("/health", headers={"Origin": "https://evil.example"})
    assert "Access-Control-Allow-Origin" not in resp.headers
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization, x-api-key"


@pytest.mark.asyncio()
async def test_preflight(client: TestClient):
    resp = await client.options("/v1/crawl", headers={"Origin": "https://app.example"})
    assert resp.status == 204
    assert resp.headers["Access-Control-Allow-Origin"] == "https://app.example"


@pytest.mark.asyncio()
async def test_video_info(client: TestClient, monkeypatch):
    async def fake_info(url):
        return VideoMetadata(
            id="abc",
            title="Clip",
            description="",
            thumbnail="",
            duration=12,
            uploader="someone",
            platform="youtube",
            view_count=5,
            upload_date="20240101",
            formats=[VideoFormat("18", "mp4", "640x360", 1000, "avc1", "mp4a", 500.0, True, True)],
        )

    monkeypatch.setattr(server_module, "get_video_info", fake_info)
    resp = await client.post("/v1/video/info", json={"url": "https://youtu.be/abc"})
    assert resp.status == 200
    body = await resp.json()
    assert body["data"]["title"] == "Clip"
    assert body["data"]["formats"][0]["has_audio"] is True


@pytest.mark.asyncio()
async def test_video_download_failure(client: TestClient, monkeypatch):
    async def broken(url):
        raise VideoError("Failed to resolve stream: unsupported URL")

    monkeypatch.setattr(server_module, "get_video_stream_url", broken)
    resp = await client.post("/v1/video/download", json={"url": "https://example.com/v"})
    assert resp.status == 500
    assert (await resp.json())["error"] == "Failed to resolve stream: unsupported URL"


@pytest.mark.asyncio()
async def test_video_stream_proxies_bytes(client: TestClient, monkeypatch):
    class FakeStream:
        content_type = "video/mp4"
        filename = "Clip.mp4"
        filesize = 6
        closed = False

        async def iter_chunks(self, chunk_size: int = 65536):
            yield b"abc"
            yield b"def"

        def close(self):
            FakeStream.closed = True

    async def fake_open(url, session):
        return FakeStream()

    monkeypatch.setattr(server_module, "open_video_stream", fake_open)
    resp = await client.post("/v1/video/stream", json={"url": "https://youtu.be/abc"})
    assert resp.status == 200
    assert resp.headers["Content-Disposition"] == 'attachment; filename="Clip.mp4"'
    assert resp.headers["Content-Type"] == "video/mp4"
    assert await resp.read() == b"abcdef"
    assert FakeStream.closed is True
