# === FILE: site_reader/server.py ===
"""
HTTP-сервис SiteReader на aiohttp.web.

Маршруты:
  GET  /                  HTML-страница статуса
  GET  /health            JSON-статус
  POST /v1/scrape         одна страница
  POST /v1/crawl          обход сайта
  POST /v1/video/info     метаданные видео
  POST /v1/video/download прямой URL потока (привязан к IP сервера)
  POST /v1/video/stream   проксирование байтов видео
"""
from __future__ import annotations

import json
import time
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import ClientError, ClientSession, web
from pydantic import ValidationError

from site_reader import __version__
from site_reader.config import CrawlRequest, ScrapeRequest, ServiceConfig
from site_reader.engine import Engine
from site_reader.logger import logger
from site_reader.report import template_env
from site_reader.video import get_video_info, get_video_stream_url, open_video_stream

__all__ = ["create_app", "run_server", "CONFIG_KEY", "ENGINE_KEY"]

CONFIG_KEY = web.AppKey("config", ServiceConfig)
ENGINE_KEY = web.AppKey("engine", Engine)
STARTED_KEY = web.AppKey("started", float)
SESSION_KEY = web.AppKey("http_session", ClientSession)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

ENDPOINTS = (
    ("Scrape", "POST /v1/scrape"),
    ("Crawl", "POST /v1/crawl"),
    ("Video", "POST /v1/video/info"),
    ("Stream", "POST /v1/video/stream"),
)
CORS_METHODS = "GET, POST, OPTIONS"
CORS_HEADERS = "Content-Type, Authorization, x-api-key"


# --------------------------------------------------------------------------- #
# Middleware                                                                  #
# --------------------------------------------------------------------------- #


@web.middleware
async def preflight_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=204)
    return await handler(request)


@web.middleware
async def access_log_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    logger.info("%s %s", request.method, request.path)
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return web.json_response({"success": False, "error": "Internal Server Error"}, status=500)


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    allowed = request.app[CONFIG_KEY].allowed_origins
    origin = request.headers.get("Origin", "*")
    if "*" in allowed or origin in allowed:
        response.headers["Access-Control-Allow-Origin"] = origin
    response.headers["Access-Control-Allow-Methods"] = CORS_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_HEADERS


# --------------------------------------------------------------------------- #
# Helpers                                                                     #
# --------------------------------------------------------------------------- #


async def _read_body(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = json.loads(await request.text())
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _missing_url() -> web.Response:
    return web.json_response({"error": "Missing 'url' in body"}, status=400)


def _failure(exc: Exception, status: int = 500) -> web.Response:
    return web.json_response({"success": False, "error": str(exc) or "Unknown Error"}, status=status)


# --------------------------------------------------------------------------- #
# Routes: health & status                                                     #
# --------------------------------------------------------------------------- #


async def health(request: web.Request) -> web.Response:
    uptime = time.monotonic() - request.app[STARTED_KEY]
    return web.json_response({"status": "ok", "uptime": round(uptime, 3), "version": __version__})


async def index(request: web.Request) -> web.Response:
    cfg = request.app[CONFIG_KEY]
    html = template_env().get_template("status.html.j2").render(
        version=__version__,
        port=cfg.port,
        fetcher=cfg.fetcher,
        endpoints=ENDPOINTS,
        proxy=bool(cfg.proxy_url),
        uptime_minutes=(time.monotonic() - request.app[STARTED_KEY]) / 60,
    )
    return web.Response(text=html, content_type="text/html")


# --------------------------------------------------------------------------- #
# Routes: scrape & crawl                                                      #
# --------------------------------------------------------------------------- #


async def scrape(request: web.Request) -> web.Response:
    body = await _read_body(request)
    if not body.get("url"):
        return _missing_url()
    try:
        scrape_request = ScrapeRequest.model_validate(body)
    except ValidationError as exc:
        return _failure(exc, status=400)

    engine = request.app[ENGINE_KEY]
    start = time.monotonic()
    try:
        page = await engine.scrape(scrape_request)
    except Exception as exc:
        logger.error("Scrape failed for %s: %s", scrape_request.url, exc)
        return _failure(exc)
    return web.json_response(
        {
            "success": True,
            "data": page.to_dict(),
            "meta": {"duration_ms": int((time.monotonic() - start) * 1000), "engine": engine.name},
        }
    )


async def crawl(request: web.Request) -> web.Response:
    body = await _read_body(request)
    if not body.get("url"):
        return _missing_url()
    try:
        crawl_request = CrawlRequest.model_validate(body)
    except ValidationError as exc:
        return _failure(exc, status=400)

    engine = request.app[ENGINE_KEY]
    start = time.monotonic()
    try:
        result = await engine.crawl(crawl_request)
    except Exception as exc:
        logger.error("Crawl failed for %s: %s", crawl_request.start_url, exc)
        return _failure(exc)
    return web.json_response(
        {
            "success": True,
            "data": result.to_dict(),
            "meta": {"duration_ms": int((time.monotonic() - start) * 1000), "engine": engine.name},
        }
    )


# --------------------------------------------------------------------------- #
# Routes: video                                                               #
# --------------------------------------------------------------------------- #


async def video_info(request: web.Request) -> web.Response:
    url = (await _read_body(request)).get("url")
    if not url:
        return _missing_url()
    try:
        info = await get_video_info(url)
    except Exception as exc:
        logger.error("Video info failed: %s", exc)
        return _failure(exc)
    return web.json_response({"success": True, "data": asdict(info)})


async def video_download(request: web.Request) -> web.Response:
    url = (await _read_body(request)).get("url")
    if not url:
        return _missing_url()
    try:
        stream_url = await get_video_stream_url(url)
    except Exception as exc:
        logger.error("Video download failed: %s", exc)
        return _failure(exc)
    return web.json_response({"success": True, "url": stream_url})


async def video_stream(request: web.Request) -> web.StreamResponse:
    url = (await _read_body(request)).get("url")
    if not url:
        return _missing_url()
    try:
        stream = await open_video_stream(url, request.app[SESSION_KEY])
    except Exception as exc:
        logger.error("Video stream failed: %s", exc)
        return _failure(exc)

    response = web.StreamResponse(
        headers={
            "Content-Type": stream.content_type,
            "Content-Disposition": f'attachment; filename="{stream.filename}"',
        }
    )
    if stream.filesize:
        response.content_length = stream.filesize
    try:
        await response.prepare(request)
        async for chunk in stream.iter_chunks():
            await response.write(chunk)
        await response.write_eof()
    except (ClientError, ConnectionResetError) as exc:
        # headers are already sent, nothing to report to the client
        logger.error("Stream error for %s: %s", url, exc)
    finally:
        stream.close()
    return response


# --------------------------------------------------------------------------- #
# Application                                                                 #
# --------------------------------------------------------------------------- #


async def _http_session_ctx(app: web.Application):
    app[SESSION_KEY] = ClientSession()
    yield
    await app[SESSION_KEY].close()


def create_app(config: ServiceConfig, engine: Optional[Engine] = None) -> web.Application:
    """Собирает aiohttp-приложение; *engine* можно подменить в тестах."""
    app = web.Application(
        middlewares=[preflight_middleware, access_log_middleware, error_middleware]
    )
    app[CONFIG_KEY] = config
    app[ENGINE_KEY] = engine if engine is not None else Engine(config)
    app[STARTED_KEY] = time.monotonic()
    app.on_response_prepare.append(_add_cors_headers)
    app.cleanup_ctx.append(_http_session_ctx)

    app.router.add_get("/", index)
    app.router.add_get("/health", health)
    app.router.add_post("/v1/scrape", scrape)
    app.router.add_post("/v1/crawl", crawl)
    app.router.add_post("/v1/video/info", video_info)
    app.router.add_post("/v1/video/download", video_download)
    app.router.add_post("/v1/video/stream", video_stream)
    return app


def run_server(config: ServiceConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Запускает сервис и блокирует до остановки."""
    host = host or config.host
    port = port or config.port
    logger.info("SiteReader %s listening on %s:%d (fetcher: %s)", __version__, host, port, config.fetcher)
    for name, path in ENDPOINTS:
        logger.info("  %-7s %s", name, path)
    web.run_app(create_app(config), host=host, port=port, print=None)
