# === FILE: site_reader/video.py ===
"""Video metadata and byte proxying via the ``yt-dlp`` executable.

Works for any site yt-dlp supports (YouTube, Instagram, Twitter/X, TikTok, …).

Stream URLs resolved by yt-dlp are usually bound to the IP that resolved
them, so :func:`open_video_stream` downloads the bytes from this host and the
HTTP layer pipes them to the client instead of handing out the URL.
"""
from __future__ import annotations

import asyncio
import json
import logging
import shutil
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from aiohttp import ClientError, ClientResponse, ClientSession

from site_reader.errors import VideoError
from site_reader.utils import USER_AGENTS, sanitize_filename

logger = logging.getLogger("SiteReader")

YTDLP_BINARY = "yt-dlp"
BEST_MP4_FORMAT = "best[ext=mp4]/best"
_INFO_FLAGS: Sequence[str] = (
    "--dump-single-json",
    "--no-warnings",
    "--no-check-certificates",
    "--prefer-free-formats",
)


@dataclass(slots=True)
class VideoFormat:
    format_id: str
    ext: str
    resolution: str
    filesize: Optional[int]
    vcodec: str
    acodec: str
    tbr: Optional[float]
    has_video: bool
    has_audio: bool

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> VideoFormat:
        vcodec = raw.get("vcodec") or "none"
        acodec = raw.get("acodec") or "none"
        resolution = raw.get("resolution") or f"{raw.get('width') or '?'}x{raw.get('height') or '?'}"
        return cls(
            format_id=str(raw.get("format_id", "")),
            ext=raw.get("ext") or "",
            resolution=resolution,
            filesize=raw.get("filesize") or raw.get("filesize_approx") or None,
            vcodec=vcodec,
            acodec=acodec,
            tbr=raw.get("tbr") or None,
            has_video=vcodec != "none",
            has_audio=acodec != "none",
        )


@dataclass(slots=True)
class VideoMetadata:
    id: str
    title: str
    description: str
    thumbnail: str
    duration: float
    uploader: str
    platform: str
    view_count: int
    upload_date: str
    formats: List[VideoFormat] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> VideoMetadata:
        return cls(
            id=str(raw.get("id", "")),
            title=raw.get("title") or "Unknown",
            description=raw.get("description") or "",
            thumbnail=raw.get("thumbnail") or "",
            duration=raw.get("duration") or 0,
            uploader=raw.get("uploader") or raw.get("channel") or "Unknown",
            platform=raw.get("extractor") or "unknown",
            view_count=raw.get("view_count") or 0,
            upload_date=raw.get("upload_date") or "",
            formats=[VideoFormat.from_raw(f) for f in raw.get("formats") or []],
        )


@dataclass(slots=True)
class VideoStream:
    """Open upstream response plus the headers the client download needs."""

    response: ClientResponse
    content_type: str
    filename: str
    filesize: Optional[int]

    async def iter_chunks(self, chunk_size: int = 64 * 1024):
        async for chunk in self.response.content.iter_chunked(chunk_size):
            yield chunk

    def close(self) -> None:
        self.response.release()


async def _run_ytdlp(*args: str) -> str:
    binary = shutil.which(YTDLP_BINARY)
    if binary is None:
        raise VideoError(f"{YTDLP_BINARY} executable not found on PATH")
    proc = await asyncio.create_subprocess_exec(
        binary,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip() or f"exit code {proc.returncode}"
        raise VideoError(message)
    return stdout.decode("utf-8", errors="replace")


async def _dump_json(url: str) -> Dict[str, Any]:
    output = await _run_ytdlp(*_INFO_FLAGS, url)
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise VideoError(f"yt-dlp returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise VideoError("yt-dlp returned unexpected output")
    return data


async def get_video_info(url: str) -> VideoMetadata:
    """Fetch full metadata for a video URL."""
    logger.info("Fetching video metadata for %s", url)
    try:
        return VideoMetadata.from_raw(await _dump_json(url))
    except VideoError as exc:
        logger.error("Video info failed for %s: %s", url, exc)
        raise VideoError(f"Failed to fetch video info: {exc}") from exc


async def get_video_stream_url(url: str) -> str:
    """
    Resolve the direct media URL (best mp4, else best).

    The URL is IP-locked to this host; prefer :func:`open_video_stream`.
    """
    logger.info("Resolving stream URL for %s", url)
    try:
        output = await _run_ytdlp("--get-url", "-f", BEST_MP4_FORMAT, "--no-warnings", url)
    except VideoError as exc:
        logger.error("Stream URL failed for %s: %s", url, exc)
        raise VideoError(f"Failed to resolve stream: {exc}") from exc
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        raise VideoError("Failed to resolve stream: yt-dlp returned no URL")
    return lines[0]


def _best_muxed_size(formats: List[Dict[str, Any]]) -> Optional[int]:
    muxed = [
        f for f in formats
        if f.get("ext") == "mp4"
        and (f.get("vcodec") or "none") != "none"
        and (f.get("acodec") or "none") != "none"
    ]
    if not muxed:
        return None
    best = max(muxed, key=lambda f: f.get("filesize") or 0)
    return best.get("filesize") or best.get("filesize_approx") or None


async def open_video_stream(url: str, session: ClientSession) -> VideoStream:
    """
    Open the upstream media response for *url* through *session*.

    The caller owns the returned stream and must :meth:`VideoStream.close` it.
    """
    logger.info("Buffer proxy for %s", url)

    title = "video"
    filesize: Optional[int] = None
    try:
        info = await _dump_json(url)
        title = sanitize_filename(info.get("title") or "", default="video")
        filesize = _best_muxed_size(info.get("formats") or [])
    except VideoError as exc:
        logger.warning("Could not get metadata for filename, using default: %s", exc)

    stream_url = await get_video_stream_url(url)

    try:
        response = await session.get(stream_url, headers={"User-Agent": USER_AGENTS[0]})
    except ClientError as exc:
        raise VideoError(f"Upstream video fetch failed: {exc}") from exc
    if response.status >= 400:
        response.release()
        raise VideoError(f"Upstream video fetch failed: {response.status} {response.reason}")

    if response.content_length is not None:
        filesize = response.content_length

    return VideoStream(
        response=response,
        content_type=response.headers.get("Content-Type") or "video/mp4",
        filename=f"{title}.mp4",
        filesize=filesize,
    )


__all__ = [
    "VideoFormat",
    "VideoMetadata",
    "VideoStream",
    "get_video_info",
    "get_video_stream_url",
    "open_video_stream",
]
