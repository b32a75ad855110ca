# File: tests/test_video.py
from __future__ import annotations

import json

import pytest
from aiohttp import ClientSession, web

import site_reader.video as video
from conftest import serve_app
from site_reader.errors import VideoError

RAW_INFO = {
    "id": "abc123",
    "title": "My clip: part 1/2",
    "extractor": "youtube",
    "channel": "Someone",
    "duration": 42,
    "formats": [
        {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.2", "filesize": 100},
        {"format_id": "18", "ext": "mp4", "vcodec": "avc1", "acodec": "mp4a", "width": 640,
         "height": 360, "filesize": 2000},
        {"format_id": "22", "ext": "mp4", "vcodec": "avc1", "acodec": "mp4a",
         "resolution": "1280x720", "filesize_approx": 5000},
    ],
}


def fake_ytdlp(monkeypatch, *, info=None, stream_output="", fail=None):
    calls = []

    async def run(*args):
        calls.append(args)
        if fail is not None:
            raise VideoError(fail)
        if "--dump-single-json" in args:
            return json.dumps(info if info is not None else RAW_INFO)
        return stream_output

    monkeypatch.setattr(video, "_run_ytdlp", run)
    return calls


def test_metadata_defaults():
    meta = video.VideoMetadata.from_raw({"id": 7})
    assert meta.id == "7"
    assert meta.title == "Unknown"
    assert meta.uploader == "Unknown"
    assert meta.platform == "unknown"
    assert meta.formats == []


def test_format_flags_and_resolution():
    meta = video.VideoMetadata.from_raw(RAW_INFO)
    audio, sd, hd = meta.formats
    assert (audio.has_video, audio.has_audio) == (False, True)
    assert sd.resolution == "640x360"
    assert hd.resolution == "1280x720"
    assert hd.filesize == 5000
    assert meta.uploader == "Someone"


@pytest.mark.asyncio()
async def test_get_video_info(monkeypatch):
    calls = fake_ytdlp(monkeypatch)
    meta = await video.get_video_info("https://youtu.be/abc123")
    assert meta.platform == "youtube"
    assert len(meta.formats) == 3
    assert calls[0][-1] == "https://youtu.be/abc123"


@pytest.mark.asyncio()
async def test_get_video_info_wraps_errors(monkeypatch):
    fake_ytdlp(monkeypatch, fail="ERROR: Unsupported URL")
    with pytest.raises(VideoError, match="Failed to fetch video info: ERROR: Unsupported URL"):
        await video.get_video_info("https://example.com/nothing")


@pytest.mark.asyncio()
async def test_stream_url_first_line(monkeypatch):
    fake_ytdlp(monkeypatch, stream_output="\nhttps://cdn.example/v.mp4\nhttps://cdn.example/a.m4a\n")
    assert await video.get_video_stream_url("https://youtu.be/abc123") == "https://cdn.example/v.mp4"


@pytest.mark.asyncio()
async def test_stream_url_empty_output(monkeypatch):
    fake_ytdlp(monkeypatch, stream_output="   \n")
    with pytest.raises(VideoError, match="no URL"):
        await video.get_video_stream_url("https://youtu.be/abc123")


@pytest.mark.asyncio()
async def test_missing_binary(monkeypatch):
    monkeypatch.setattr(video.shutil, "which", lambda name: None)
    with pytest.raises(VideoError, match="not found"):
        await video._run_ytdlp("--version")


def test_best_muxed_size_prefers_largest_mp4():
    assert video._best_muxed_size(RAW_INFO["formats"]) == 2000
    assert video._best_muxed_size([{"ext": "webm", "vcodec": "vp9", "acodec": "opus"}]) is None


@pytest.mark.asyncio()
async def test_open_video_stream(monkeypatch, unused_tcp_port: int):
    payload = b"\x00\x01" * 1024
    app = web.Application()

    async def media(_):
        return web.Response(body=payload, content_type="video/mp4")

    app.router.add_get("/v.mp4", media)

    async for base in serve_app(app, unused_tcp_port):
        fake_ytdlp(monkeypatch, stream_output=f"{base}/v.mp4\n")
        async with ClientSession() as session:
            stream = await video.open_video_stream("https://youtu.be/abc123", session)
            try:
                received = b"".join([chunk async for chunk in stream.iter_chunks(512)])
            finally:
                stream.close()

    assert received == payload
    assert stream.filename == "My_clip_part_12.mp4"
    assert stream.filesize == len(payload)
    assert stream.content_type.startswith("video/mp4")


@pytest.mark.asyncio()
async def test_open_video_stream_upstream_error(monkeypatch, unused_tcp_port: int):
    app = web.Application()

    async def gone(_):
        return web.Response(status=403)

    app.router.add_get("/v.mp4", gone)

    async for base in serve_app(app, unused_tcp_port):
        fake_ytdlp(monkeypatch, stream_output=f"{base}/v.mp4")
        async with ClientSession() as session:
            with pytest.raises(VideoError, match="Upstream video fetch failed: 403"):
                await video.open_video_stream("https://youtu.be/abc123", session)
