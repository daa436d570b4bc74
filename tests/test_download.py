import json

import pytest

from mediaproxy.core.errors import ExtractionError
from mediaproxy.main import app
from mediaproxy.services import extractor as extractor_module
from mediaproxy.services.extractor import MediaExtractor, get_extractor, to_media_info
from mediaproxy.services.ytdlp import CompletedProcess

from conftest import PREFIX

POST = "https://www.facebook.com/reel/123456789"


class FakeExtractor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.urls = []

    async def extract(self, url, locale=None):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_download_missing_url(api):
    response = await api.get(f"{PREFIX}/download")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Missing 'url' query parameter."}


@pytest.mark.asyncio
async def test_download_success(api):
    fake = FakeExtractor(result={"title": "Reel", "medias": [{"url": "https://cdn/x.mp4"}]})
    app.dependency_overrides[get_extractor] = lambda: fake

    response = await api.get(f"{PREFIX}/download", params={"url": POST})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"title": "Reel", "medias": [{"url": "https://cdn/x.mp4"}]},
    }
    assert fake.urls == [POST]


@pytest.mark.asyncio
async def test_download_extraction_error(api):
    app.dependency_overrides[get_extractor] = lambda: FakeExtractor(error=ExtractionError("No video formats found"))

    response = await api.get(f"{PREFIX}/download", params={"url": POST})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "No video formats found"}


@pytest.mark.asyncio
async def test_download_unexpected_error(api):
    app.dependency_overrides[get_extractor] = lambda: FakeExtractor(error=RuntimeError("scraper crashed"))

    response = await api.get(f"{PREFIX}/download", params={"url": POST})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "scraper crashed"}


YTDLP_OUTPUT = {
    "title": "Video by someone",
    "uploader": "someone",
    "duration": 12.5,
    "thumbnail": "https://cdn.example.com/thumb.jpg",
    "webpage_url": POST,
    "formats": [
        {"format_id": "dash_audio", "url": "https://cdn.example.com/a.m4a", "ext": "m4a",
         "vcodec": "none", "acodec": "mp4a.40.5"},
        {"format_id": "sd", "url": "https://cdn.example.com/sd.mp4", "ext": "mp4",
         "vcodec": "avc1", "acodec": "mp4a.40.2", "width": 540, "height": 960},
        {"format_id": "hd", "url": "https://cdn.example.com/hd.mp4", "ext": "mp4",
         "vcodec": "avc1", "acodec": "mp4a.40.2", "width": 1080, "height": 1920},
        {"format_id": "hls", "url": "https://cdn.example.com/master.m3u8", "ext": "mp4",
         "protocol": "m3u8_native"},
    ],
}


def test_to_media_info_orders_and_filters_formats():
    info = to_media_info(YTDLP_OUTPUT)

    assert info.title == "Video by someone"
    assert [m.quality for m in info.medias] == ["1920p", "960p", "dash_audio"]
    assert info.medias[-1].type == "audio"
    assert info.medias[-1].has_audio


def test_to_media_info_carousel():
    info = to_media_info({
        "title": "Post",
        "entries": [
            {"url": "https://cdn.example.com/1.jpg", "ext": "jpg"},
            {"url": "https://cdn.example.com/2.mp4", "ext": "mp4", "height": 720},
        ],
    })

    assert [m.url for m in info.medias] == [
        "https://cdn.example.com/1.jpg",
        "https://cdn.example.com/2.mp4",
    ]
    assert info.medias[0].type == "image"


@pytest.mark.asyncio
async def test_media_extractor_runs_ytdlp(monkeypatch):
    seen = {}

    async def fake_run(cmd, timeout):
        seen["cmd"] = cmd
        return CompletedProcess(0, json.dumps(YTDLP_OUTPUT).encode(), b"")

    monkeypatch.setattr(extractor_module.SubprocessExecutor, "run", staticmethod(fake_run))

    data = await MediaExtractor().extract(POST)

    assert seen["cmd"][-1] == POST
    assert "--dump-single-json" in seen["cmd"]
    assert data["title"] == "Video by someone"
    assert len(data["medias"]) == 3


@pytest.mark.asyncio
async def test_media_extractor_reports_ytdlp_failure(monkeypatch):
    async def fake_run(cmd, timeout):
        return CompletedProcess(1, b"", b"WARNING: x\nERROR: [facebook] Cannot parse data\n")

    monkeypatch.setattr(extractor_module.SubprocessExecutor, "run", staticmethod(fake_run))

    with pytest.raises(ExtractionError) as exc_info:
        await MediaExtractor().extract(POST)

    assert exc_info.value.message == "Failed to extract media: ERROR: [facebook] Cannot parse data"
