import pytest
from httpx import ASGITransport, AsyncClient

from tests.conftest import leftover_files, make_catalog
from ytmux.api.info import get_catalog_resolver
from ytmux.config.settings import config
from ytmux.core.errors import ExtractionError
from ytmux.main import app

URL = "https://media.example/watch?v=1"


@pytest.fixture(autouse=True)
def no_ssrf(monkeypatch):
    # Test hosts never resolve; the blocked-address test turns this back on
    monkeypatch.setattr(config.security, "enable_ssrf_protection", False)


@pytest.fixture
def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health_check(client):
    """Public health endpoint"""
    async with client as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert set(body) == {"status", "redis", "ytdlp_version", "ffmpeg_version"}


@pytest.mark.asyncio
async def test_root(client):
    async with client as ac:
        response = await ac.get("/")
    assert response.status_code == 200
    assert response.json()["version"] == config.api.version


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    async with client as ac:
        response = await ac.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["x-request-id"] == "abc123"


@pytest.mark.asyncio
async def test_video_info_lists_formats_in_display_order(client, fake_tools):
    async with client as ac:
        response = await ac.get("/video-info", params={"url": URL})

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Sample Clip"
    assert [f["itag"] for f in body["formats"]] == ["137", "22", "sb0", "140", "251"]

    first = body["formats"][0]
    assert first == {
        "qualityLabel": "1080p",
        "container": "mp4",
        "itag": "137",
        "filesize": 90_000_000,
        "vcodec": "avc1.640028",
        "acodec": "none",
    }


@pytest.mark.asyncio
async def test_video_info_with_injected_resolver(client):
    class StaticResolver:
        async def resolve(self, url):
            return make_catalog()

    app.dependency_overrides[get_catalog_resolver] = StaticResolver
    try:
        async with client as ac:
            response = await ac.get("/video-info", params={"url": URL})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert len(response.json()["formats"]) == 5


@pytest.mark.asyncio
async def test_video_info_extractor_failure(client, fake_tools):
    fake_tools.configure(info_exit=1)

    async with client as ac:
        response = await ac.get("/video-info", params={"url": URL})

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to get video info"}


@pytest.mark.asyncio
async def test_video_info_missing_url(client):
    async with client as ac:
        response = await ac.get("/video-info")

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_video_info_error_is_localized(client):
    class BrokenResolver:
        async def resolve(self, url):
            raise ExtractionError("boom")

    app.dependency_overrides[get_catalog_resolver] = BrokenResolver
    try:
        async with client as ac:
            response = await ac.get("/video-info", params={"url": URL}, headers={"Accept-Language": "ja"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    assert response.json() == {"error": "動画情報の取得に失敗しました"}


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{}, {"url": URL}, {"quality": "137"}])
async def test_download_missing_params(client, params):
    async with client as ac:
        response = await ac.get("/download", params=params)

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Invalid request: missing URL or quality"


@pytest.mark.asyncio
async def test_download_muxes_and_streams(client, fake_tools, work_dir):
    async with client as ac:
        response = await ac.get(
            "/download",
            params={"url": URL, "quality": "137", "filename": "My/Video: Title?"}
        )

    assert response.status_code == 200
    assert response.headers["content-type"] == "video/mp4"
    assert 'filename="MyVideo Title.mp4"' in response.headers["content-disposition"]
    assert "content-length" not in response.headers
    assert response.content == b"<137>" * 64 + b"<140>" * 64
    assert len(fake_tools.calls("ffmpeg")) == 1
    assert leftover_files(work_dir) == []


@pytest.mark.asyncio
async def test_download_combined_format_skips_mux(client, fake_tools, work_dir):
    async with client as ac:
        response = await ac.get("/download", params={"url": URL, "quality": "22"})

    assert response.status_code == 200
    assert 'filename="video.mp4"' in response.headers["content-disposition"]
    assert response.content == b"<22>" * 64
    assert fake_tools.calls("ffmpeg") == []
    assert leftover_files(work_dir) == []


@pytest.mark.asyncio
async def test_download_unknown_format(client, fake_tools, work_dir):
    async with client as ac:
        response = await ac.get("/download", params={"url": URL, "quality": "999"})

    assert response.status_code == 404
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "Format 999 is not available for this video"
    assert fake_tools.fetched_formats() == []
    assert leftover_files(work_dir) == []


@pytest.mark.asyncio
async def test_download_fetch_failure(client, fake_tools, work_dir):
    fake_tools.configure(fail=["140"])

    async with client as ac:
        response = await ac.get("/download", params={"url": URL, "quality": "137"})

    assert response.status_code == 502
    assert response.text == "Failed to download the audio stream"
    assert fake_tools.calls("ffmpeg") == []
    assert leftover_files(work_dir) == []


@pytest.mark.asyncio
async def test_download_mux_failure(client, fake_tools, work_dir):
    fake_tools.configure(mux_exit=1)

    async with client as ac:
        response = await ac.get("/download", params={"url": URL, "quality": "137"})

    assert response.status_code == 500
    assert response.text == "Failed to merge video and audio"
    assert leftover_files(work_dir) == []


@pytest.mark.asyncio
async def test_download_rejects_local_address(client, fake_tools, monkeypatch):
    monkeypatch.setattr(config.security, "enable_ssrf_protection", True)

    async with client as ac:
        response = await ac.get("/download", params={"url": "http://127.0.0.1/v", "quality": "22"})

    assert response.status_code == 403
    assert fake_tools.calls("yt-dlp") == []


@pytest.mark.asyncio
async def test_download_rejects_non_http_scheme(client, fake_tools):
    async with client as ac:
        response = await ac.get("/download", params={"url": "file:///etc/passwd", "quality": "22"})

    assert response.status_code == 400
    assert fake_tools.calls("yt-dlp") == []
