import pytest

from mediaproxy.config.settings import Config, config
from mediaproxy.main import app


@pytest.mark.asyncio
async def test_root(api):
    response = await api.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["endpoints"] == [config.api.prefix or "/"]


@pytest.mark.asyncio
async def test_health_check(api):
    response = await api.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["redis"] == "disabled"


@pytest.mark.asyncio
async def test_unknown_endpoint(api):
    response = await api.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Endpoint not found"}


@pytest.mark.asyncio
async def test_request_id_header(api):
    response = await api.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["x-request-id"] == "abc123"


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "4100")
    monkeypatch.setenv("DOWNLOADS_DIR", "/tmp/scratch")
    monkeypatch.setenv("UPSTREAM_TIMEOUT", "12.5")
    monkeypatch.setenv("API_PREFIX", "")

    loaded = Config.load_from_env()

    assert loaded.api.port == 4100
    assert loaded.api.prefix == ""
    assert loaded.storage.downloads_dir == "/tmp/scratch"
    assert loaded.proxy.timeout_seconds == 12.5
    assert loaded.proxy.max_redirects == 5


def test_config_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"api": {"port": 8080}, "logging": {"level": "debug"}}', encoding="utf-8")

    loaded = Config.load_from_file(str(path))

    assert loaded.api.port == 8080
    assert loaded.logging.level == "DEBUG"


def test_error_envelope_in_openapi():
    schema = app.openapi()
    file_responses = schema["paths"][f"{config.api.prefix}/file"]["get"]["responses"]
    ref = file_responses["400"]["content"]["application/json"]["schema"]["$ref"]
    assert ref == "#/components/schemas/ErrorResponse"
    assert set(schema["components"]["schemas"]["ErrorResponse"]["properties"]) == {"success", "error"}
