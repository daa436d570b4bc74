import base64
import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mediaproxy.config.settings import config
from mediaproxy.infra.scratch import get_downloads_dir
from mediaproxy.main import app
from mediaproxy.services.upstream import get_http_client

PREFIX = config.api.prefix


def make_token(payload) -> str:
    """Unsigned three-part token carrying ``payload`` as its middle segment"""
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    segment = base64.urlsafe_b64encode(raw).decode().rstrip("=")
    return f"eyJhbGciOiJIUzI1NiJ9.{segment}.signature"


class FakeUpstream:
    """httpx.MockTransport handler recording every request it receives"""

    def __init__(self):
        self.requests = []
        self.handler = lambda request: httpx.Response(404)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def downloads_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


@pytest_asyncio.fixture
async def api(upstream, downloads_dir):
    upstream_client = httpx.AsyncClient(
        transport=httpx.MockTransport(upstream),
        follow_redirects=True,
        max_redirects=config.proxy.max_redirects,
    )
    app.dependency_overrides[get_http_client] = lambda: upstream_client
    app.dependency_overrides[get_downloads_dir] = lambda: downloads_dir

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await upstream_client.aclose()
