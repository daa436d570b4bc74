from typing import Dict, Optional
from urllib.parse import urlparse

import httpx

from mediaproxy.config.settings import config
from mediaproxy.core.errors import UpstreamFetchError
from mediaproxy.core.state import state
from mediaproxy.utils.token import extract_token_headers

PASSTHROUGH_PATHS = ("/render.php",)


def resolve_media_url(media_url: str) -> str:
    """
    Hook for per-provider URL rewriting. Currently returns the URL unchanged.
    """
    try:
        parsed = urlparse(media_url)
    except ValueError:
        return media_url

    # render.php muxes audio and video, never rewrite it
    if parsed.path.endswith(PASSTHROUGH_PATHS):
        return media_url

    return media_url


def default_headers() -> Dict[str, str]:
    return {
        "User-Agent": config.proxy.user_agent,
        "Accept": "*/*",
        "Accept-Encoding": "identity",
        "Referer": config.proxy.referer,
    }


def build_upstream_headers(raw_url: str, resolved_url: str) -> Dict[str, str]:
    """Defaults, then token headers of the raw URL, then of the resolved URL"""
    token_headers = {
        **extract_token_headers(raw_url),
        **extract_token_headers(resolved_url),
    }
    return {**default_headers(), **token_headers}


def create_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=config.proxy.max_redirects,
        timeout=config.proxy.timeout_seconds,
    )


def get_http_client() -> httpx.AsyncClient:
    """Shared upstream client (FastAPI dependency)"""
    if state.http_client is None or state.http_client.is_closed:
        state.http_client = create_http_client()
    return state.http_client


async def close_http_client() -> None:
    if state.http_client is not None:
        await state.http_client.aclose()
        state.http_client = None


async def open_upstream(
    client: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    public_message: str,
) -> httpx.Response:
    """
    Send GET and return the response with its body unread.

    Raises UpstreamFetchError carrying ``public_message`` on transport errors
    and non-2xx statuses. The caller owns closing the returned response.
    """
    try:
        req = client.build_request("GET", url, headers=headers)
        resp = await client.send(req, stream=True)
    except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
        raise UpstreamFetchError(public_message) from e

    if not resp.is_success:
        status_code = resp.status_code
        await resp.aclose()
        raise UpstreamFetchError(public_message) from httpx.HTTPStatusError(
            f"Upstream responded {status_code}", request=resp.request, response=resp
        )

    return resp


def upstream_detail(exc: BaseException) -> str:
    """Short description of the underlying upstream failure for logs"""
    cause: Optional[BaseException] = exc.__cause__
    if cause is None:
        return str(exc)
    return f"{type(cause).__name__}: {cause}"
