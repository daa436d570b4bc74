import httpx
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from fastapi import APIRouter, Request, Depends, Query
from mediaproxy.core.errors import ClientInputError
from mediaproxy.infra.scratch import get_downloads_dir
from mediaproxy.models.internal import MediaRequest
from mediaproxy.models.response import ERROR_RESPONSES
from mediaproxy.services.proxy import MediaProxyService
from mediaproxy.services.upstream import get_http_client, resolve_media_url
from mediaproxy.utils.locale import get_locale
from mediaproxy.i18n import i18n

router = APIRouter()

def _require_media_url(media_url: Optional[str], locale: str) -> str:
    if not media_url:
        raise ClientInputError(i18n.get("error.missing_param", locale=locale, name="mediaUrl"))
    return media_url

@router.get("/file", responses=ERROR_RESPONSES)
async def download_file(
    request: Request,
    media_url: Optional[str] = Query(None, alias="mediaUrl", description="Direct media URL"),
    filename: Optional[str] = Query(None, description="Suggested download name"),
    client: httpx.AsyncClient = Depends(get_http_client),
    downloads_dir: Path = Depends(get_downloads_dir),
):
    """Proxy a media URL as a file attachment"""
    locale = get_locale(request.headers.get("accept-language"))
    raw_url = _require_media_url(media_url, locale)

    resolved_url = resolve_media_url(raw_url)
    try:
        parsed = urlparse(resolved_url)
    except ValueError:
        parsed = None
    if parsed is None or not parsed.scheme or not parsed.netloc:
        raise ClientInputError(i18n.get("error.invalid_media_url", locale=locale))

    media = MediaRequest(raw_url=raw_url, resolved_url=resolved_url, desired_filename=filename or None)
    return await MediaProxyService.download_file(request, client, media, downloads_dir, locale)

@router.get("/stream", responses=ERROR_RESPONSES)
async def stream_media(
    request: Request,
    media_url: Optional[str] = Query(None, alias="mediaUrl", description="Direct media URL"),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Proxy a media URL inline so browsers can play origin-protected media"""
    locale = get_locale(request.headers.get("accept-language"))
    raw_url = _require_media_url(media_url, locale)

    media = MediaRequest(raw_url=raw_url, resolved_url=resolve_media_url(raw_url))
    return await MediaProxyService.stream_inline(request, client, media, locale)
