from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from mediaproxy.config.settings import config
from mediaproxy.core.errors import StreamTransferError, UpstreamFetchError
from mediaproxy.core.logging import log_error, log_info
from mediaproxy.i18n import i18n
from mediaproxy.infra.scratch import ScratchPurge
from mediaproxy.models.internal import MediaRequest
from mediaproxy.services.upstream import build_upstream_headers, open_upstream, upstream_detail
from mediaproxy.utils.filename import build_download_filename
from mediaproxy.utils.locale import safe_url_for_log

DEFAULT_CONTENT_TYPE = "application/octet-stream"

Finalizer = Callable[[], Awaitable[None]]


class FinalizingStreamingResponse(StreamingResponse):
    """StreamingResponse that awaits ``on_close`` once the ASGI call ends,
    whether the body completed or the client went away."""

    def __init__(self, content, *, on_close: Optional[Finalizer] = None, **kwargs):
        super().__init__(content, **kwargs)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if self.on_close is not None:
                await self.on_close()


async def _first_chunk(
    request: Request,
    upstream: httpx.Response,
    chunks: AsyncIterator[bytes],
    public_message: str,
) -> bytes:
    """Read one chunk before any response header is committed"""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return b""
    except httpx.HTTPError as e:
        await upstream.aclose()
        log_error(request, f"Upstream body failed before send: {type(e).__name__}: {e}")
        raise StreamTransferError(public_message) from e


async def _pipe(
    request: Request,
    upstream: httpx.Response,
    first: bytes,
    chunks: AsyncIterator[bytes],
    on_complete: Optional[Finalizer] = None,
) -> AsyncIterator[bytes]:
    """Relay upstream bytes. Errors here happen after headers went out, so
    re-raising is the only way left to abort the client connection."""
    try:
        if first:
            yield first
        async for chunk in chunks:
            yield chunk
    except httpx.HTTPError as e:
        log_error(request, f"Upstream body failed mid-stream: {type(e).__name__}: {e}")
        raise StreamTransferError("Upstream stream interrupted") from e
    else:
        if on_complete is not None:
            await on_complete()
    finally:
        await upstream.aclose()


class MediaProxyService:
    """Fetches media upstream and relays it to the client"""

    @staticmethod
    async def _open(
        request: Request,
        client: httpx.AsyncClient,
        media: MediaRequest,
        public_message: str,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = build_upstream_headers(media.raw_url, media.resolved_url)
        if extra_headers:
            headers.update(extra_headers)

        try:
            return await open_upstream(client, media.resolved_url, headers, public_message)
        except UpstreamFetchError as e:
            log_error(
                request,
                f"Upstream fetch failed for {safe_url_for_log(media.resolved_url)}: {upstream_detail(e)}",
            )
            raise

    @staticmethod
    async def download_file(
        request: Request,
        client: httpx.AsyncClient,
        media: MediaRequest,
        downloads_dir: Path,
        locale: str,
    ) -> StreamingResponse:
        """Relay media as an attachment, then purge the scratch directory once"""
        final_name = build_download_filename(media.resolved_url, media.desired_filename)

        upstream = await MediaProxyService._open(
            request, client, media, i18n.get("error.download_failed", locale=locale)
        )
        purge = ScratchPurge(downloads_dir)
        chunks = upstream.aiter_raw(config.proxy.chunk_size)
        try:
            first = await _first_chunk(request, upstream, chunks, i18n.get("error.send_failed", locale=locale))
        except StreamTransferError:
            await purge.finalize()
            raise

        headers = {
            "Content-Disposition": f'attachment; filename="{final_name}"',
            "Content-Type": upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        }
        for name in ("content-length", "content-encoding"):
            if upstream.headers.get(name):
                headers[name.title()] = upstream.headers[name]

        log_info(request, f"Sending {final_name} from {safe_url_for_log(media.resolved_url)}")

        return FinalizingStreamingResponse(
            _pipe(request, upstream, first, chunks, on_complete=purge.finalize),
            headers=headers,
            on_close=purge.finalize,
        )

    @staticmethod
    async def stream_inline(
        request: Request,
        client: httpx.AsyncClient,
        media: MediaRequest,
        locale: str,
    ) -> StreamingResponse:
        """Relay media inline; Range passes through so players can seek"""
        public_message = i18n.get("error.stream_failed", locale=locale)

        extra = {}
        range_header = request.headers.get("range")
        if range_header:
            extra["Range"] = range_header

        upstream = await MediaProxyService._open(request, client, media, public_message, extra)
        chunks = upstream.aiter_raw(config.proxy.chunk_size)
        first = await _first_chunk(request, upstream, chunks, public_message)

        headers = {
            "Content-Type": upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        }
        for name in ("content-length", "accept-ranges", "content-range", "content-encoding"):
            if upstream.headers.get(name):
                headers[name.title()] = upstream.headers[name]

        log_info(request, f"Streaming {safe_url_for_log(media.resolved_url)} ({upstream.status_code})")

        return StreamingResponse(
            _pipe(request, upstream, first, chunks),
            status_code=upstream.status_code,
            headers=headers,
        )
