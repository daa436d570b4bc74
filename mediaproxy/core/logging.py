from fastapi import Request
import logging
import time
import uuid
from typing import Any
from rich.logging import RichHandler
from mediaproxy.config.settings import config

logger = logging.getLogger("mediaproxy")

class RequestIdFilter(logging.Filter):
    """Make %(request_id)s safe for records logged outside a request"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True

def setup_logging() -> None:
    """Configure the root logger from config.logging"""
    if config.logging.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.logging.format))
    handler.addFilter(RequestIdFilter())

    logging.basicConfig(
        level=config.logging.level,
        handlers=[handler],
        force=True,
    )

def log_with_context(
    request: Request,
    level: int,
    message: str,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    extra = {
        "request_id": getattr(request.state, "request_id", "unknown"),
        **kwargs
    }
    logger.log(level, message, extra=extra)

def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)

def log_error(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)

async def request_context_middleware(request: Request, call_next):
    """Assign a request id and write one access-log line per request"""
    request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
    started = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log_info(request, f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
    return response
