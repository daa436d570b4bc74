import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from mediaproxy.api import health, download, media
from mediaproxy.config.settings import config
from mediaproxy.core.errors import MediaProxyError
from mediaproxy.core.logging import request_context_middleware, setup_logging
from mediaproxy.core.state import state
from mediaproxy.i18n import i18n
from mediaproxy.infra.rate_limit import RateLimitExceeded
from mediaproxy.infra.redis import init_redis, close_redis
from mediaproxy.infra.scratch import get_downloads_dir
from mediaproxy.services.extractor import detect_ytdlp_version
from mediaproxy.services.upstream import close_http_client
from mediaproxy.utils.locale import get_locale

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    get_downloads_dir().mkdir(parents=True, exist_ok=True)
    await init_redis()
    state.ytdlp_version = await detect_ytdlp_version()
    logger.info(f"{config.api.title} {config.api.version} ready (yt-dlp {state.ytdlp_version})")

    yield

    await close_http_client()
    await close_redis()

app = FastAPI(
    title=config.api.title,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_context_middleware)

# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(download.router, prefix=config.api.prefix, tags=["Download"])
app.include_router(media.router, prefix=config.api.prefix, tags=["Media"])

def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )

@app.exception_handler(MediaProxyError)
async def media_proxy_error_handler(request: Request, exc: MediaProxyError):
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
    return error_response(exc.status_code, exc.message, headers)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        locale = get_locale(request.headers.get("accept-language"))
        return error_response(404, i18n.get("error.not_found", locale=locale))
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(400, message)

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    locale = get_locale(request.headers.get("accept-language"))
    return error_response(500, i18n.get("error.internal", locale=locale))
