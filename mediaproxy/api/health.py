from fastapi import APIRouter

from mediaproxy.config.settings import config
from mediaproxy.core.state import state
from mediaproxy.i18n import i18n

router = APIRouter()


@router.get("/")
async def root():
    """Service banner"""
    return {
        "success": True,
        "message": i18n.get("response.running"),
        "version": config.api.version,
        "endpoints": [config.api.prefix or "/"],
    }


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    redis_status = i18n.get("response.redis_disabled")
    if state.redis:
        try:
            await state.redis.ping()
            redis_status = i18n.get("response.redis_connected")
        except Exception:
            redis_status = i18n.get("response.redis_disconnected")

    return {
        "status": i18n.get("health.status"),
        "redis": redis_status,
        "ytdlp_version": state.ytdlp_version,
    }
