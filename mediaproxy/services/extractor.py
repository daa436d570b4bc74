import asyncio
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from mediaproxy.config.settings import config
from mediaproxy.core.errors import ExtractionError, ignore_errors
from mediaproxy.i18n import i18n
from mediaproxy.infra.redis import get_redis
from mediaproxy.models.response import MediaInfo, MediaItem
from mediaproxy.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "heic"}


def _media_type(fmt: Dict[str, Any]) -> str:
    vcodec = fmt.get("vcodec")
    acodec = fmt.get("acodec")
    if (fmt.get("ext") or "").lower() in IMAGE_EXTENSIONS:
        return "image"
    if vcodec == "none" and acodec not in (None, "none"):
        return "audio"
    return "video"


def _quality(fmt: Dict[str, Any]) -> Optional[str]:
    if fmt.get("height"):
        return f"{fmt['height']}p"
    return fmt.get("format_note") or fmt.get("format_id")


def _media_items(entry: Dict[str, Any]) -> List[MediaItem]:
    formats = entry.get("formats") or []
    if not formats and entry.get("url"):
        formats = [entry]

    items = []
    for fmt in formats:
        url = fmt.get("url")
        if not url or (fmt.get("protocol") or "https").startswith("m3u8"):
            continue
        items.append(MediaItem(
            url=url,
            ext=fmt.get("ext"),
            type=_media_type(fmt),
            quality=_quality(fmt),
            width=fmt.get("width"),
            height=fmt.get("height"),
            has_audio=fmt.get("acodec") != "none",
            filesize=fmt.get("filesize") or fmt.get("filesize_approx"),
        ))

    # best first
    items.sort(key=lambda m: (m.type == "video", m.has_audio, m.height or 0), reverse=True)
    return items


def to_media_info(info: Dict[str, Any]) -> MediaInfo:
    """Map a yt-dlp JSON document (single post or carousel) to MediaInfo"""
    entries = info.get("entries") or [info]
    medias: List[MediaItem] = []
    for entry in entries:
        if entry:
            medias.extend(_media_items(entry))

    return MediaInfo(
        title=info.get("title"),
        uploader=info.get("uploader"),
        duration=info.get("duration"),
        thumbnail=info.get("thumbnail"),
        webpage_url=info.get("webpage_url"),
        medias=medias,
    )


class MediaExtractor:
    """Resolves a post URL into downloadable media URLs using yt-dlp"""

    async def extract(self, url: str, locale: Optional[str] = None) -> Dict[str, Any]:
        cache_key = f"extract:{hashlib.sha256(url.encode()).hexdigest()[:16]}"
        redis = get_redis()

        if redis:
            with ignore_errors("reading extraction cache"):
                cached = await redis.get(cache_key)
                if cached:
                    return json.loads(cached)

        cmd = YTDLPCommandBuilder.build_extract_command(url)
        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.extractor.timeout_seconds)
        except asyncio.TimeoutError:
            raise ExtractionError(i18n.get("error.extraction_timeout", locale=locale))
        except OSError as e:
            raise ExtractionError(i18n.get("error.extraction_failed", locale=locale, reason=str(e)))

        if result.returncode != 0:
            reason = result.stderr.decode(errors="replace").strip().splitlines()
            raise ExtractionError(i18n.get(
                "error.extraction_failed",
                locale=locale,
                reason=(reason[-1] if reason else f"exit code {result.returncode}")[:200],
            ))

        try:
            info = json.loads(result.stdout.decode())
        except ValueError:
            raise ExtractionError(i18n.get("error.extraction_failed", locale=locale, reason="unreadable output"))

        data = to_media_info(info).model_dump()

        if redis and config.extractor.cache_ttl:
            with ignore_errors("writing extraction cache"):
                await redis.setex(cache_key, config.extractor.cache_ttl, json.dumps(data))

        return data


extractor = MediaExtractor()


def get_extractor() -> MediaExtractor:
    """Extraction collaborator (FastAPI dependency)"""
    return extractor


async def detect_ytdlp_version() -> str:
    try:
        result = await SubprocessExecutor.run(YTDLPCommandBuilder.build_version_command(), timeout=10.0)
    except (OSError, asyncio.TimeoutError) as e:
        logger.warning(f"yt-dlp not available: {e}")
        return "unknown"
    return result.stdout.decode().strip() or "unknown"
