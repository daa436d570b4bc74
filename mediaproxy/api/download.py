from typing import Optional
from fastapi import APIRouter, Request, Depends, Query
from mediaproxy.core.errors import ClientInputError, ExtractionError
from mediaproxy.core.logging import log_info, log_error
from mediaproxy.infra.rate_limit import rate_limiter
from mediaproxy.models.response import ERROR_RESPONSES, ErrorResponse, SuccessResponse
from mediaproxy.services.extractor import MediaExtractor, get_extractor
from mediaproxy.utils.locale import get_locale, safe_url_for_log
from mediaproxy.i18n import i18n

router = APIRouter()

@router.get(
    "/download",
    response_model=SuccessResponse,
    responses={**ERROR_RESPONSES, 429: {"model": ErrorResponse}},
    dependencies=[Depends(rate_limiter)],
)
async def download_info(
    request: Request,
    url: Optional[str] = Query(None, description="Facebook or Instagram post URL"),
    extractor: MediaExtractor = Depends(get_extractor),
):
    """Resolve a post URL into downloadable media URLs"""
    locale = get_locale(request.headers.get("accept-language"))

    if not url:
        raise ClientInputError(i18n.get("error.missing_param", locale=locale, name="url"))

    log_info(request, f"Extracting media from {safe_url_for_log(url)}")

    try:
        data = await extractor.extract(url, locale=locale)
    except ExtractionError as e:
        log_error(request, f"Extraction error: {e.message}")
        raise
    except Exception as e:
        log_error(request, f"Extraction error: {str(e)}")
        raise ExtractionError(str(e)) from e

    return SuccessResponse(data=data)
