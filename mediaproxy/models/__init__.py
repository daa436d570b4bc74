from .internal import MediaRequest
from .response import ERROR_RESPONSES, ErrorResponse, MediaInfo, MediaItem, SuccessResponse

__all__ = ["ERROR_RESPONSES", "ErrorResponse", "MediaInfo", "MediaItem", "MediaRequest", "SuccessResponse"]
