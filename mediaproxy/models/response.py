from typing import Any, List, Optional

from pydantic import BaseModel


class MediaItem(BaseModel):
    """Single downloadable media URL"""
    url: str
    ext: Optional[str] = None
    type: str = "video"
    quality: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    has_audio: bool = True
    filesize: Optional[int] = None


class MediaInfo(BaseModel):
    """Extraction result for a post URL"""
    title: Optional[str] = None
    uploader: Optional[str] = None
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    webpage_url: Optional[str] = None
    medias: List[MediaItem] = []


class SuccessResponse(BaseModel):
    success: bool = True
    data: Any = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
