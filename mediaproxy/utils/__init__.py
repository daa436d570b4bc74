from .filename import build_download_filename, sanitize_filename
from .token import decode_token_payload, extract_token_headers

__all__ = [
    "build_download_filename",
    "decode_token_payload",
    "extract_token_headers",
    "sanitize_filename",
]
