from .errors import (
    ClientInputError,
    ExtractionError,
    MediaProxyError,
    StreamTransferError,
    UpstreamFetchError,
    ignore_errors,
)

__all__ = [
    "ClientInputError",
    "ExtractionError",
    "MediaProxyError",
    "StreamTransferError",
    "UpstreamFetchError",
    "ignore_errors",
]
