import logging
from contextlib import contextmanager
from typing import Iterator, Type, Tuple

logger = logging.getLogger(__name__)


class MediaProxyError(Exception):
    """Base error rendered as ``{"success": false, "error": message}``"""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ClientInputError(MediaProxyError):
    """Missing or invalid query parameter"""

    status_code = 400


class UpstreamFetchError(MediaProxyError):
    """Network, DNS or non-2xx failure talking to the media origin.

    The message is the generic public one; upstream detail only goes to the log.
    """

    status_code = 500


class StreamTransferError(MediaProxyError):
    """Upstream body failed while being piped to the client"""

    status_code = 500


class ExtractionError(MediaProxyError):
    """Extraction collaborator could not resolve a post URL"""

    status_code = 500


class TokenDecodeError(ValueError):
    """Malformed media token. Never leaves the token module."""


@contextmanager
def ignore_errors(
    action: str,
    *exc_types: Type[BaseException],
) -> Iterator[None]:
    """Log and discard ``exc_types`` raised inside the block.

    Marks best-effort steps (cleanup, cache writes) whose failure must not
    affect the response.
    """
    caught: Tuple[Type[BaseException], ...] = exc_types or (Exception,)
    try:
        yield
    except caught as e:
        logger.debug(f"Ignored error during {action}: {e!r}")
