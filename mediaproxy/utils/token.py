import base64
import binascii
import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qs, urlparse

from mediaproxy.core.errors import TokenDecodeError

logger = logging.getLogger(__name__)

TOKEN_PARAM = "token"


def decode_token_payload(token: str) -> Any:
    """
    Decode the middle segment of a dot-separated signed token.

    The signature is not verified: origins put CDN hint headers in there and
    we only read them back.
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise TokenDecodeError("token has no payload segment")

    segment = parts[1].replace("-", "+").replace("_", "/")
    segment += "=" * (-len(segment) % 4)

    try:
        raw = base64.b64decode(segment)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise TokenDecodeError(str(e)) from e


def _sendable(text: str) -> bool:
    """Header text must be ASCII without CR/LF"""
    return text.isascii() and "\r" not in text and "\n" not in text


def _header_items(headers: Dict[Any, Any]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for name, value in headers.items():
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            continue
        name, value = str(name), str(value)
        if not _sendable(name) or not _sendable(value):
            continue
        result[name] = value
    return result


def extract_token_headers(url: str) -> Dict[str, str]:
    """Header overrides embedded in the URL's ``token`` parameter, or ``{}``"""
    try:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return {}

        tokens = parse_qs(parsed.query).get(TOKEN_PARAM)
        if not tokens or not tokens[0]:
            return {}

        payload = decode_token_payload(tokens[0])
    except (TokenDecodeError, ValueError) as e:
        logger.debug(f"Ignoring undecodable media token: {e}")
        return {}

    if not isinstance(payload, dict):
        return {}

    headers = payload.get("headers")
    if not isinstance(headers, dict):
        return {}

    return _header_items(headers)
