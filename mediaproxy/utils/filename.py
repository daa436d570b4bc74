import posixpath
import re
from typing import Optional
from urllib.parse import unquote, urlparse

FALLBACK_STEM = "media"
FALLBACK_EXTENSION = "mp4"

_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9_-]+")
_HYPHEN_RUN = re.compile(r"-+")


def sanitize_filename(name: str) -> str:
    """Reduce a name to ``[A-Za-z0-9_-]`` so it is safe inside Content-Disposition"""
    name = _UNSAFE_RUN.sub("-", name)
    name = _HYPHEN_RUN.sub("-", name)
    return name.strip("-")


def _split(name: str) -> tuple[str, str]:
    stem, ext = posixpath.splitext(name)
    return stem, ext.lstrip(".")


def build_download_filename(resolved_url: str, desired_filename: Optional[str] = None) -> str:
    """
    Final attachment name: ``<stem>.<extension>``.

    The stem comes from the client-supplied name, then the URL basename, then
    ``media``; the extension from the client name, then the URL basename, then
    ``mp4``. Both parts are sanitized separately.
    """
    url_stem, url_ext = _split(posixpath.basename(unquote(urlparse(resolved_url).path)))
    client_stem, client_ext = _split(desired_filename or "")

    stem = sanitize_filename(client_stem) or sanitize_filename(url_stem) or FALLBACK_STEM
    extension = sanitize_filename(client_ext) or sanitize_filename(url_ext) or FALLBACK_EXTENSION

    return f"{stem}.{extension}"
