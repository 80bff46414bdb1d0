"""
Input sanitization helpers.

Applied by the request schemas to free-text fields and URLs before they
reach the backend. Rendering is additionally autoescaped by Jinja2.
"""

import html
import re
from typing import Optional
from urllib.parse import urlparse

_TAG_RE = re.compile(r"<[^>]*>")


def escape_html(unsafe: str) -> str:
    """Escape HTML special characters."""
    return html.escape(unsafe, quote=True)


def strip_html(value: str) -> str:
    """Strip all HTML tags from a string."""
    return _TAG_RE.sub("", value)


def sanitize_input(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """Strip tags, trim whitespace and cap the length of user text."""
    if value is None:
        return None
    return strip_html(value).strip()[:max_length]


def sanitize_url(url: Optional[str]) -> Optional[str]:
    """
    Keep only absolute http(s) URLs and site-relative paths.

    Anything else (javascript:, data:, malformed) becomes an empty string.
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return ""
    if url.startswith("/") and not url.startswith("//"):
        return url
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return url
