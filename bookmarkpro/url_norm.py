from __future__ import annotations

from urllib.parse import urlencode, urlparse

from .errors import InvalidUrl

KNOWN_SCHEMES = ("http://", "https://")
DEFAULT_SCHEME = "https://"
FAVICON_SERVICE = "https://s2.googleusercontent.com/s2/favicons"


def ensure_scheme(url: str) -> str:
    if url.startswith(KNOWN_SCHEMES):
        return url
    return f"{DEFAULT_SCHEME}{url}"


def normalize_bookmark_url(url: str) -> str:
    """Return ``url`` with an explicit scheme, or raise InvalidUrl.

    Leading/trailing whitespace is the caller's to trim; inner whitespace is rejected.
    """
    if not (url or "").strip():
        raise InvalidUrl("URL must not be empty")
    out = ensure_scheme(url)
    if any(ch.isspace() for ch in out):
        raise InvalidUrl(f"URL contains whitespace: {url!r}")
    if not hostname_of(out):
        raise InvalidUrl(f"URL has no host: {url!r}")
    return out


def hostname_of(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def favicon_url(url: str, size: int = 32) -> str:
    """Favicon lookup URL for a bookmark; empty string when the URL is malformed."""
    host = hostname_of(url if url.startswith("http") else f"{DEFAULT_SCHEME}{url}")
    if not host:
        return ""
    return f"{FAVICON_SERVICE}?{urlencode({'domain': host, 'sz': size})}"
