"""
URL Utilities

Normalization and fingerprinting used to deduplicate sitemap entries.
"""

import hashlib
from typing import Optional
from urllib.parse import parse_qsl, urldefrag, urlencode, urlsplit, urlunsplit

MAX_URL_LENGTH = 2083

TRACKING_KEYS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "fbclid",
}

DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(url: str | None) -> bool:
    """Check that a URL is absolute and uses http(s)."""
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError:
        # malformed netloc, e.g. an unterminated IPv6 literal
        return False
    return parts.scheme.lower() in DEFAULT_PORTS and bool(hostname)


def normalize_url(url: str | None) -> Optional[str]:
    """
    Normalize a URL for deduplication.

    Lowercases scheme and host, drops default ports, fragments and common
    tracking parameters, and sorts the remaining query parameters.

    Returns:
        Normalized URL, or None if the URL is not a usable http(s) URL
    """
    if not is_http_url(url):
        return None
    href, _ = urldefrag(url.strip())
    if len(href) > MAX_URL_LENGTH:
        return None

    parts = urlsplit(href)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    try:
        port = parts.port
    except ValueError:
        return None
    netloc = host if port in (None, DEFAULT_PORTS[scheme]) else f"{host}:{port}"
    query = urlencode(
        sorted(
            (k, v)
            for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if k not in TRACKING_KEYS
        )
    )
    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, query, ""))


def compute_unique_key(url: str) -> str:
    """
    Derive the dedup key for a URL.

    Raises:
        ValueError: if the URL is not an absolute http(s) URL
    """
    key = normalize_url(url)
    if key is None:
        raise ValueError(f"Cannot derive unique key from URL: {url!r}")
    return key


def request_id(unique_key: str) -> str:
    """Generate 16-character id for a unique key."""
    return hashlib.sha256(unique_key.encode()).hexdigest()[:16]
