"""Checks for URLs the browser is pointed at and links read off listings.

Two directions of trust:

- ``validate_url`` gates caller-supplied page and site URLs before any
  browser work starts; a rejected URL raises ``URLValidationError``.
- ``resolve_url`` turns hrefs and image sources from product cards into
  absolute URLs and quietly drops the ones that cannot be followed.
"""

import re
from typing import Collection, Optional
from urllib.parse import urljoin, urlsplit

__all__ = [
    "validate_url",
    "sanitize_url",
    "resolve_url",
    "is_safe_url",
    "URLValidationError",
    "BLOCKED_SCHEMES",
]


class URLValidationError(ValueError):
    """A URL was rejected before navigation."""


BLOCKED_SCHEMES = frozenset({"javascript", "data", "vbscript", "file"})
WEB_SCHEMES = ("http", "https")

# Path traversal or script injection markers
_SUSPICIOUS_RE = re.compile(r"\.\./|%2e%2e|<script|javascript:", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]|%00")
_HAS_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)


def sanitize_url(url: Optional[str]) -> str:
    """Trim whitespace and drop control characters and encoded NULs."""
    return _CONTROL_RE.sub("", (url or "").strip())


def validate_url(
    url: str,
    allowed_domains: Optional[Collection[str]] = None,
    require_https: bool = False,
) -> str:
    """Check a marketplace or page URL before opening it.

    Args:
        url: URL as given by the caller
        allowed_domains: Hosts to accept (None accepts any host)
        require_https: Reject plain http

    Returns:
        The sanitized URL

    Raises:
        URLValidationError: empty, blocked or non-web scheme, no host,
            host not allowed, or a traversal/injection marker
    """
    cleaned = sanitize_url(url)
    if not cleaned:
        raise URLValidationError("URL is empty")

    try:
        parts = urlsplit(cleaned)
    except ValueError as e:
        raise URLValidationError(f"Malformed URL {cleaned!r}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme in BLOCKED_SCHEMES:
        raise URLValidationError(f"Blocked URL scheme: {scheme}")
    if scheme not in WEB_SCHEMES:
        raise URLValidationError(f"Not a web URL (scheme {scheme or 'missing'}): {cleaned}")
    if require_https and scheme != "https":
        raise URLValidationError(f"HTTPS required: {cleaned}")

    host = parts.hostname or ""
    if not host:
        raise URLValidationError(f"URL has no host: {cleaned}")
    if allowed_domains is not None and host not in allowed_domains:
        raise URLValidationError(f"Host {host!r} is not one of {sorted(allowed_domains)}")

    marker = _SUSPICIOUS_RE.search(cleaned)
    if marker:
        raise URLValidationError(f"URL contains {marker.group(0)!r}")

    return cleaned


def resolve_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Absolute URL for an href or src read from a product card.

    Relative links resolve under ``base_url`` (treated as a directory),
    protocol-relative ones get https, links with any other scheme pass
    through, and blocked schemes give None.
    """
    link = sanitize_url(href)
    if not link:
        return None
    if link.startswith("//"):
        return "https:" + link
    if _HAS_SCHEME_RE.match(link):
        return None if urlsplit(link).scheme.lower() in BLOCKED_SCHEMES else link
    return urljoin(base_url.rstrip("/") + "/", link)


def is_safe_url(url: str) -> bool:
    """validate_url as a predicate."""
    try:
        validate_url(url)
    except URLValidationError:
        return False
    return True
