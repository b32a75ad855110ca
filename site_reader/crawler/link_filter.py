# site_reader/crawler/link_filter.py
"""
Link scope filtering and URL normalization utilities for SiteReader.

Every URL that enters the crawl frontier or the visited set goes through
:func:`normalize_url`, so equivalent spellings collapse to one key:

* scheme and host are lower-cased, default ports (80/443) dropped;
* the fragment is removed, the query string is kept;
* a single trailing slash is stripped from the path (the site root becomes
  ``https://example.com``).
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Dict, Final, FrozenSet, Optional, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlsplit, urlunsplit

from site_reader.errors import InvalidStartUrl

__all__ = (
    "ASSET_EXTENSIONS",
    "filter_links",
    "scoped_links",
    "normalize_url",
    "base_domain",
    "strip_www",
)

ASSET_EXTENSIONS: Final[FrozenSet[str]] = frozenset(
    {
        # images
        ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".ico", ".bmp", ".tif", ".tiff", ".avif",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".csv",
        # archives / binaries
        ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz", ".exe", ".dmg", ".msi", ".apk", ".iso",
        # media
        ".mp3", ".mp4", ".wav", ".ogg", ".webm", ".avi", ".mov", ".mkv", ".flac", ".m4a",
        # fonts, styles, scripts
        ".woff", ".woff2", ".ttf", ".otf", ".eot", ".css", ".js", ".json", ".xml",
    }
)

_SKIP_PREFIXES: Final[tuple[str, ...]] = ("#", "mailto:", "javascript:", "tel:", "data:")
_DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}


def strip_www(host: str) -> str:
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def normalize_url(url: str) -> str:
    """
    Canonical form used for deduplication. Raises ValueError on malformed input
    (e.g. invalid port or IPv6 literal).
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port  # ValueError on garbage ports
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    if parts.username:
        creds = parts.username + (f":{parts.password}" if parts.password else "")
        netloc = f"{creds}@{netloc}"
    path = parts.path
    if path.endswith("/"):
        path = path[:-1]
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def base_domain(url: str) -> str:
    """Return the crawl scope domain of *url* (host without ``www.``)."""
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as exc:
        raise InvalidStartUrl(url) from exc
    if parts.scheme.lower() not in _DEFAULT_PORTS or not host:
        raise InvalidStartUrl(url)
    return strip_www(host)


def _is_asset(path: str) -> bool:
    last = path.rsplit("/", 1)[-1].lower()
    dot = last.rfind(".")
    return dot != -1 and last[dot:] in ASSET_EXTENSIONS


def _in_scope(host: str, domain: str, allow_subdomains: bool) -> bool:
    if host == domain:
        return True
    return allow_subdomains and host.endswith("." + domain)


def _resolve(href: str, current_url: str) -> Optional[Tuple[str, str]]:
    # (dedup key, absolute URL as written minus the fragment)
    try:
        absolute, _ = urldefrag(urljoin(current_url, href))
        parts = urlsplit(absolute)
        if parts.scheme.lower() not in _DEFAULT_PORTS or not parts.hostname:
            return None
        return normalize_url(absolute), absolute
    except ValueError:
        return None


def scoped_links(
    raw_links: Iterable[str],
    current_url: str,
    domain: str,
    allow_subdomains: bool = False,
) -> Dict[str, str]:
    """
    Map the normalized key of every in-scope, non-asset link on *current_url*
    to the absolute URL as written on the page (fragment removed).

    The key is only for deduplication; the value is what gets fetched and what
    relative links on that page resolve against, so ``/docs/`` keeps its slash.
    The first spelling seen wins when several collapse to one key.
    """
    scope = strip_www(domain)
    accepted: Dict[str, str] = {}
    for raw in raw_links:
        if not isinstance(raw, str):
            continue
        href = raw.strip()
        if not href or href.lower().startswith(_SKIP_PREFIXES):
            continue
        resolved = _resolve(href, current_url)
        if resolved is None:
            continue
        key, absolute = resolved
        parts = urlsplit(key)
        if not _in_scope(strip_www(parts.hostname or ""), scope, allow_subdomains):
            continue
        if _is_asset(parts.path):
            continue
        accepted.setdefault(key, absolute)
    return accepted


def filter_links(
    raw_links: Iterable[str],
    current_url: str,
    domain: str,
    allow_subdomains: bool = False,
) -> Set[str]:
    """
    Narrow raw hrefs found on *current_url* to absolute, in-scope, non-asset URLs.

    Relative links are resolved against *current_url*. ``www.`` is ignored on
    both sides of the host comparison. Malformed links are dropped; this
    function never raises for bad input. Returns normalized URLs.
    """
    return set(scoped_links(raw_links, current_url, domain, allow_subdomains))
