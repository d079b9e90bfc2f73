"""URL acceptance rules shared by the frontier, ingest and export."""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib import parse as urlparse

DEFAULT_BLACKLIST: tuple[str, ...] = ("youtube.com", "web.archive.org", "jcink.net")
ALLOWED_SCHEMES = frozenset({"http", "https"})

# Code points a URL host may not contain
_FORBIDDEN_HOST_CHARS = re.compile(r"[\s\x00-\x1f\x7f#%/<>?@\\^|\[\]\"'`{}]")


def validate_host(host: str, blacklist: Iterable[str] | None = None) -> bool:
    """Return ``False`` when ``host`` ends with any blacklisted suffix.

    Matching is case-insensitive.
    """

    entries = DEFAULT_BLACKLIST if blacklist is None else blacklist
    host = host.lower()
    return not any(host.endswith(entry.lower()) for entry in entries if entry)


def _split(url: str) -> urlparse.SplitResult | None:
    if not isinstance(url, str) or not url.strip():
        return None
    try:
        parsed = urlparse.urlsplit(url.strip())
        # ``hostname`` raises on malformed IPv6 literals, ``port`` on
        # non-numeric or out of range ports
        host, _port = parsed.hostname, parsed.port
    except ValueError:
        return None
    if parsed.scheme not in ALLOWED_SCHEMES or not host:
        return None
    if _FORBIDDEN_HOST_CHARS.search(host):
        return None
    return parsed


def validate_url(url: str, blacklist: Iterable[str] | None = None) -> bool:
    """Check that ``url`` parses, uses http(s) and is not on a blacklisted host."""

    parsed = _split(url)
    if parsed is None:
        return False
    return validate_host(parsed.hostname, blacklist)


def hostname(url: str, blacklist: Iterable[str] | None = None) -> str | None:
    """Return the lower-cased host of ``url`` or ``None`` if it is not valid."""

    parsed = _split(url)
    if parsed is None or not validate_host(parsed.hostname, blacklist):
        return None
    return parsed.hostname
