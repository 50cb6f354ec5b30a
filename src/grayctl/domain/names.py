"""Domain name extraction, normalization, and validation.

A domain is the universal key joining the permanent list, overrides, and
observers. Normalization never fails: malformed input produces a
best-effort string, and URLs that carry no web host produce ``None``,
which matches nothing.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_WWW_PREFIX = re.compile(r"^www\.")
_SCHEME_WWW = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)
_PORT = re.compile(r":\d*$")
_HOST_END = re.compile(r"[/?#]")
_HOST_PORT = re.compile(r"^[^:]+:\d+$")
_OTHER_SCHEME = re.compile(r"^[a-z][a-z0-9+-]*:", re.IGNORECASE)
_VALID_DOMAIN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9]?(\.[a-zA-Z]{2,})+$")

WEB_SCHEMES = ("http://", "https://")


def extract_domain(url: str | None) -> str | None:
    """Return the normalized host of an http(s) *url*, or None.

    Strips credentials, port, path, query, and a leading ``www.``.

    Examples:
        >>> extract_domain("https://www.Example.com:8080/path?q=1")
        'example.com'
        >>> extract_domain("chrome://extensions") is None
        True
    """
    if not url or not url.lower().startswith(WEB_SCHEMES):
        return None
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return _WWW_PREFIX.sub("", host.lower())


def normalize_domain(value: str) -> str:
    """Normalize user-typed input into a domain.

    Removes an http(s) scheme, credentials, a port, a ``www.`` prefix, and
    anything after the host, then lowercases.

    Examples:
        >>> normalize_domain("HTTPS://www.Example.com/some/page")
        'example.com'
    """
    text = _SCHEME_WWW.sub("", value.strip())
    host = _HOST_END.split(text, maxsplit=1)[0].rsplit("@", 1)[-1]
    return _WWW_PREFIX.sub("", _PORT.sub("", host).lower())


def to_domain(value: str | None) -> str | None:
    """Coerce a URL or a bare domain into a domain key.

    Values with an http(s) scheme are treated as URLs; anything else is
    normalized as user input, so ``host:port`` and ``user@host`` reduce to
    the host. Any other scheme (``chrome:``, ``about:``) and empty input
    yield ``None``.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.lower().startswith(WEB_SCHEMES):
        return extract_domain(text)
    authority = _HOST_END.split(text, maxsplit=1)[0]
    bare = "@" in authority or _HOST_PORT.match(authority) is not None
    if not bare and _OTHER_SCHEME.match(text):
        return None
    return normalize_domain(text) or None


def is_valid_domain(domain: str) -> bool:
    """Check that *domain* looks like a registrable host name."""
    return _VALID_DOMAIN.match(domain) is not None
