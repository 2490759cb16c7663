"""Cache key normalisation.

A cache key is the canonical string form of a URL: scheme and host are
lower-cased, default ports are dropped, the fragment is removed, and query
parameters are sorted so that ``?b=2&a=1`` and ``?a=1&b=2`` resolve to
the same entry.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fetchcache.exceptions import InvalidUrlError

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Return the canonical cache key for *url*.

    Args:
        url: An absolute ``http`` or ``https`` URL.

    Returns:
        The normalised URL string.

    Raises:
        InvalidUrlError: If *url* has no scheme or host, or an invalid port.

    Example::

        >>> normalize_url("HTTPS://Api.Example.com:443/items?b=2&a=1#top")
        'https://api.example.com/items?a=1&b=2'
    """
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL {url!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        raise InvalidUrlError(f"Invalid URL {url!r}: expected an absolute URL")

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((scheme, netloc, path, query, ""))
