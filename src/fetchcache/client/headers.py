"""Projection of raw response headers onto :class:`~fetchcache.models.Headers`.

Only four values matter to the cache: the ``ETag`` validator, the current
and total page numbers (``x-current-page`` / ``x-total-pages``), and the
``rel="next"`` target of the ``Link`` header.  Extraction is best-effort:
anything missing or malformed becomes ``None``, and so does any value
that is not valid UTF-8.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, Union

import httpx

from fetchcache.models import Headers

ETAG_HEADER = "etag"
CURRENT_PAGE_HEADER = "x-current-page"
TOTAL_PAGES_HEADER = "x-total-pages"
LINK_HEADER = "link"

LINK_NEXT_PAGE_RE = re.compile(r'<([^>]*)>; rel="next"')

RawHeaders = Union[httpx.Headers, Mapping[str, str]]


def project_headers(raw: RawHeaders) -> Headers:
    """Extract the cache-relevant headers from *raw*.

    Args:
        raw: Response headers, either :class:`httpx.Headers` or a plain
            mapping (looked up case-insensitively).

    Returns:
        A :class:`~fetchcache.models.Headers` instance. Never raises.

    Example::

        >>> project_headers({"ETag": "abc", "x-total-pages": "3"})
        Headers(etag='abc', this_page=None, next_page=None, last_page=3)
    """
    headers = _raw_values(raw) if isinstance(raw, httpx.Headers) else _lower_keys(raw)
    return Headers(
        etag=_text(headers.get(ETAG_HEADER)),
        this_page=_page_number(headers.get(CURRENT_PAGE_HEADER)),
        next_page=_next_link(headers.get(LINK_HEADER)),
        last_page=_page_number(headers.get(TOTAL_PAGES_HEADER)),
    )


def _lower_keys(raw: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): v for k, v in raw.items()}


def _raw_values(raw: httpx.Headers) -> dict[str, bytes]:
    """Undecoded header values; repeated headers are joined with ``, ``."""
    values: dict[str, bytes] = {}
    for name, value in raw.raw:
        key = name.decode("latin-1").lower()
        values[key] = values[key] + b", " + value if key in values else value
    return values


def _text(value: object) -> Optional[str]:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(value, str):
        return value
    return None


def _page_number(value: object) -> Optional[int]:
    text = _text(value)
    if text is None:
        return None
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def _next_link(value: object) -> Optional[str]:
    text = _text(value)
    if text is None:
        return None
    match = LINK_NEXT_PAGE_RE.search(text)
    if match is None:
        return None
    return match.group(1)
