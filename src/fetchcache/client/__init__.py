"""HTTP client module for fetchcache.

Provides the blocking transport the fetcher sends requests through and the
projection of response headers onto cache metadata.

Classes:
    :class:`Transport` -- the interface the fetcher depends on.
    :class:`HttpTransport` -- implementation backed by :class:`httpx.Client`.
    :class:`Response` -- status, projected headers, and body of a response.

Functions:
    :func:`project_headers` -- extract ``ETag``, page numbers, and the next
    page link from raw headers.

Example::

    from fetchcache.client import HttpTransport

    with HttpTransport(timeout=10) as transport:
        resp = transport.get("https://api.example.com/items")
"""

from fetchcache.client.headers import project_headers
from fetchcache.client.transport import HttpTransport, Response, Transport

__all__ = ["HttpTransport", "Response", "Transport", "project_headers"]
