"""Blocking HTTP transport used by the fetcher.

:class:`HttpTransport` wraps :class:`httpx.Client` and performs plain or
conditional GET requests.  It deliberately does not interpret status codes:
``304 Not Modified`` and error statuses are returned to the
:class:`~fetchcache.fetcher.Fetcher`, which owns the revalidation logic.
Any :class:`httpx.RequestError`, redirect loops included, is raised as
:class:`~fetchcache.exceptions.TransportError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from fetchcache.client.headers import project_headers
from fetchcache.exceptions import TransportError
from fetchcache.models import Headers

DEFAULT_TIMEOUT = 10.0
"""Overall request timeout in seconds."""


@dataclass(frozen=True)
class Response:
    """The parts of an HTTP response the fetcher needs.

    Attributes:
        url: The URL that was requested.
        status_code: HTTP status code.
        headers: Projected cache metadata.
        text: Decoded response body.
    """

    url: str
    status_code: int
    headers: Headers
    text: str

    @property
    def is_success(self) -> bool:
        """``True`` for any 2xx status."""
        return 200 <= self.status_code < 300

    @property
    def is_not_modified(self) -> bool:
        """``True`` for ``304 Not Modified``."""
        return self.status_code == 304


class Transport(ABC):
    """Something that can perform a (conditional) GET."""

    @abstractmethod
    def get(self, url: str, etag: Optional[str] = None) -> Response:
        """Send a GET request to *url*.

        Args:
            url: Absolute URL.
            etag: When given, sent as ``If-None-Match``.

        Returns:
            The :class:`Response`, whatever its status code.

        Raises:
            TransportError: If no complete response could be obtained.
        """
        ...

    def close(self) -> None:
        """Release network resources. The default does nothing."""


class HttpTransport(Transport):
    """:class:`Transport` backed by :class:`httpx.Client`.

    The client is opened lazily on the first request and may be closed
    explicitly or by using the transport as a context manager.

    Args:
        timeout: Overall timeout per request, in seconds.
        verify_ssl: Verify TLS certificates.
        user_agent: Value of the ``User-Agent`` header.
        transport: Optional :class:`httpx.BaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        with HttpTransport(timeout=5) as transport:
            response = transport.get("https://api.example.com/items", etag='"abc"')
            if response.is_not_modified:
                ...
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        user_agent: str = "fetchcache",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> HttpTransport:
        self._ensure_client()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def get(self, url: str, etag: Optional[str] = None) -> Response:
        client = self._ensure_client()
        headers = {"Accept": "application/json"}
        if etag is not None:
            headers["If-None-Match"] = etag
        try:
            resp = client.get(url, headers=headers)
            text = resp.text
        except httpx.RequestError as exc:
            raise TransportError(f"GET {url} failed: {exc}") from exc
        return Response(
            url=url,
            status_code=resp.status_code,
            headers=project_headers(resp.headers),
            text=text,
        )

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout,
                verify=self._verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self._user_agent},
                transport=self._transport,
            )
        return self._client
