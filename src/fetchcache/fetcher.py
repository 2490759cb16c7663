"""Fetch-through cache orchestration.

:class:`Fetcher` decides, for every request, whether to serve from the
cache, revalidate, or fetch fresh::

               No
      Cached? ----------------------------------+
       |                                        |
       | Yes                                    |
       v          No                No          v         FAIL
      TTL valid? -----> ETag valid? -------> GET (plain) ----------> raise
       |                 |  (304)      ^        |
       | Yes             | Yes         |        v
       v                 v             |      write cache (errors raise)
      read cache <--- rewrite entry*   |        |
       |                 |             |        |
       |                 | read FAIL   |        |
       |                 +-------------+        |
       |                                        |
       |<---------------------------------------+
       v
       OK

    * write errors are reported as warnings and ignored

A failure while probing the cache is never fatal: the request proceeds as
a miss.  A conditional GET that fails at the network level or answers with
an unexpected status is retried once without the validator.

See Also:
    :class:`~fetchcache.pagination.PaginatedList` -- walks paginated list
    endpoints through :meth:`Fetcher.fetch`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Iterator, NamedTuple, Optional, Union

from pydantic import TypeAdapter

from fetchcache.cache.base import CacheStore
from fetchcache.cache.freshness import Clock, is_fresh, now_ms
from fetchcache.cache.keys import normalize_url
from fetchcache.client.transport import Response, Transport
from fetchcache.exceptions import (
    CacheError,
    TransportError,
    UpstreamStatusError,
)
from fetchcache.models import CacheEntry, Headers
from fetchcache.output import debug, warning
from fetchcache.pagination import PaginatedList, parse_json


class TextAndHeaders(NamedTuple):
    """Body text and cache metadata returned by :meth:`Fetcher.fetch`."""

    text: str
    headers: Headers


# --- Cache probe results ---


@dataclass(frozen=True)
class Miss:
    """No entry exists for the key."""


@dataclass(frozen=True)
class Stale:
    """An entry exists but is older than the TTL.

    Attributes:
        headers: Headers stored with the entry (``etag`` is used to revalidate).
        entry: Reference to the stored payload.
    """

    headers: Headers
    entry: CacheEntry


@dataclass(frozen=True)
class Hit:
    """A fresh entry exists.

    Attributes:
        text: The cached payload.
        headers: Headers stored with the entry.
    """

    text: str
    headers: Headers


CacheResult = Union[Miss, Stale, Hit]


class Fetcher:
    """Fetch-through cache over a :class:`~fetchcache.cache.base.CacheStore`.

    Instances are built explicitly (usually by
    :class:`~fetchcache.context.FetchContext`) and passed to whoever needs
    them.  No request deduplication takes place: two callers racing on the
    same URL both hit the network, and the last write wins.

    Args:
        store: Where entries are persisted.
        transport: How GET requests are sent.
        clock: Source of "now" for freshness checks, in ms since the epoch.

    Example::

        fetcher = Fetcher(DiskCacheStore(get_cache_dir()), HttpTransport())
        text, headers = fetcher.fetch("https://api.example.com/items", timedelta(hours=1))
    """

    def __init__(
        self,
        store: CacheStore,
        transport: Transport,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock: Clock = clock or now_ms

    @property
    def store(self) -> CacheStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Fetcher:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport and the store."""
        self._transport.close()
        self._store.close()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def probe(self, url: str, ttl: timedelta) -> CacheResult:
        """Classify the cache entry for *url* without touching the network.

        Args:
            url: Absolute URL; normalised into the cache key.
            ttl: Local freshness window.

        Returns:
            :class:`Miss`, :class:`Stale`, or :class:`Hit`.

        Raises:
            InvalidUrlError: If *url* is not an absolute URL.
            CacheError: If the entry cannot be read.
        """
        return self._probe_key(normalize_url(url), ttl)

    def fetch(self, url: str, ttl: timedelta) -> TextAndHeaders:
        """Return the body and headers for *url*, using the cache when possible.

        Args:
            url: Absolute URL.
            ttl: Entries younger than this are served without a request.

        Returns:
            A :class:`TextAndHeaders` tuple.

        Raises:
            InvalidUrlError: If *url* is not an absolute URL.
            TransportError: If the network request fails.
            UpstreamStatusError: If the server answers with an error status.
            CacheWriteError: If newly fetched content cannot be stored.
        """
        key = normalize_url(url)
        debug(f"Fetching {key}")
        try:
            result = self._probe_key(key, ttl)
        except CacheError as exc:
            warning(f"Ignoring unreadable cache entry for {key}: {exc}")
            result = Miss()

        if isinstance(result, Hit):
            debug(f"Cache hit on {key}")
            return TextAndHeaders(result.text, result.headers)
        if isinstance(result, Stale):
            debug(f"Stale cache on {key}")
            return self._revalidate(url, key, result)
        debug(f"Cache miss on {key}")
        return self._get_and_store(url, key)

    def fetch_json(self, url: str, ttl: timedelta, model: Any = Any) -> Any:
        """Fetch *url* and validate the body as JSON of type *model*.

        Args:
            url: Absolute URL.
            ttl: Local freshness window.
            model: Any type :class:`pydantic.TypeAdapter` understands, e.g. a
                ``BaseModel`` subclass or ``list[int]``. Defaults to ``Any``.

        Raises:
            DeserializationError: If the body does not match *model*.
        """
        text, _ = self.fetch(url, ttl)
        return parse_json(text, TypeAdapter(model), url)

    def paginate(self, url: str, ttl: timedelta, item_type: Any = Any) -> PaginatedList:
        """Return a lazy iterator over the pages starting at *url*.

        See :class:`~fetchcache.pagination.PaginatedList`.
        """
        return PaginatedList(self, url, ttl, item_type)

    def clear_cache(self) -> None:
        """Remove every entry from the store."""
        self._store.clear()
        debug("Cleared cache")

    def list_entries(self) -> Iterator[CacheEntry]:
        """Lazily iterate over all cache entries."""
        return self._store.list()

    def stats(self) -> dict[str, Any]:
        """Return store diagnostics."""
        return self._store.stats()

    # ------------------------------------------------------------------ #
    # State machine
    # ------------------------------------------------------------------ #

    def _probe_key(self, key: str, ttl: timedelta) -> CacheResult:
        entry = self._store.probe(key)
        if entry is None:
            return Miss()
        headers = entry.headers()
        if is_fresh(entry, ttl, self._clock()):
            return Hit(self._store.read(entry), headers)
        return Stale(headers, entry)

    def _get_and_store(self, url: str, key: str) -> TextAndHeaders:
        """Unconditional GET; store and return a 2xx response."""
        resp = self._transport.get(url)
        debug(f"Request to {key} returned {resp.status_code}")
        if not resp.is_success:
            raise UpstreamStatusError(url, resp.status_code)
        return self._store_response(key, resp)

    def _store_response(self, key: str, resp: Response) -> TextAndHeaders:
        self._store.write(resp.headers, key, resp.text)
        return TextAndHeaders(resp.text, resp.headers)

    def _revalidate(self, url: str, key: str, stale: Stale) -> TextAndHeaders:
        """Conditional GET for a stale entry, with one unconditional fallback."""
        try:
            resp = self._transport.get(url, etag=stale.headers.etag)
        except TransportError as exc:
            warning(f"Revalidating {key} failed, retrying without validator: {exc}")
            return self._get_and_store(url, key)
        debug(f"Conditional request to {key} returned {resp.status_code}")

        if resp.is_not_modified:
            try:
                text = self._store.read(stale.entry)
            except CacheError as exc:
                warning(f"Cached content for {key} is unusable, fetching again: {exc}")
                return self._get_and_store(url, key)
            self._touch(key, text, resp.headers)
            return TextAndHeaders(text, resp.headers)

        if resp.is_success:
            return self._store_response(key, resp)

        warning(
            f"Revalidating {key} returned HTTP {resp.status_code}, "
            "retrying without validator"
        )
        return self._get_and_store(url, key)

    def _touch(self, key: str, text: str, headers: Headers) -> None:
        """Rewrite a still-valid entry to restart its freshness window."""
        try:
            self._store.write(headers, key, text)
        except CacheError as exc:
            warning(f"Could not refresh cache entry for {key}: {exc}")
        else:
            debug(f"Revalidated {key}")
