"""Iteration over paginated JSON list endpoints.

Each page is a JSON array.  The server announces the current and total
page numbers through ``x-current-page`` / ``x-total-pages`` and the next
page through ``Link: <url>; rel="next"``::

    GET /items            -> [{"id": 1}, {"id": 2}]   x-current-page: 1, x-total-pages: 2
    GET /items?page=2     -> [{"id": 3}]              x-current-page: 2, x-total-pages: 2

Every page goes through :meth:`~fetchcache.fetcher.Fetcher.fetch`, so
previously seen pages are served from the cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Generic, Iterator, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from fetchcache.exceptions import DeserializationError
from fetchcache.output import debug

if TYPE_CHECKING:
    from fetchcache.fetcher import Fetcher

T = TypeVar("T")


def parse_json(text: str, adapter: TypeAdapter[Any], source: str) -> Any:
    """Validate *text* as JSON against *adapter*.

    Raises:
        DeserializationError: If the text is not JSON or has the wrong shape.
    """
    try:
        return adapter.validate_json(text)
    except ValidationError as exc:
        raise DeserializationError(f"Unexpected response from {source}: {exc}") from exc


@dataclass
class PaginationState:
    """Progress of one :class:`PaginatedList`.

    Attributes:
        next_page: URL to fetch next, ``None`` once there is nothing left.
        ttl: Freshness window used for every page.
        is_done: Set once the iterator has returned its final batch or error.
    """

    next_page: Optional[str]
    ttl: timedelta
    is_done: bool = False


class PaginatedList(Generic[T]):
    """Iterator yielding one ``list[T]`` per page.

    The iterator stops after a page where ``this_page >= last_page``
    (missing numbers count as ``0``), after a page without a next link, and
    after any empty page regardless of the page headers.  An error while
    fetching or validating a page is raised from that ``next()`` call and
    ends the iteration; pages are never retried.

    Instances are single-use and not thread-safe.

    Args:
        fetcher: The fetcher every page is requested through.
        url: URL of the first page.
        ttl: Local freshness window for every page.
        item_type: Type of a single list item. Defaults to ``Any``.

    Example::

        pages = fetcher.paginate(url, timedelta(hours=1), Canteen)
        for batch in pages:
            ...
        everything = fetcher.paginate(url, ttl, Canteen).consume()
    """

    def __init__(
        self,
        fetcher: Fetcher,
        url: str,
        ttl: timedelta,
        item_type: Any = Any,
    ) -> None:
        self._fetcher = fetcher
        self._adapter: TypeAdapter[list[T]] = TypeAdapter(list[item_type])  # type: ignore[valid-type]
        self._state = PaginationState(next_page=url, ttl=ttl)

    @property
    def state(self) -> PaginationState:
        return self._state

    def __iter__(self) -> Iterator[list[T]]:
        return self

    def __next__(self) -> list[T]:
        current = self._state.next_page
        if current is None or self._state.is_done:
            self._state.is_done = True
            raise StopIteration
        self._state.next_page = None

        try:
            text, headers = self._fetcher.fetch(current, self._state.ttl)
            batch = parse_json(text, self._adapter, current)
        except Exception:
            self._state.is_done = True
            raise

        this_page = headers.this_page or 0
        last_page = headers.last_page or 0
        if this_page < last_page and batch:
            self._state.next_page = headers.next_page
        if self._state.next_page is None:
            self._state.is_done = True
        debug(
            f"Page {headers.this_page}/{headers.last_page} of {current}: "
            f"{len(batch)} items"
        )
        return batch

    def consume(self) -> list[T]:
        """Drain the iterator and concatenate all batches.

        Raises:
            The first error raised by any page.
        """
        items: list[T] = []
        for batch in self:
            items.extend(batch)
        return items
