"""Tests for the paginated list iterator."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any, Optional

import httpx
import pytest
from pydantic import BaseModel

from fetchcache.exceptions import DeserializationError, UpstreamStatusError
from fetchcache.fetcher import Fetcher
from fetchcache.pagination import PaginatedList

HOUR = timedelta(hours=1)


def _page(
    server,
    path: str,
    items: list[Any],
    this_page: Optional[int] = None,
    last_page: Optional[int] = None,
    next_path: Optional[str] = None,
) -> None:
    headers: dict[str, str] = {}
    if this_page is not None:
        headers["x-current-page"] = str(this_page)
    if last_page is not None:
        headers["x-total-pages"] = str(last_page)
    if next_path is not None:
        headers["Link"] = f'<{server.url(next_path)}>; rel="next"'
    server.static(path, json.dumps(items), headers=headers)


@pytest.fixture
def three_pages(server) -> str:
    _page(server, "/items", [1, 2], 1, 3, "/items?page=2")
    _page(server, "/items?page=2", [3], 2, 3, "/items?page=3")
    _page(server, "/items?page=3", [4, 5], 3, 3)
    return server.url("/items")


class TestIteration:
    def test_yields_one_batch_per_page(self, fetcher: Fetcher, three_pages: str) -> None:
        assert list(fetcher.paginate(three_pages, HOUR)) == [[1, 2], [3], [4, 5]]

    def test_consume_flattens(self, fetcher: Fetcher, three_pages: str) -> None:
        assert fetcher.paginate(three_pages, HOUR).consume() == [1, 2, 3, 4, 5]

    def test_pages_requested_lazily(self, fetcher: Fetcher, server, three_pages: str) -> None:
        pages = fetcher.paginate(three_pages, HOUR)
        assert server.requests == []
        next(pages)
        assert len(server.requests) == 1

    def test_exhausted_iterator_stays_exhausted(self, fetcher: Fetcher, three_pages: str) -> None:
        pages = fetcher.paginate(three_pages, HOUR)
        list(pages)
        assert pages.state.is_done
        assert pages.state.next_page is None
        with pytest.raises(StopIteration):
            next(pages)

    def test_second_walk_is_served_from_cache(self, fetcher: Fetcher, server, three_pages: str) -> None:
        fetcher.paginate(three_pages, HOUR).consume()
        fetcher.paginate(three_pages, HOUR).consume()
        assert len(server.requests) == 3

    def test_typed_items(self, fetcher: Fetcher, server) -> None:
        class Canteen(BaseModel):
            id: int

        _page(server, "/canteens", [{"id": 1}, {"id": 2}], 1, 1)
        batches = list(fetcher.paginate(server.url("/canteens"), HOUR, Canteen))
        assert batches == [[Canteen(id=1), Canteen(id=2)]]


class TestTermination:
    def test_single_page_without_headers(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1, 2])
        assert list(fetcher.paginate(server.url("/items"), HOUR)) == [[1, 2]]

    def test_empty_page_terminates_despite_headers(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [], 1, 5, "/items?page=2")
        _page(server, "/items?page=2", [1], 2, 5)
        assert list(fetcher.paginate(server.url("/items"), HOUR)) == [[]]
        assert server.count("/items?page=2") == 0

    def test_last_page_reached_ignores_next_link(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1], 2, 2, "/items?page=3")
        assert list(fetcher.paginate(server.url("/items"), HOUR)) == [[1]]
        assert server.count("/items?page=3") == 0

    def test_missing_next_link_terminates(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1], 1, 3)
        assert list(fetcher.paginate(server.url("/items"), HOUR)) == [[1]]

    def test_missing_current_page_counts_as_zero(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1], None, 2, "/items?page=2")
        _page(server, "/items?page=2", [2], 2, 2)
        assert fetcher.paginate(server.url("/items"), HOUR).consume() == [1, 2]


class TestErrors:
    def test_deserialization_error_terminates(self, fetcher: Fetcher, server) -> None:
        server.static("/items", '{"not": "a list"}')
        pages = fetcher.paginate(server.url("/items"), HOUR)
        with pytest.raises(DeserializationError):
            next(pages)
        assert pages.state.is_done
        with pytest.raises(StopIteration):
            next(pages)

    def test_error_on_later_page_keeps_earlier_batches(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1], 1, 2, "/items?page=2")
        server.route("/items?page=2", lambda request: httpx.Response(500))
        pages = fetcher.paginate(server.url("/items"), HOUR)
        assert next(pages) == [1]
        with pytest.raises(UpstreamStatusError):
            next(pages)
        assert list(pages) == []

    def test_consume_propagates_first_error(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", [1], 1, 2, "/items?page=2")
        server.static("/items?page=2", "not json")
        with pytest.raises(DeserializationError):
            fetcher.paginate(server.url("/items"), HOUR).consume()

    def test_wrong_item_type_raises(self, fetcher: Fetcher, server) -> None:
        _page(server, "/items", ["a", "b"], 1, 1)
        with pytest.raises(DeserializationError):
            PaginatedList(fetcher, server.url("/items"), HOUR, int).consume()
