"""Shared test fixtures for fetchcache.

Provides isolated config environments, output state management, a fake
clock, both cache store backends, and an in-process HTTP server built on
:class:`httpx.MockTransport`. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from fetchcache.cache.base import CacheStore
from fetchcache.cache.disk import DiskCacheStore
from fetchcache.cache.memory import MemoryCacheStore
from fetchcache.client.transport import HttpTransport
from fetchcache.fetcher import Fetcher
from fetchcache.output import OutputFormat, OutputManager, reset_output, set_output


BASE_URL = "http://testserver"

Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, and clears all FETCHCACHE_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "FETCHCACHE_CACHE_DIR",
        "FETCHCACHE_BACKEND",
        "FETCHCACHE_TTL",
        "FETCHCACHE_TIMEOUT",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a PLAIN-format, verbose OutputManager without colour."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock returning milliseconds since the epoch."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Cache stores
# ---------------------------------------------------------------------------


@pytest.fixture(params=["disk", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path, clock: FakeClock) -> CacheStore:
    """Each cache backend in turn, sharing the fake clock."""
    if request.param == "disk":
        s: CacheStore = DiskCacheStore(tmp_path / "store", clock=clock)
    else:
        s = MemoryCacheStore(clock=clock)
    yield s
    s.close()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------


class MockServer:
    """Routes requests to per-path handlers and records every request.

    Routes are keyed by path plus query string, e.g. ``/items?page=2``.
    Unknown routes answer ``404``.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def url(self, path: str) -> str:
        return BASE_URL + path

    def route(self, path: str, handler: Handler) -> None:
        self.routes[path] = handler

    def static(
        self,
        path: str,
        body: str,
        etag: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Serve *body*, answering ``304`` when ``If-None-Match`` matches *etag*."""

        def handler(request: httpx.Request) -> httpx.Response:
            if etag is not None and request.headers.get("if-none-match") == etag:
                return httpx.Response(304, headers={"ETag": etag})
            response_headers = dict(headers or {})
            if etag is not None:
                response_headers["ETag"] = etag
            return httpx.Response(200, text=body, headers=response_headers)

        self.route(path, handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.raw_path.decode("ascii"))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    @property
    def mock(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def transport(self) -> HttpTransport:
        return HttpTransport(transport=self.mock)

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.raw_path.decode("ascii") == path)


@pytest.fixture
def server() -> MockServer:
    return MockServer()


@pytest.fixture
def fetcher(store: CacheStore, server: MockServer, clock: FakeClock, quiet_output) -> Fetcher:
    """A fetcher over each store backend, talking to :class:`MockServer`."""
    f = Fetcher(store, server.transport(), clock=clock)
    yield f
    f.close()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
