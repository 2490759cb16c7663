"""Explicit composition of the cache store, the transport, and the fetcher.

A :class:`FetchContext` owns exactly one store, one transport, and one
:class:`~fetchcache.fetcher.Fetcher` for the lifetime of the process.  Each
is created on first use (so ``fetchcache cache clear`` never opens an HTTP
client) and released by :meth:`FetchContext.close`.  The CLI builds one in
:func:`~fetchcache.app.main_callback` and hands it to sub-commands through
``ctx.obj``; library users construct their own.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx

from fetchcache.cache.base import CacheStore
from fetchcache.cache.disk import DiskCacheStore
from fetchcache.cache.freshness import Clock, ttl_from_seconds
from fetchcache.cache.memory import MemoryCacheStore
from fetchcache.client.transport import HttpTransport, Transport
from fetchcache.config import resolve_cache_dir
from fetchcache.fetchable import Fetchable
from fetchcache.fetcher import Fetcher
from fetchcache.models import CacheBackend, GlobalConfig


def create_store(config: GlobalConfig, clock: Optional[Clock] = None) -> CacheStore:
    """Build the store selected by ``config.cache.backend``."""
    if config.cache.backend == CacheBackend.MEMORY:
        return MemoryCacheStore(clock=clock)
    return DiskCacheStore(resolve_cache_dir(config), clock=clock)


def create_transport(
    config: GlobalConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> HttpTransport:
    """Build an :class:`~fetchcache.client.transport.HttpTransport` from ``config.request``."""
    return HttpTransport(
        timeout=config.request.timeout,
        verify_ssl=config.request.verify_ssl,
        user_agent=config.request.user_agent,
        transport=transport,
    )


class FetchContext:
    """Process-lifetime owner of the fetch-through cache components.

    Args:
        config: Effective configuration, usually from
            :func:`~fetchcache.config.resolve_config`.
        clock: Optional clock shared by the store and the fetcher.
        http_transport: Optional :class:`httpx.BaseTransport` passed to
            the HTTP client, e.g. :class:`httpx.MockTransport` in tests.

    Example::

        with FetchContext(resolve_config()) as ctx:
            items = ctx.fetcher.paginate(url, ctx.default_ttl).consume()
    """

    def __init__(
        self,
        config: GlobalConfig,
        clock: Optional[Clock] = None,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._http_transport = http_transport
        self._store: Fetchable[CacheStore] = Fetchable()
        self._transport: Fetchable[Transport] = Fetchable()
        self._fetcher: Fetchable[Fetcher] = Fetchable()

    @property
    def config(self) -> GlobalConfig:
        return self._config

    @property
    def default_ttl(self) -> timedelta:
        """The configured freshness window."""
        return ttl_from_seconds(self._config.cache.default_ttl_seconds)

    @property
    def store(self) -> CacheStore:
        return self._store.fetch(lambda: create_store(self._config, self._clock))

    @property
    def transport(self) -> Transport:
        return self._transport.fetch(
            lambda: create_transport(self._config, self._http_transport)
        )

    @property
    def fetcher(self) -> Fetcher:
        return self._fetcher.fetch(
            lambda: Fetcher(self.store, self.transport, clock=self._clock)
        )

    def clear_cache(self) -> None:
        """Remove every cached entry without opening an HTTP client."""
        self.store.clear()

    def close(self) -> None:
        """Close whatever was opened. Safe to call more than once."""
        if self._transport.is_fetched:
            self._transport.get().close()
        if self._store.is_fetched:
            self._store.get().close()
        self._fetcher.reset()
        self._transport.reset()
        self._store.reset()

    def __enter__(self) -> FetchContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
