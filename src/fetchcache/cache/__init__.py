"""Persistent storage for fetched responses.

This package provides the :class:`CacheStore` capability interface and its
two implementations:

- :class:`DiskCacheStore` -- persistent, stores entries with :mod:`diskcache`
  under the XDG cache directory.
- :class:`MemoryCacheStore` -- process-local, for tests and throwaway runs.

Keys are normalised URLs (:func:`normalize_url`) and freshness is judged by
:func:`is_fresh` against a caller-supplied TTL.  Stores never expire entries
on their own; staleness only triggers revalidation in
:class:`~fetchcache.fetcher.Fetcher`.
"""

from fetchcache.cache.base import CacheStore
from fetchcache.cache.disk import DiskCacheStore
from fetchcache.cache.freshness import UNBOUNDED_TTL, is_fresh, now_ms, ttl_from_seconds
from fetchcache.cache.keys import normalize_url
from fetchcache.cache.memory import MemoryCacheStore

__all__ = [
    "CacheStore",
    "DiskCacheStore",
    "MemoryCacheStore",
    "UNBOUNDED_TTL",
    "is_fresh",
    "normalize_url",
    "now_ms",
    "ttl_from_seconds",
]
