"""Persistent cache store backed by :mod:`diskcache`.

Index records and content records live side by side in one
:class:`diskcache.Cache` directory under distinct key prefixes:

- ``index:<normalised url>`` -- a dict with ``key``, ``integrity``,
  ``written_at`` (ms since epoch), ``size``, and the JSON ``metadata``.
- ``content:<integrity>`` -- the raw UTF-8 payload bytes.

Both records are written in a single transaction so a reader never sees
an index record pointing at content that was not committed.  The same
transaction deletes the content an overwrite leaves unreferenced.  There is no
format version; after an incompatible upgrade the user clears the cache.
"""

from __future__ import annotations

import logging
import pickle
import sqlite3
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

import diskcache
from pydantic import BaseModel

from fetchcache.cache.base import (
    CacheStore,
    decode_index_record,
    encode_index_record,
    encode_metadata,
    record_integrity,
    verify_payload,
)
from fetchcache.cache.freshness import Clock
from fetchcache.exceptions import CacheError, CacheReadError, CacheWriteError
from fetchcache.models import CacheEntry

logger = logging.getLogger(__name__)

INDEX_PREFIX = "index:"
CONTENT_PREFIX = "content:"

_STORE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout, pickle.UnpicklingError, EOFError)


class DiskCacheStore(CacheStore):
    """Disk-backed :class:`~fetchcache.cache.base.CacheStore`.

    Args:
        directory: Root directory for the cache.  An ``entries/``
            subdirectory is created inside it.
        clock: Source of ``written_at`` timestamps.
        timeout: Seconds to wait for the SQLite lock before failing.

    Raises:
        CacheError: If the cache directory cannot be opened.

    Example::

        from fetchcache.cache import DiskCacheStore

        with DiskCacheStore("/tmp/api-cache") as store:
            store.write(Headers(etag="v1"), "https://api.example.com/", "hello")
    """

    backend = "disk"

    def __init__(
        self,
        directory: str | Path,
        clock: Optional[Clock] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(clock)
        self._directory = Path(directory) / "entries"
        try:
            self._cache: Optional[diskcache.Cache] = diskcache.Cache(
                str(self._directory), timeout=timeout
            )
        except _STORE_ERRORS as exc:
            raise CacheError(f"Cannot open cache at {self._directory}: {exc}") from exc

    @property
    def directory(self) -> Path:
        """Directory holding the cache database and value files."""
        return self._directory

    def write(self, metadata: BaseModel | Mapping[str, Any], key: str, payload: str) -> CacheEntry:
        metadata_json = encode_metadata(metadata)
        raw = payload.encode("utf-8")
        entry = self._new_entry(key, raw, metadata_json)
        cache = self._require_open(CacheWriteError)
        try:
            with cache.transact():
                previous = record_integrity(cache.get(INDEX_PREFIX + key))
                cache.set(CONTENT_PREFIX + entry.integrity, raw)
                cache.set(INDEX_PREFIX + key, encode_index_record(entry, metadata_json))
                if previous not in (None, entry.integrity) and not self._referenced(cache, previous):
                    cache.delete(CONTENT_PREFIX + previous)
                    logger.debug("Dropped unreferenced content %s", previous)
        except _STORE_ERRORS as exc:
            raise CacheWriteError(f"Cannot write cache entry for {key}: {exc}") from exc
        logger.debug("Updated cache for %s (%d bytes)", key, entry.size)
        return entry

    def read(self, entry: CacheEntry) -> str:
        cache = self._require_open(CacheReadError)
        try:
            raw = cache.get(CONTENT_PREFIX + entry.integrity)
        except _STORE_ERRORS as exc:
            raise CacheReadError(f"Cannot read cached content for {entry.key}: {exc}") from exc
        if raw is not None and not isinstance(raw, bytes):
            raise CacheReadError(f"Cached content for {entry.key} is corrupted")
        return verify_payload(entry, raw)

    def probe(self, key: str) -> Optional[CacheEntry]:
        cache = self._require_open(CacheReadError)
        try:
            record = cache.get(INDEX_PREFIX + key)
        except _STORE_ERRORS as exc:
            raise CacheReadError(f"Cannot read cache index for {key}: {exc}") from exc
        if record is None:
            return None
        return decode_index_record(record)

    def clear(self) -> None:
        cache = self._require_open(CacheWriteError)
        try:
            removed = cache.clear()
        except _STORE_ERRORS as exc:
            raise CacheWriteError(f"Cannot clear cache at {self._directory}: {exc}") from exc
        logger.debug("Cleared %d records from %s", removed, self._directory)

    def list(self) -> Iterator[CacheEntry]:
        cache = self._require_open(CacheReadError)
        try:
            for name in cache.iterkeys():
                if not isinstance(name, str) or not name.startswith(INDEX_PREFIX):
                    continue
                record = cache.get(name)
                if record is None:
                    # Removed between listing and reading.
                    continue
                yield decode_index_record(record)
        except _STORE_ERRORS as exc:
            raise CacheReadError(f"Cannot list cache at {self._directory}: {exc}") from exc

    def stats(self) -> dict[str, Any]:
        cache = self._require_open(CacheReadError)
        try:
            entries = sum(
                1
                for name in cache.iterkeys()
                if isinstance(name, str) and name.startswith(INDEX_PREFIX)
            )
            volume = cache.volume()
        except _STORE_ERRORS as exc:
            raise CacheReadError(f"Cannot inspect cache at {self._directory}: {exc}") from exc
        return {
            "backend": self.backend,
            "entries": entries,
            "size_bytes": volume,
            "directory": str(self._directory),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`. Safe to call twice."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    @staticmethod
    def _referenced(cache: diskcache.Cache, integrity: str) -> bool:
        for name in cache.iterkeys():
            if isinstance(name, str) and name.startswith(INDEX_PREFIX):
                if record_integrity(cache.get(name)) == integrity:
                    return True
        return False

    def _require_open(self, error: type[CacheError]) -> diskcache.Cache:
        if self._cache is None:
            raise error(f"Cache at {self._directory} is closed")
        return self._cache
