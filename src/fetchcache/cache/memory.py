"""In-memory cache store.

:class:`MemoryCacheStore` keeps index and content records in plain dicts
guarded by a lock.  It mirrors the on-disk layout of
:class:`~fetchcache.cache.disk.DiskCacheStore` so that tests exercising the
fetcher behave the same against either backend.
"""

from __future__ import annotations

import threading
from typing import Any, Iterator, Mapping, Optional

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
from fetchcache.models import CacheEntry


class MemoryCacheStore(CacheStore):
    """Process-local :class:`~fetchcache.cache.base.CacheStore`.

    Contents vanish with the process.  Useful for tests and for one-off
    runs where nothing should touch the disk.

    Example::

        store = MemoryCacheStore()
        store.write(Headers(etag="v1"), "https://api.example.com/", "hello")
        entry = store.probe("https://api.example.com/")
        assert store.read(entry) == "hello"
    """

    backend = "memory"

    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._lock = threading.RLock()
        self._index: dict[str, dict[str, Any]] = {}
        self._content: dict[str, bytes] = {}

    def write(self, metadata: BaseModel | Mapping[str, Any], key: str, payload: str) -> CacheEntry:
        metadata_json = encode_metadata(metadata)
        raw = payload.encode("utf-8")
        entry = self._new_entry(key, raw, metadata_json)
        with self._lock:
            previous = record_integrity(self._index.get(key))
            self._content[entry.integrity] = raw
            self._index[key] = encode_index_record(entry, metadata_json)
            if previous not in (None, entry.integrity) and not any(
                record_integrity(r) == previous for r in self._index.values()
            ):
                self._content.pop(previous, None)
        return entry

    def read(self, entry: CacheEntry) -> str:
        with self._lock:
            raw = self._content.get(entry.integrity)
        return verify_payload(entry, raw)

    def probe(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            record = self._index.get(key)
        if record is None:
            return None
        return decode_index_record(record)

    def clear(self) -> None:
        with self._lock:
            self._index.clear()
            self._content.clear()

    def list(self) -> Iterator[CacheEntry]:
        with self._lock:
            records = [dict(r) for r in self._index.values()]
        for record in records:
            yield decode_index_record(record)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "backend": self.backend,
                "entries": len(self._index),
                "size_bytes": sum(len(c) for c in self._content.values()),
            }
