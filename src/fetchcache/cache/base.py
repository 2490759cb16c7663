"""Abstract base class for cache stores.

This module defines :class:`CacheStore`, the capability interface the
:class:`~fetchcache.fetcher.Fetcher` talks to, plus the helpers every
backend shares for building entries and validating payloads.

Two backends ship with fetchcache:

- :class:`~fetchcache.cache.disk.DiskCacheStore` -- persistent, backed by
  :mod:`diskcache`.
- :class:`~fetchcache.cache.memory.MemoryCacheStore` -- process-local,
  used for deterministic tests and the ``memory`` backend setting.

Entries are split into an *index record* (everything in
:class:`~fetchcache.models.CacheEntry`) and a *content record* addressed by
the payload's integrity string, so :meth:`CacheStore.probe` never has to
load a payload.
"""

from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping, Optional

from pydantic import BaseModel, ValidationError

from fetchcache.cache.freshness import Clock, now_ms
from fetchcache.exceptions import CacheReadError, CacheWriteError, DecodingError
from fetchcache.models import CacheEntry

INTEGRITY_ALGORITHM = "sha256"


def compute_integrity(payload: bytes) -> str:
    """Return the ``sha256-<hexdigest>`` integrity string for *payload*."""
    digest = hashlib.new(INTEGRITY_ALGORITHM, payload).hexdigest()
    return f"{INTEGRITY_ALGORITHM}-{digest}"


def encode_metadata(metadata: BaseModel | Mapping[str, Any]) -> str:
    """Serialise metadata to a JSON string.

    Raises:
        CacheWriteError: If the metadata is not JSON-serialisable.
    """
    try:
        if isinstance(metadata, BaseModel):
            return metadata.model_dump_json()
        return json.dumps(dict(metadata), sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise CacheWriteError(f"Cannot serialise cache metadata: {exc}") from exc


def decode_index_record(record: Any) -> CacheEntry:
    """Rebuild a :class:`CacheEntry` from a stored index record.

    Index records are plain dicts whose ``metadata`` is a JSON string.

    Raises:
        CacheReadError: If the record is not a valid index record.
    """
    if not isinstance(record, dict):
        raise CacheReadError(f"Corrupted cache index record: {record!r}")
    try:
        data = dict(record)
        data["metadata"] = json.loads(data.get("metadata") or "{}")
        return CacheEntry.model_validate(data)
    except (TypeError, ValueError, ValidationError) as exc:
        raise CacheReadError(f"Corrupted cache index record: {exc}") from exc


def encode_index_record(entry: CacheEntry, metadata_json: str) -> dict[str, Any]:
    """Turn *entry* into the plain dict persisted as its index record."""
    return {
        "key": entry.key,
        "integrity": entry.integrity,
        "written_at": entry.written_at,
        "size": entry.size,
        "metadata": metadata_json,
    }


def record_integrity(record: Any) -> Optional[str]:
    """Return the integrity a stored index record points at, if readable."""
    if isinstance(record, dict) and isinstance(record.get("integrity"), str):
        return record["integrity"]
    return None


def verify_payload(entry: CacheEntry, raw: Optional[bytes]) -> str:
    """Check *raw* against *entry* and decode it as UTF-8.

    Raises:
        CacheReadError: If the content is missing or fails its integrity check.
        DecodingError: If the content is not valid UTF-8.
    """
    if raw is None:
        raise CacheReadError(f"Cached content for {entry.key} is missing")
    if compute_integrity(raw) != entry.integrity:
        raise CacheReadError(f"Cached content for {entry.key} is corrupted")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodingError(f"Cached content for {entry.key} is not UTF-8: {exc}") from exc


class CacheStore(ABC):
    """Key-value store mapping normalised URLs to text payloads plus metadata.

    Concrete stores implement the six abstract operations below.  All of
    them raise subclasses of :class:`~fetchcache.exceptions.CacheError`
    and nothing else.  Writers are expected to be single-writer-per-key;
    concurrent writes to the same key are last-write-wins.

    Args:
        clock: Source of ``written_at`` timestamps. Defaults to the wall
            clock; tests inject a fake.
    """

    backend: str = ""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or now_ms

    @abstractmethod
    def write(self, metadata: BaseModel | Mapping[str, Any], key: str, payload: str) -> CacheEntry:
        """Persist *payload* under *key*, replacing any previous entry.

        Content left behind by the replaced entry is deleted unless another
        index record still points at it.

        Args:
            metadata: JSON-compatible metadata, usually
                :class:`~fetchcache.models.Headers`.
            key: Normalised cache key.
            payload: Text to store (encoded as UTF-8).

        Returns:
            The entry that was written.

        Raises:
            CacheWriteError: On serialisation or storage failure.
        """
        ...

    @abstractmethod
    def read(self, entry: CacheEntry) -> str:
        """Load the payload referenced by *entry*.

        Raises:
            CacheReadError: If the payload is missing or corrupted.
            DecodingError: If the payload is not valid UTF-8.
        """
        ...

    @abstractmethod
    def probe(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under *key* without reading its payload.

        Returns:
            The entry, or ``None`` if no entry exists.

        Raises:
            CacheReadError: If the index cannot be read.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry from the store."""
        ...

    @abstractmethod
    def list(self) -> Iterator[CacheEntry]:
        """Lazily iterate over all entries, in no particular order."""
        ...

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return diagnostic information about the store."""
        ...

    def close(self) -> None:
        """Release resources held by the store. The default does nothing."""

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _new_entry(self, key: str, raw: bytes, metadata_json: str) -> CacheEntry:
        """Build the entry for a write happening now."""
        return CacheEntry(
            key=key,
            integrity=compute_integrity(raw),
            written_at=self._clock(),
            size=len(raw),
            metadata=json.loads(metadata_json),
        )
