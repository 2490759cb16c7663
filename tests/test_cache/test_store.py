"""Tests for the cache store backends.

Every test in the store classes runs against both the disk and the memory
backend through the parametrized ``store`` fixture.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from fetchcache.cache.base import CacheStore, compute_integrity
from fetchcache.cache.disk import CONTENT_PREFIX, INDEX_PREFIX, DiskCacheStore
from fetchcache.cache.memory import MemoryCacheStore
from fetchcache.exceptions import CacheReadError, CacheWriteError, DecodingError
from fetchcache.models import CacheEntry, Headers

KEY = "https://example.com/items"


# ------------------------------------------------------------------ #
# Write / probe / read
# ------------------------------------------------------------------ #


class TestWriteAndRead:
    def test_probe_missing_key_returns_none(self, store: CacheStore) -> None:
        assert store.probe(KEY) is None

    def test_write_then_read(self, store: CacheStore) -> None:
        store.write(Headers(etag="v1"), KEY, "hello")
        entry = store.probe(KEY)
        assert entry is not None
        assert store.read(entry) == "hello"

    def test_entry_fields(self, store: CacheStore, clock) -> None:
        entry = store.write(Headers(etag="v1", this_page=1), KEY, "héllo")
        assert entry.key == KEY
        assert entry.size == len("héllo".encode("utf-8"))
        assert entry.integrity == compute_integrity("héllo".encode("utf-8"))
        assert entry.written_at == clock.now
        assert entry.headers() == Headers(etag="v1", this_page=1)

    def test_probed_entry_matches_written_entry(self, store: CacheStore) -> None:
        written = store.write(Headers(etag="v1"), KEY, "hello")
        assert store.probe(KEY) == written

    def test_empty_payload(self, store: CacheStore) -> None:
        store.write(Headers(), KEY, "")
        entry = store.probe(KEY)
        assert entry is not None
        assert store.read(entry) == ""

    def test_plain_mapping_metadata(self, store: CacheStore) -> None:
        store.write({"etag": "abc"}, KEY, "x")
        entry = store.probe(KEY)
        assert entry is not None
        assert entry.metadata == {"etag": "abc"}

    def test_unserialisable_metadata_raises(self, store: CacheStore) -> None:
        with pytest.raises(CacheWriteError):
            store.write({"etag": object()}, KEY, "x")

    def test_overwrite_replaces_entry(self, store: CacheStore, clock) -> None:
        store.write(Headers(etag="v1"), KEY, "old")
        clock.advance(30)
        store.write(Headers(etag="v2"), KEY, "new")
        entry = store.probe(KEY)
        assert entry is not None
        assert store.read(entry) == "new"
        assert entry.headers().etag == "v2"
        assert entry.written_at == clock.now

    def test_rewrite_same_payload_refreshes_written_at(self, store: CacheStore, clock) -> None:
        first = store.write(Headers(etag="v1"), KEY, "same")
        clock.advance(60)
        second = store.write(Headers(etag="v1"), KEY, "same")
        assert second.written_at == first.written_at + 60_000
        assert store.probe(KEY).written_at == second.written_at

    def test_overwrite_drops_replaced_content(self, store: CacheStore) -> None:
        old = store.write(Headers(etag="v1"), KEY, "old")
        store.write(Headers(etag="v2"), KEY, "new")
        with pytest.raises(CacheReadError, match="missing"):
            store.read(old)

    def test_overwrite_keeps_content_shared_with_other_keys(self, store: CacheStore) -> None:
        store.write(Headers(), KEY + "/a", "same")
        store.write(Headers(), KEY + "/b", "same")
        store.write(Headers(), KEY + "/a", "changed")
        assert store.read(store.probe(KEY + "/b")) == "same"
        assert store.read(store.probe(KEY + "/a")) == "changed"

    def test_keys_are_independent(self, store: CacheStore) -> None:
        store.write(Headers(), KEY + "?page=1", "one")
        store.write(Headers(), KEY + "?page=2", "two")
        assert store.read(store.probe(KEY + "?page=1")) == "one"
        assert store.read(store.probe(KEY + "?page=2")) == "two"


class TestIntegrity:
    def test_missing_content_raises(self, store: CacheStore) -> None:
        entry = CacheEntry(
            key=KEY,
            integrity=compute_integrity(b"never stored"),
            written_at=0,
            size=12,
        )
        with pytest.raises(CacheReadError, match="missing"):
            store.read(entry)

    def test_integrity_mismatch_raises(self, store: CacheStore) -> None:
        entry = store.write(Headers(), KEY, "hello")
        forged = entry.model_copy(update={"integrity": compute_integrity(b"other")})
        with pytest.raises(CacheReadError):
            store.read(forged)

    def test_invalid_stored_headers_raise_on_decode(self, store: CacheStore) -> None:
        store.write({"this_page": "not a number"}, KEY, "x")
        entry = store.probe(KEY)
        assert entry is not None
        with pytest.raises(CacheReadError, match="clearing the cache"):
            entry.headers()


# ------------------------------------------------------------------ #
# Listing, clearing, stats
# ------------------------------------------------------------------ #


class TestListClearStats:
    def test_list_empty(self, store: CacheStore) -> None:
        assert list(store.list()) == []

    def test_list_returns_all_entries(self, store: CacheStore) -> None:
        store.write(Headers(), KEY + "/1", "a")
        store.write(Headers(), KEY + "/2", "bb")
        keys = sorted(e.key for e in store.list())
        assert keys == [KEY + "/1", KEY + "/2"]

    def test_list_is_lazy(self, store: CacheStore) -> None:
        store.write(Headers(), KEY, "a")
        iterator = store.list()
        assert next(iterator).key == KEY

    def test_clear_removes_everything(self, store: CacheStore) -> None:
        entry = store.write(Headers(), KEY, "a")
        store.clear()
        assert store.probe(KEY) is None
        assert list(store.list()) == []
        with pytest.raises(CacheReadError):
            store.read(entry)

    def test_clear_empty_store(self, store: CacheStore) -> None:
        store.clear()
        assert list(store.list()) == []

    def test_stats(self, store: CacheStore) -> None:
        store.write(Headers(), KEY + "/1", "a")
        store.write(Headers(), KEY + "/2", "b")
        stats = store.stats()
        assert stats["backend"] == store.backend
        assert stats["entries"] == 2
        assert stats["size_bytes"] >= 0

    def test_context_manager(self, store: CacheStore) -> None:
        with store as s:
            assert s is store


# ------------------------------------------------------------------ #
# Backend specifics
# ------------------------------------------------------------------ #


class TestDiskCacheStore:
    def test_persists_across_instances(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as first:
            first.write(Headers(etag="v1"), KEY, "persisted")
        with DiskCacheStore(tmp_path) as second:
            entry = second.probe(KEY)
            assert entry is not None
            assert second.read(entry) == "persisted"

    def test_entries_directory(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as store:
            assert store.directory == tmp_path / "entries"
            assert store.directory.is_dir()

    def test_non_utf8_content_raises_decoding_error(self, tmp_path: Path) -> None:
        raw = b"\xff\xfe not utf-8"
        with DiskCacheStore(tmp_path) as store:
            entry = store.write(Headers(), KEY, "placeholder")
            bad = entry.model_copy(update={"integrity": compute_integrity(raw)})
            store._cache.set(CONTENT_PREFIX + bad.integrity, raw)
            with pytest.raises(DecodingError):
                store.read(bad)

    def test_corrupted_content_raises(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as store:
            entry = store.write(Headers(), KEY, "hello")
            store._cache.set(CONTENT_PREFIX + entry.integrity, b"tampered")
            with pytest.raises(CacheReadError, match="corrupted"):
                store.read(entry)

    def test_corrupted_index_record_raises(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as store:
            store._cache.set(INDEX_PREFIX + KEY, "garbage")
            with pytest.raises(CacheReadError):
                store.probe(KEY)

    def test_closed_store_raises(self, tmp_path: Path) -> None:
        store = DiskCacheStore(tmp_path)
        store.close()
        store.close()
        with pytest.raises(CacheReadError):
            store.probe(KEY)
        with pytest.raises(CacheWriteError):
            store.write(Headers(), KEY, "x")

    def test_overwrite_leaves_one_content_record(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as store:
            for body in ("first", "second", "third"):
                store.write(Headers(), KEY, body)
            content = [k for k in store._cache.iterkeys() if k.startswith(CONTENT_PREFIX)]
            assert content == [CONTENT_PREFIX + compute_integrity(b"third")]

    def test_stats_reports_directory(self, tmp_path: Path) -> None:
        with DiskCacheStore(tmp_path) as store:
            assert store.stats()["directory"] == str(tmp_path / "entries")


class TestMemoryCacheStore:
    def test_non_utf8_content_raises_decoding_error(self) -> None:
        raw = b"\xc3\x28"
        store = MemoryCacheStore()
        entry = store.write(Headers(), KEY, "placeholder")
        bad = entry.model_copy(update={"integrity": compute_integrity(raw)})
        store._content[bad.integrity] = raw
        with pytest.raises(DecodingError):
            store.read(bad)

    def test_stats_counts_content_bytes(self) -> None:
        store = MemoryCacheStore()
        store.write(Headers(), KEY, "abc")
        assert store.stats() == {"backend": "memory", "entries": 1, "size_bytes": 3}

    def test_stats_do_not_grow_on_overwrite(self) -> None:
        store = MemoryCacheStore()
        for body in ("first", "second", "third"):
            store.write(Headers(), KEY, body)
        assert store.stats()["size_bytes"] == len("third")
