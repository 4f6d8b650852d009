"""Tests for FileCache.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from flatcms_core.cache.cache import CacheConfig, CacheErrorKind, FileCache
from flatcms_core.cache.entry import CacheEntry
from flatcms_core.cache.keys import CacheKeyBuilder, QueryType, hash_identifier
from flatcms_core.protocol.serializer import get_serializer
from flatcms_core.store.file import LocalFileSystem


class TestCache:
    """Tests for basic cache operations."""

    def test_missing_key(self, cache):
        """Test keys never written are absent."""
        assert cache.get("never") is None
        assert not cache.has("never")
        assert cache.get("never", default="fallback") == "fallback"

    def test_put_and_get(self, cache):
        """Test a put is immediately readable."""
        assert cache.put("key", {"nested": [1, 2, {"deep": True}]}, ttl=60)
        assert cache.get("key") == {"nested": [1, 2, {"deep": True}]}
        assert cache.has("key")

    def test_creates_directory(self, store, clock):
        """Test the cache root is created at construction."""
        assert not store.is_directory("/var/cache/site")
        FileCache("/var/cache/site", store, clock=clock)
        assert store.is_directory("/var/cache/site")

    def test_entry_file_location(self, cache, store):
        """Test one file per key at <root>/<md5>.cache."""
        cache.put("user:1", "alice", ttl=60)
        assert store.files("/cache") == [f"/cache/{hash_identifier('user:1')}.cache"]

    def test_entry_record(self, cache, store, clock):
        """Test the persisted record shape."""
        cache.put("key", "value", ttl=60)
        path = store.files("/cache")[0]
        record = get_serializer("pickle").deserialize(store.read(path))

        assert record == {
            "value": "value",
            "expires_at": clock.now + 60,
            "created_at": clock.now,
        }

    def test_ttl_expiration(self, cache, store, clock):
        """Test entries vanish after their ttl and are deleted lazily."""
        cache.put("key", "value", ttl=10)

        clock.advance(10)
        assert cache.get("key") == "value"

        clock.advance(1)
        assert store.files("/cache")  # still on disk until looked up
        assert cache.get("key") is None
        assert store.files("/cache") == []
        assert not cache.has("key")

    def test_expired_lookup_result(self, cache, clock):
        """Test lookup reports expiry."""
        cache.put("key", "value", ttl=1)
        clock.advance(5)

        result = cache.lookup("key")
        assert not result.hit
        assert result.expired
        assert result.error is None

    def test_forever(self, cache, clock):
        """Test forever entries never expire."""
        cache.forever("key", "value")
        clock.advance(10 * 365 * 24 * 3600)
        assert cache.get("key") == "value"

    def test_zero_ttl_means_forever(self, cache, clock):
        """Test ttl=0 is the never-expires sentinel."""
        cache.put("key", "value", ttl=0)
        clock.advance(1_000_000)
        assert cache.get("key") == "value"

    def test_default_ttl(self, store, clock):
        """Test puts without a ttl use the configured default."""
        cache = FileCache("/cache", store, CacheConfig(default_ttl=30), clock=clock)
        cache.put("key", "value")

        clock.advance(31)
        assert cache.get("key") is None

    def test_negative_ttl_rejected(self, cache):
        """Test negative ttl fails without raising."""
        assert cache.put("key", "value", ttl=-1) is False
        assert cache.get("key") is None

    def test_forget(self, cache):
        """Test forget removes the entry and is idempotent."""
        cache.put("key", "value", ttl=60)

        assert cache.forget("key")
        assert cache.get("key") is None
        assert cache.forget("key")

    def test_flush(self, cache, store):
        """Test flush removes every entry."""
        cache.put("a", 1, ttl=60)
        cache.forever("b", 2)

        assert cache.flush()
        assert cache.get("a") is None
        assert cache.get("b") is None

    def test_flush_leaves_subdirectories(self, cache, store):
        """Test flush is not recursive."""
        store.write("/cache/nested/keep.txt", b"keep")
        cache.put("a", 1, ttl=60)

        assert cache.flush()
        assert store.files("/cache") == ["/cache/nested/keep.txt"]

    def test_add(self, cache):
        """Test add only stores absent keys."""
        assert cache.add("key", "first", ttl=60)
        assert not cache.add("key", "second", ttl=60)
        assert cache.get("key") == "first"

    def test_add_after_expiry(self, cache, clock):
        """Test add succeeds once the previous entry expired."""
        cache.put("key", "old", ttl=1)
        clock.advance(2)

        assert cache.add("key", "new", ttl=60)
        assert cache.get("key") == "new"

    def test_increment(self, cache):
        """Test increment treats absent as zero."""
        assert cache.increment("counter") == 1
        assert cache.get("counter") == 1
        assert cache.increment("counter", 5) == 6

    def test_decrement(self, cache):
        """Test decrement is a negated increment."""
        assert cache.increment("counter") == 1
        assert cache.decrement("counter", 3) == -2
        assert cache.get("counter") == -2

    def test_increment_non_integer(self, cache):
        """Test non-integer values restart at zero."""
        cache.put("counter", "abc", ttl=60)
        assert cache.increment("counter") == 1

    def test_increment_numeric_string(self, cache):
        """Test numeric strings are coerced."""
        cache.put("counter", "41", ttl=60)
        assert cache.increment("counter") == 42

    def test_many(self, cache):
        """Test many returns a value or None per key, in order."""
        assert cache.put_many({"a": 1, "b": 2}, ttl=60)

        result = cache.many(["a", "b", "c"])
        assert result == {"a": 1, "b": 2, "c": None}
        assert list(result) == ["a", "b", "c"]

    def test_remember(self, cache):
        """Test remember computes once."""
        calls = [0]

        def factory():
            calls[0] += 1
            return "computed"

        assert cache.remember("key", 60, factory) == "computed"
        assert cache.remember("key", 60, factory) == "computed"
        assert calls[0] == 1

    def test_remember_does_not_cache_none(self, cache):
        """Test None results are recomputed."""
        calls = [0]

        def factory():
            calls[0] += 1
            return None

        cache.remember("key", 60, factory)
        cache.remember("key", 60, factory)
        assert calls[0] == 2

    def test_contains(self, cache):
        """Test the in operator."""
        cache.put("key", "value", ttl=60)
        assert "key" in cache
        assert "other" not in cache


class TestPutMany:
    """Tests for batched writes."""

    def test_best_effort_stops_at_first_failure(self, cache, store):
        """Test earlier puts stay committed when a later one fails."""
        store.fail_write_paths.add(cache._get_path("b"))

        assert not cache.put_many({"a": 1, "b": 2, "c": 3}, ttl=60)
        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") is None

    def test_atomic_rolls_back_new_keys(self, cache, store):
        """Test atomic batches remove keys they created."""
        store.fail_write_paths.add(cache._get_path("c"))

        assert not cache.put_many({"a": 1, "b": 2, "c": 3}, ttl=60, atomic=True)
        assert cache.many(["a", "b", "c"]) == {"a": None, "b": None, "c": None}

    def test_atomic_restores_previous_values(self, cache, store):
        """Test atomic batches restore overwritten keys."""
        cache.put("a", "original", ttl=60)
        store.fail_write_paths.add(cache._get_path("b"))

        assert not cache.put_many({"a": "changed", "b": 2}, ttl=60, atomic=True)
        assert cache.get("a") == "original"

    def test_atomic_success(self, cache):
        """Test atomic batches commit when every put succeeds."""
        assert cache.put_many({"a": 1, "b": 2}, ttl=60, atomic=True)
        assert cache.many(["a", "b"]) == {"a": 1, "b": 2}


class TestFailures:
    """Tests for storage and decode failures."""

    def test_write_failure_returns_false(self, cache, store):
        """Test write errors become False."""
        store.fail_writes = True

        assert cache.put("key", "value", ttl=60) is False
        assert cache.forever("key", "value") is False
        assert cache.get_stats().errors == 2

    def test_delete_failure_returns_false(self, cache, store):
        """Test delete errors become False."""
        cache.put("key", "value", ttl=60)
        store.fail_deletes = True

        assert cache.forget("key") is False
        assert cache.flush() is False

    def test_unpicklable_value(self, cache):
        """Test serialization errors become False."""
        assert cache.put("key", lambda: None, ttl=60) is False

    def test_circular_value_with_json(self, store, clock):
        """Test JSON encoding errors become False."""
        cache = FileCache("/cache", store, CacheConfig(serializer="json"), clock=clock)
        looped = []
        looped.append(looped)

        assert cache.put("key", looped, ttl=60) is False
        assert cache.put("key", {"value": object()}, ttl=60) is False
        assert not store.files("/cache")
        assert cache.get_stats().errors == 2

    def test_out_of_range_int_with_msgpack(self, store, clock):
        """Test msgpack encoding errors become False."""
        pytest.importorskip("msgpack")
        cache = FileCache("/cache", store, CacheConfig(serializer="msgpack"), clock=clock)

        assert cache.put("key", 2 ** 70, ttl=60) is False
        assert cache.put("key", 2 ** 40, ttl=60) is True
        assert cache.get("key") == 2 ** 40

    def test_corrupt_entry_is_a_miss_and_deleted(self, cache, store):
        """Test undecodable entries are treated as absent and removed."""
        path = cache._get_path("key")
        store.write(path, b"not a pickle")

        result = cache.lookup("key")
        assert not result.hit
        assert result.error is CacheErrorKind.CORRUPT_ENTRY
        assert not store.exists(path)
        assert cache.get_stats().corrupt_entries == 1

    def test_foreign_record_is_corrupt(self, cache, store):
        """Test well-formed data without the entry shape is corrupt."""
        path = cache._get_path("key")
        store.write(path, get_serializer("pickle").serialize(["just", "a", "list"]))

        assert cache.get("key") is None
        assert not store.exists(path)

    def test_corrupt_entry_kept_when_configured(self, store, clock):
        """Test delete_corrupt=False leaves the file for inspection."""
        cache = FileCache("/cache", store, CacheConfig(delete_corrupt=False), clock=clock)
        path = cache._get_path("key")
        store.write(path, b"not a pickle either")

        assert cache.lookup("key").error is CacheErrorKind.CORRUPT_ENTRY
        assert store.exists(path)

    def test_read_failure_reports_storage_error(self, cache, store, monkeypatch):
        """Test read errors are reported as storage unavailable."""
        from flatcms_core.store.backend import StorageError

        cache.put("key", "value", ttl=60)

        def broken_read(path):
            raise StorageError("disk gone", path)

        monkeypatch.setattr(store, "read", broken_read)

        result = cache.lookup("key")
        assert not result.hit
        assert result.error is CacheErrorKind.STORAGE_UNAVAILABLE
        assert cache.get("key", default="miss") == "miss"


class TestSweep:
    """Tests for eager expiry."""

    def test_sweep_removes_expired(self, cache, store, clock):
        """Test sweep deletes only expired entries."""
        cache.put("short", 1, ttl=5)
        cache.put("long", 2, ttl=500)
        cache.forever("always", 3)

        clock.advance(10)
        assert cache.sweep() == 1
        assert len(store.files("/cache")) == 2
        assert cache.get("long") == 2

    def test_start_without_interval_is_noop(self, cache):
        """Test the sweeper only runs when configured."""
        cache.start()
        assert cache._cleanup_thread is None

    def test_context_manager(self, store, clock):
        """Test the sweeper thread starts and stops."""
        config = CacheConfig(cleanup_interval=60)
        with FileCache("/cache", store, config, clock=clock) as cache:
            assert cache._cleanup_thread is not None
            cache.put("key", "value", ttl=60)
            assert cache.get("key") == "value"
        assert cache._cleanup_thread is None


class TestCacheOnDisk:
    """Tests against the local filesystem."""

    def test_round_trip(self, tmp_path, clock):
        """Test entries persist across cache instances."""
        root = str(tmp_path / "cache")
        FileCache(root, LocalFileSystem(), clock=clock).put("key", ["a", "b"], ttl=60)

        assert (tmp_path / "cache").is_dir()
        assert FileCache(root, LocalFileSystem(), clock=clock).get("key") == ["a", "b"]

    def test_flush_on_disk(self, tmp_path, clock):
        """Test flush removes files but not directories."""
        root = tmp_path / "cache"
        cache = FileCache(str(root), LocalFileSystem(), clock=clock)
        cache.put("a", 1, ttl=60)
        (root / "sub").mkdir()

        assert cache.flush()
        assert [p.name for p in root.iterdir()] == ["sub"]

    def test_flush_removes_interrupted_writes(self, tmp_path, clock):
        """Test flush clears temp files but keeps other hidden files."""
        root = tmp_path / "cache"
        cache = FileCache(str(root), LocalFileSystem(), clock=clock)
        cache.put("a", 1, ttl=60)
        (root / ".abc.cache.123.456.tmp").write_bytes(b"partial")
        (root / ".keep").write_bytes(b"")

        assert cache.flush()
        assert [p.name for p in root.iterdir()] == [".keep"]

    def test_json_serializer(self, tmp_path, clock):
        """Test the human-readable format."""
        root = tmp_path / "cache"
        cache = FileCache(str(root), LocalFileSystem(), CacheConfig(serializer="json"), clock=clock)
        cache.put("key", {"a": [1, 2]}, ttl=60)

        assert cache.get("key") == {"a": [1, 2]}
        assert b'"expires_at"' in next(root.iterdir()).read_bytes()


class TestCacheStats:
    """Tests for cache statistics."""

    def test_hit_rate(self, cache):
        """Test hit rate calculation."""
        cache.put("key", "value", ttl=60)
        cache.get("key")  # hit
        cache.get("key")  # hit
        cache.get("missing")  # miss

        stats = cache.get_stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.writes == 1
        assert stats.hit_rate == pytest.approx(2/3, rel=0.01)

    def test_reset_stats(self, cache):
        """Test stats reset."""
        cache.put("key", "value", ttl=60)
        cache.get("key")

        cache.reset_stats()
        assert cache.get_stats().to_dict()["hits"] == 0


class TestCacheEntry:
    """Tests for CacheEntry."""

    def test_create_with_ttl(self):
        entry = CacheEntry.create("v", 10, now=100.0)
        assert entry.expires_at == 110.0
        assert entry.created_at == 100.0
        assert not entry.is_expired(110.0)
        assert entry.is_expired(110.5)
        assert entry.remaining_ttl(104.0) == 6.0

    def test_create_forever(self):
        entry = CacheEntry.create("v", 0, now=100.0)
        assert entry.is_forever
        assert entry.remaining_ttl(1e12) is None
        assert not entry.is_expired(1e12)

    def test_create_negative_ttl(self):
        with pytest.raises(ValueError):
            CacheEntry.create("v", -5)

    def test_from_dict_rejects_foreign_shapes(self):
        with pytest.raises(ValueError):
            CacheEntry.from_dict({"value": 1})
        with pytest.raises(ValueError):
            CacheEntry.from_dict({"value": 1, "created_at": 0, "expires_at": "soon"})

    def test_dict_round_trip(self):
        entry = CacheEntry(value=[1], expires_at=None, created_at=5.0)
        assert CacheEntry.from_dict(entry.to_dict()) == entry


class TestCacheKeyBuilder:
    """Tests for repository cache keys."""

    def test_identifier_is_hashed(self):
        key = CacheKeyBuilder().build(QueryType.COLLECTION, "posts/with spaces")
        assert key == "cms_collection_" + hash_identifier("posts/with spaces")
        assert "/" not in key

    def test_without_identifier(self):
        assert CacheKeyBuilder().build(QueryType.ALL_ITEMS) == "cms_all_items"

    def test_string_query_type(self):
        builder = CacheKeyBuilder("site")
        assert builder.build("collection", "posts") == builder.build(QueryType.COLLECTION, "posts")

    def test_namespaces_do_not_collide(self):
        builder = CacheKeyBuilder()
        assert builder.build(QueryType.ITEM_PATH, "posts") != builder.build(QueryType.COLLECTION, "posts")
