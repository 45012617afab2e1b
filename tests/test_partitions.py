"""
Tests for cache partitions and FIFO eviction
"""
import pytest

from offline_engine.cache.core import CacheSource, ResponseSnapshot, make_cache_key
from offline_engine.cache.partitions import CachePartitionManager, PartitionNames
from offline_engine.errors import CacheMiss


def snapshot(body: str, status: int = 200) -> ResponseSnapshot:
    return ResponseSnapshot(status=status, headers={"Content-Type": "text/plain"}, body=body.encode())


@pytest.fixture
def manager():
    return CachePartitionManager(limits={"small": 3})


class TestBasicOperations:

    def test_open_is_idempotent(self, manager):
        first = manager.open("api")
        assert manager.open("api") is first
        assert manager.names() == ["api"]

    def test_get_missing_returns_none(self, manager):
        assert manager.get("api", "GET http://x/a") is None

    def test_lookup_miss_raises_cache_miss(self, manager):
        with pytest.raises(CacheMiss) as exc_info:
            manager.lookup("api", "GET http://x/a")
        assert exc_info.value.partition == "api"
        assert exc_info.value.key == "GET http://x/a"

    def test_lookup_hit(self, manager):
        manager.put("api", "k", snapshot("hello"))
        assert manager.lookup("api", "k").body == b"hello"

    def test_put_then_get(self, manager):
        manager.put("api", "k", snapshot("hello"))
        cached = manager.get("api", "k")
        assert cached.body == b"hello"
        assert cached.source == CacheSource.CACHE

    def test_stored_copy_is_independent(self, manager):
        original = snapshot("hello")
        manager.put("api", "k", original)
        original.headers["X-Changed"] = "1"

        first = manager.get("api", "k")
        first.headers["X-Also-Changed"] = "1"

        again = manager.get("api", "k")
        assert "X-Changed" not in again.headers
        assert "X-Also-Changed" not in again.headers

    def test_overwrite_same_key(self, manager):
        manager.put("api", "k", snapshot("old"))
        manager.put("api", "k", snapshot("new"))
        assert manager.get("api", "k").body == b"new"
        assert manager.list_keys("api") == ["k"]

    def test_delete(self, manager):
        manager.put("api", "k", snapshot("x"))
        assert manager.delete("api", "k") is True
        assert manager.delete("api", "k") is False
        assert manager.get("api", "k") is None

    def test_drop_partition(self, manager):
        manager.put("old", "k", snapshot("x"))
        assert manager.drop("old") is True
        assert "old" not in manager.names()
        assert manager.drop("old") is False


class TestEviction:

    def test_put_at_limit_evicts_oldest(self, manager):
        for key in ("a", "b", "c"):
            manager.put("small", key, snapshot(key))
        manager.put("small", "d", snapshot("d"))

        assert manager.list_keys("small") == ["b", "c", "d"]

    def test_reads_do_not_change_eviction_order(self, manager):
        for key in ("a", "b", "c"):
            manager.put("small", key, snapshot(key))
        # Reading "a" must not protect it: eviction is FIFO, not LRU
        manager.get("small", "a")
        manager.get("small", "a")
        manager.put("small", "d", snapshot("d"))

        assert manager.get("small", "a") is None
        assert manager.list_keys("small") == ["b", "c", "d"]

    def test_reinsert_moves_key_to_end(self, manager):
        for key in ("a", "b", "c"):
            manager.put("small", key, snapshot(key))
        manager.put("small", "a", snapshot("a2"))
        manager.put("small", "d", snapshot("d"))

        assert manager.list_keys("small") == ["c", "a", "d"]

    def test_evict_if_needed_below_limit(self, manager):
        manager.put("other", "a", snapshot("a"))
        assert manager.evict_if_needed("other", 5) == 0
        assert manager.list_keys("other") == ["a"]

    def test_evict_if_needed_over_limit_removes_surplus(self, manager):
        for key in "abcdef":
            manager.put("unbounded", key, snapshot(key))

        removed = manager.evict_if_needed("unbounded", 4)

        assert removed == 3
        assert manager.list_keys("unbounded") == ["d", "e", "f"]

    def test_partition_at_limit_stays_at_limit(self):
        limit = 5
        manager = CachePartitionManager(limits={"p": limit})
        for i in range(limit):
            manager.put("p", f"k{i}", snapshot(str(i)))

        manager.evict_if_needed("p", limit)
        manager.put("p", "new", snapshot("new"))

        keys = manager.list_keys("p")
        assert len(keys) == limit
        assert "k0" not in keys
        assert "new" in keys

    def test_stats_count_evictions(self, manager):
        for key in "abcd":
            manager.put("small", key, snapshot(key))
        stats = manager.get_stats()
        assert stats["evictions"] == 1
        assert stats["partitions"]["small"] == {"entries": 3, "limit": 3}


class TestNamesAndKeys:

    def test_versioned_names(self):
        names = PartitionNames(prefix="dope", version="1.0.0")
        assert names.static == "dope-static-v1.0.0"
        assert names.expected() == [
            "dope-static-v1.0.0",
            "dope-dynamic-v1.0.0",
            "dope-api-v1.0.0",
        ]

    def test_limits_mapped_to_names(self):
        names = PartitionNames(prefix="dope", version="2")
        limits = names.limits({"static": 50, "dynamic": 100, "api": 200, "unknown": 1})
        assert limits == {
            "dope-static-v2": 50,
            "dope-dynamic-v2": 100,
            "dope-api-v2": 200,
        }

    def test_cache_key_normalization(self):
        assert make_cache_key("get", "HTTP://Origin.Test/api/x?b=1#frag") == \
            "GET http://origin.test/api/x?b=1"

    def test_cache_key_keeps_method_distinct(self):
        assert make_cache_key("GET", "http://o/a") != make_cache_key("POST", "http://o/a")
