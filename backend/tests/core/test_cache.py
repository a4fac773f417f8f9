"""
Tests for the SimpleCache module.

Covers: get/set, TTL expiry, size bound, clear, cleanup_expired,
NullCache and the cache_key utility.
"""

from unittest.mock import patch

import pytest

from ihs_validity.core.cache import NullCache, SimpleCache, cache_key


class TestSimpleCacheGetSet:
    """Tests for basic get/set operations."""

    def test_get_returns_none_for_missing_key(self):
        cache = SimpleCache()
        assert cache.get("nonexistent") is None

    def test_set_and_get_basic_value(self):
        cache = SimpleCache()
        cache.set("key", {"r": 0.42})
        assert cache.get("key") == {"r": 0.42}

    def test_put_is_alias_of_set(self):
        cache = SimpleCache()
        cache.put("key", "value")
        assert cache.get("key") == "value"

    def test_set_overwrites_ttl(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("key", "first", ttl=10)
            cache.set("key", "second", ttl=2)

        value, expiry = cache._cache["key"]
        assert value == "second"
        assert expiry == pytest.approx(1002.0)

    def test_default_ttl_is_5_seconds(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("key", "value")

        _, expiry = cache._cache["key"]
        assert expiry == pytest.approx(1005.0)

    @pytest.mark.parametrize("ttl", [0, -1.0])
    def test_non_positive_ttl_does_not_store(self, ttl):
        cache = SimpleCache()
        cache.set("key", "value", ttl=ttl)
        assert len(cache) == 0


class TestSimpleCacheTTLExpiry:
    """Tests for TTL-based expiration."""

    def test_get_returns_value_before_expiry(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("key", "value", ttl=5)

            mock_time.time.return_value = 1004.9
            assert cache.get("key") == "value"

    def test_get_returns_none_at_exact_expiry(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("key", "value", ttl=5)

            mock_time.time.return_value = 1005.0
            assert cache.get("key") is None

    def test_expired_entry_is_removed_on_get(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("key", "value", ttl=5)

            mock_time.time.return_value = 1010.0
            cache.get("key")
            assert "key" not in cache._cache


class TestSimpleCacheSizeBound:
    """Tests for the max_entries bound."""

    def test_expired_entries_make_room_first(self):
        cache = SimpleCache(max_entries=2)
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("short", 1, ttl=1)
            cache.set("long", 2, ttl=100)

            mock_time.time.return_value = 1002.0
            cache.set("new", 3, ttl=100)

        assert set(cache._cache) == {"long", "new"}

    def test_evicts_soonest_expiring_entry(self):
        cache = SimpleCache(max_entries=2)
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("a", 1, ttl=50)
            cache.set("b", 2, ttl=10)
            cache.set("c", 3, ttl=30)

        assert set(cache._cache) == {"a", "c"}

    def test_overwrite_when_full_does_not_evict(self):
        cache = SimpleCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        assert len(cache) == 2
        assert cache.get("b") == 2


class TestSimpleCacheClear:
    def test_clear_removes_all_entries(self):
        cache = SimpleCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0


class TestSimpleCacheCleanupExpired:
    """Tests for cleanup_expired method."""

    def test_cleanup_removes_expired_entries(self):
        cache = SimpleCache()
        with patch("ihs_validity.core.cache.time") as mock_time:
            mock_time.time.return_value = 1000.0
            cache.set("expired1", "v1", ttl=1)
            cache.set("expired2", "v2", ttl=2)
            cache.set("alive", "v3", ttl=30)

            mock_time.time.return_value = 1003.0
            removed = cache.cleanup_expired()

        assert removed == 2
        assert "alive" in cache._cache

    def test_cleanup_on_empty_cache(self):
        cache = SimpleCache()
        assert cache.cleanup_expired() == 0


class TestNullCache:
    def test_never_stores(self):
        cache = NullCache()
        cache.set("key", "value", ttl=60)
        cache.put("key", "value")
        assert cache.get("key") is None
        cache.clear()


class TestCacheKey:
    """Tests for cache_key utility function."""

    def test_deterministic_for_same_args(self):
        assert cache_key("a", 1, flag=True) == cache_key("a", 1, flag=True)

    def test_keyword_order_independent(self):
        assert cache_key(a=1, b=2) == cache_key(b=2, a=1)

    def test_different_for_different_values(self):
        assert cache_key(filters={"device": "mobile"}) != cache_key(filters={"device": "desktop"})

    def test_tuples_and_lists_hash_alike(self):
        assert cache_key(modalities=("click",)) == cache_key(modalities=["click"])

    def test_no_args_returns_valid_hash(self):
        key = cache_key()
        assert isinstance(key, str)
        assert len(key) == 32
