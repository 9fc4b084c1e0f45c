"""Tests for the LRU + TTL cache engine."""

from __future__ import annotations

import logging
import random
import threading

import pytest

from idemcache.cache.engine import LRUCache
from idemcache.core.exceptions import ConfigurationError


# ---------------------------------------------------------------------------
# Basic get / put / remove
# ---------------------------------------------------------------------------


class TestBasicOperations:
    def test_put_then_get(self):
        cache = LRUCache(capacity=10)
        cache.put("k", "v")
        assert cache.get("k") == "v"

    def test_get_missing_returns_default(self):
        cache = LRUCache(capacity=10)
        assert cache.get("missing") is None
        assert cache.get("missing", "fallback") == "fallback"

    def test_put_existing_key_replaces_without_growing(self):
        cache = LRUCache(capacity=10)
        cache.put("k", 1)
        cache.put("k", 2)
        assert cache.get("k") == 2
        assert len(cache) == 1

    def test_remove_present(self):
        cache = LRUCache(capacity=10)
        cache.put("k", 1)
        assert cache.remove("k") is True
        assert cache.get("k") is None

    def test_remove_absent(self):
        cache = LRUCache(capacity=10)
        assert cache.remove("k") is False

    def test_values_are_stored_by_reference(self):
        cache = LRUCache(capacity=10)
        payload = {"a": [1, 2]}
        cache.put("k", payload)
        assert cache.get("k") is payload

    def test_none_value_distinguished_with_default(self):
        cache = LRUCache(capacity=10)
        sentinel = object()
        cache.put("k", None)
        assert cache.get("k", sentinel) is None
        assert cache.get("other", sentinel) is sentinel

    def test_tuple_and_int_keys(self):
        cache = LRUCache(capacity=10)
        cache.put(("order", 42), "a")
        cache.put(42, "b")
        assert cache.get(("order", 42)) == "a"
        assert cache.get(42) == "b"
        assert cache.get(42.0) == "b"

    def test_unseeded_hash_mode(self):
        cache = LRUCache(capacity=10, hash_seed=False)
        cache.put("k", 1)
        assert cache.get("k") == 1

    def test_fixed_seed_mode(self):
        cache = LRUCache(capacity=10, hash_seed=b"fixed-seed")
        cache.put("k", 1)
        assert cache.get("k") == 1


# ---------------------------------------------------------------------------
# Capacity and LRU eviction
# ---------------------------------------------------------------------------


class TestEviction:
    def test_get_refreshes_recency(self):
        cache = LRUCache(capacity=2)
        cache.put("A", 1)
        cache.put("B", 2)
        cache.get("A")
        cache.put("C", 3)
        assert cache.keys() == ["C", "A"]
        assert cache.get("B") is None
        assert cache.get("A") == 1
        assert cache.get("C") == 3

    def test_put_existing_refreshes_recency(self):
        cache = LRUCache(capacity=2)
        cache.put("A", 1)
        cache.put("B", 2)
        cache.put("A", 10)
        cache.put("C", 3)
        assert "B" not in cache
        assert cache.get("A") == 10

    def test_oldest_evicted_first(self):
        cache = LRUCache(capacity=3)
        for k in "abcd":
            cache.put(k, k)
        assert cache.keys() == ["d", "c", "b"]
        assert cache.evictions == 1

    def test_touched_key_outlives_capacity_minus_one_inserts(self):
        capacity = 5
        cache = LRUCache(capacity=capacity)
        for i in range(capacity):
            cache.put(i, i)
        cache.get(0)
        for i in range(100, 100 + capacity - 1):
            cache.put(i, i)
        assert 0 in cache
        assert all(i not in cache for i in range(1, capacity))
        cache.put(999, 999)
        assert 0 not in cache

    def test_size_never_exceeds_capacity(self):
        rng = random.Random(7)
        cache = LRUCache(capacity=16)
        for _ in range(5000):
            key = rng.randrange(64)
            op = rng.random()
            if op < 0.5:
                cache.put(key, key)
            elif op < 0.8:
                cache.get(key)
            else:
                cache.remove(key)
            assert len(cache) <= 16

    def test_capacity_zero_disables_cache(self):
        cache = LRUCache(capacity=0)
        cache.put("k", 1)
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.evictions == 0

    def test_capacity_one(self):
        cache = LRUCache(capacity=1)
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.keys() == ["b"]

    def test_negative_capacity_rejected(self):
        with pytest.raises(ConfigurationError):
            LRUCache(capacity=-1)

    def test_negative_capacity_is_value_error(self):
        with pytest.raises(ValueError):
            LRUCache(capacity=-5)


# ---------------------------------------------------------------------------
# TTL and lazy expiration
# ---------------------------------------------------------------------------


class TestExpiration:
    def test_entry_live_before_ttl(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", "v", ttl=10)
        clock.advance(9.9)
        assert cache.get("k") == "v"

    def test_entry_absent_after_ttl(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", "v", ttl=10)
        clock.advance(10)
        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.expirations == 1

    def test_zero_ttl_is_immediately_absent(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", "v", ttl=0)
        assert cache.get("k") is None

    def test_negative_ttl_is_immediately_absent(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", "v", ttl=-5)
        assert "k" not in cache
        assert cache.get("k") is None

    def test_default_ttl_applies(self, clock):
        cache = LRUCache(capacity=10, default_ttl=5)
        cache.put("k", "v")
        clock.advance(5)
        assert cache.get("k") is None

    def test_explicit_ttl_overrides_default(self, clock):
        cache = LRUCache(capacity=10, default_ttl=5)
        cache.put("k", "v", ttl=60)
        clock.advance(30)
        assert cache.get("k") == "v"

    def test_no_default_ttl_never_expires(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", "v")
        clock.advance(10**9)
        assert cache.get("k") == "v"

    def test_put_resets_expiration(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", 1, ttl=10)
        clock.advance(8)
        cache.put("k", 2, ttl=10)
        clock.advance(8)
        assert cache.get("k") == 2

    def test_put_revives_expired_key_in_place(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", 1, ttl=1)
        clock.advance(2)
        cache.put("k", 2)
        assert cache.get("k") == 2
        assert len(cache) == 1

    def test_remove_expired_but_unswept_counts_as_present(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", 1, ttl=1)
        clock.advance(2)
        assert cache.remove("k") is True
        assert len(cache) == 0

    def test_contains_and_peek_respect_expiry(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", 1, ttl=1)
        assert "k" in cache
        assert cache.peek("k") == 1
        clock.advance(1)
        assert "k" not in cache
        assert cache.peek("k") is None
        # peek does not sweep
        assert len(cache) == 1

    def test_keys_skip_expired(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("a", 1, ttl=1)
        cache.put("b", 2)
        clock.advance(1)
        assert cache.keys() == ["b"]


# ---------------------------------------------------------------------------
# cleanup()
# ---------------------------------------------------------------------------


class TestCleanup:
    def test_cleanup_removes_exactly_expired(self, clock):
        cache = LRUCache(capacity=100)
        for i in range(10):
            cache.put(f"short-{i}", i, ttl=5)
        for i in range(7):
            cache.put(f"long-{i}", i, ttl=50)
        cache.put("forever", 0)
        clock.advance(5)

        would_miss = sum(1 for i in range(10) if cache.peek(f"short-{i}") is None)
        assert cache.cleanup() == would_miss == 10
        assert len(cache) == 8
        assert all(cache.get(f"long-{i}") == i for i in range(7))
        assert cache.get("forever") == 0

    def test_cleanup_nothing_expired(self, clock):
        cache = LRUCache(capacity=10, default_ttl=100)
        cache.put("a", 1)
        assert cache.cleanup() == 0
        assert len(cache) == 1

    def test_cleanup_preserves_recency_of_survivors(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("a", 1)
        cache.put("x", 0, ttl=1)
        cache.put("b", 2)
        clock.advance(1)
        cache.cleanup()
        assert cache.keys() == ["b", "a"]

    def test_cleanup_logs_removed_count(self, clock, caplog):
        cache = LRUCache(capacity=10)
        cache.put("a", 1, ttl=1)
        clock.advance(1)
        with caplog.at_level(logging.INFO, logger="idemcache"):
            cache.cleanup()
        assert "removed 1 expired" in caplog.text


# ---------------------------------------------------------------------------
# Atomic helpers used by the idempotency layer
# ---------------------------------------------------------------------------


class TestAtomicHelpers:
    def test_get_or_insert_inserts_when_absent(self):
        cache = LRUCache(capacity=10)
        assert cache.get_or_insert("k", 1) == (1, True)
        assert cache.get("k") == 1

    def test_get_or_insert_returns_existing(self):
        cache = LRUCache(capacity=10)
        cache.put("k", 1)
        assert cache.get_or_insert("k", 2) == (1, False)
        assert cache.get("k") == 1

    def test_get_or_insert_replaces_expired(self, clock):
        cache = LRUCache(capacity=10)
        cache.put("k", 1, ttl=1)
        clock.advance(1)
        assert cache.get_or_insert("k", 2, ttl=10) == (2, True)
        assert len(cache) == 1

    def test_get_or_insert_disabled_cache(self):
        cache = LRUCache(capacity=0)
        assert cache.get_or_insert("k", 1) == (1, True)
        assert cache.get_or_insert("k", 2) == (2, True)

    def test_remove_if_identity(self):
        cache = LRUCache(capacity=10)
        marker = object()
        cache.put("k", marker)
        assert cache.remove_if("k", object()) is False
        assert cache.remove_if("k", marker) is True
        assert "k" not in cache

    def test_remove_if_absent(self):
        assert LRUCache(capacity=10).remove_if("k", None) is False


# ---------------------------------------------------------------------------
# Stats, clear, concurrency
# ---------------------------------------------------------------------------


class TestStatsAndConcurrency:
    def test_stats_counters(self):
        cache = LRUCache(capacity=1)
        cache.put("a", 1)
        cache.get("a")
        cache.get("missing")
        cache.put("b", 2)
        stats = cache.stats()
        assert stats.size == 1
        assert stats.capacity == 1
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.evictions == 1
        assert stats.hit_ratio == 0.5

    def test_clear(self):
        cache = LRUCache(capacity=10)
        for i in range(5):
            cache.put(i, i)
        cache.clear()
        assert len(cache) == 0
        assert cache.keys() == []
        cache.put("x", 1)
        assert cache.get("x") == 1

    def test_nan_default_ttl_rejected(self):
        with pytest.raises(ConfigurationError):
            LRUCache(capacity=3, default_ttl=float("nan"))

    def test_properties(self):
        cache = LRUCache(capacity=3, default_ttl=7)
        assert cache.capacity == 3
        assert cache.default_ttl == 7.0

    def test_concurrent_access_keeps_invariants(self):
        cache = LRUCache(capacity=50)
        errors: list[BaseException] = []

        def worker(seed: int) -> None:
            rng = random.Random(seed)
            try:
                for _ in range(2000):
                    key = rng.randrange(200)
                    if rng.random() < 0.6:
                        cache.put(key, key)
                    else:
                        value = cache.get(key)
                        assert value is None or value == key
                    if rng.random() < 0.05:
                        cache.remove(key)
            except BaseException as e:  # pragma: no cover - surfaced below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(s,)) for s in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 50
        keys = cache.keys()
        assert len(keys) == len(set(keys)) == len(cache)
