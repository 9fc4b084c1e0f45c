"""Lock-striped cache: N independent LRU caches selected by key hash."""

from __future__ import annotations

from functools import reduce
from typing import Any, Hashable

from idemcache.cache.engine import LRUCache, make_hasher
from idemcache.core.exceptions import ConfigurationError
from idemcache.core.models import CacheStats

_FIB_MULTIPLIER = 0x9E3779B97F4A7C15
_MASK64 = (1 << 64) - 1


class ShardedLRUCache:
    """Spreads keys over ``shards`` separately locked :class:`LRUCache` shards.

    Recency and eviction are tracked per shard, so the LRU order is only
    exact within a shard. Shard capacities add up to exactly ``capacity``;
    when ``capacity < shards`` some shards hold nothing.
    """

    def __init__(
        self,
        capacity: int = 10_000,
        shards: int = 8,
        default_ttl: float | None = None,
        hash_seed: bool | bytes | None = True,
    ) -> None:
        if capacity < 0:
            raise ConfigurationError(f"capacity must be >= 0, got {capacity}")
        if shards < 1:
            raise ConfigurationError(f"shards must be >= 1, got {shards}")
        base, extra = divmod(int(capacity), shards)
        self._capacity = int(capacity)
        self._router = make_hasher(hash_seed)
        self._shards = [
            LRUCache(capacity=base + (1 if i < extra else 0), default_ttl=default_ttl, hash_seed=hash_seed)
            for i in range(shards)
        ]

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def shards(self) -> list[LRUCache]:
        return list(self._shards)

    def shard_for(self, key: Hashable) -> LRUCache:
        # Route on mixed high bits; shard indexes probe on the low bits.
        mixed = (self._router(key) * _FIB_MULTIPLIER) & _MASK64
        return self._shards[(mixed >> 32) % len(self._shards)]

    # --- per-key operations ---

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self.shard_for(key).get(key, default)

    def put(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        self.shard_for(key).put(key, value, ttl)

    def remove(self, key: Hashable) -> bool:
        return self.shard_for(key).remove(key)

    def peek(self, key: Hashable, default: Any = None) -> Any:
        return self.shard_for(key).peek(key, default)

    def get_or_insert(self, key: Hashable, value: Any, ttl: float | None = None) -> tuple[Any, bool]:
        return self.shard_for(key).get_or_insert(key, value, ttl)

    def remove_if(self, key: Hashable, expected: Any) -> bool:
        return self.shard_for(key).remove_if(key, expected)

    def __contains__(self, key: Hashable) -> bool:
        return key in self.shard_for(key)

    # --- whole-cache operations ---

    def cleanup(self) -> int:
        return sum(shard.cleanup() for shard in self._shards)

    def clear(self) -> None:
        for shard in self._shards:
            shard.clear()

    def stats(self) -> CacheStats:
        merged = reduce(CacheStats.merge, (shard.stats() for shard in self._shards))
        return merged.model_copy(update={"capacity": self._capacity})

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)
