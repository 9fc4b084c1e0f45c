"""Thread-safe bounded LRU cache with per-entry TTL.

The cache composes three structures that are always mutated together under
one lock:

- :class:`HashIndex` — key → entry handle
- :class:`RecencyList` — entry order from most to least recently used
- :class:`EntryStore` — owns the entries themselves

Expired entries are dropped lazily when looked up, or eagerly by
:meth:`LRUCache.cleanup` (see :class:`idemcache.cache.sweeper.CacheSweeper`).
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Hashable

from idemcache.cache.entry_store import Entry, EntryStore
from idemcache.cache.hash_index import HashIndex, KeyHasher
from idemcache.cache.recency import RecencyList
from idemcache.core.exceptions import ConfigurationError
from idemcache.core.models import CacheStats

logger = logging.getLogger("idemcache")


def _now() -> float:
    """Monotonic clock used for every expiration decision."""
    return time.monotonic()


def make_hasher(hash_seed: bool | bytes | None) -> KeyHasher:
    """Build a :class:`KeyHasher` from a ``hash_seed`` option.

    ``True`` picks a random secret seed, bytes are used as the seed, and
    ``False``/``None`` fall back to the unseeded built-in ``hash()``.
    """
    if hash_seed is True:
        return KeyHasher.random()
    if not hash_seed:
        return KeyHasher(None)
    return KeyHasher(bytes(hash_seed))


class LRUCache:
    """Bounded LRU + TTL cache.

    Args:
        capacity: Maximum number of entries. ``0`` disables the cache.
        default_ttl: Seconds applied when ``put`` gets no explicit ``ttl``.
            ``None`` means such entries never expire.
        hash_seed: Key hashing mode, see :func:`make_hasher`.

    Raises:
        ConfigurationError: If ``capacity`` is negative or ``default_ttl`` is NaN.
    """

    def __init__(
        self,
        capacity: int = 10_000,
        default_ttl: float | None = None,
        hash_seed: bool | bytes | None = True,
    ) -> None:
        if capacity < 0:
            raise ConfigurationError(f"capacity must be >= 0, got {capacity}")
        if default_ttl is not None and math.isnan(default_ttl):
            raise ConfigurationError("default_ttl must be a number, got nan")
        self._capacity = int(capacity)
        self._default_ttl = None if default_ttl is None else float(default_ttl)
        self._index = HashIndex(make_hasher(hash_seed))
        self._recency = RecencyList()
        self._entries = EntryStore()
        self._lock = threading.Lock()

        # Counters
        self.hits: int = 0
        self.misses: int = 0
        self.evictions: int = 0
        self.expirations: int = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def default_ttl(self) -> float | None:
        return self._default_ttl

    # --- public API ---

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for *key* and mark it most recently used."""
        with self._lock:
            handle = self._index.lookup(key)
            if handle is None:
                self.misses += 1
                return default
            entry = self._entries.get(handle)
            if entry.is_expired(_now()):
                self._drop(handle)
                self.expirations += 1
                self.misses += 1
                logger.debug("Expired cache entry dropped on read: %r", key)
                return default
            self._recency.move_to_front(entry.node)
            self.hits += 1
            return entry.value

    def put(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """Insert or replace *key*, evicting the LRU entry when full."""
        with self._lock:
            self._store(key, value, ttl)

    def remove(self, key: Hashable) -> bool:
        """Delete *key*; expired-but-unswept entries count as present."""
        with self._lock:
            handle = self._index.lookup(key)
            if handle is None:
                return False
            self._drop(handle)
            return True

    def cleanup(self) -> int:
        """Physically remove every expired entry and return how many."""
        with self._lock:
            now = _now()
            expired = [h for h in self._entries.handles() if self._entries.get(h).is_expired(now)]
            for handle in expired:
                self._drop(handle)
            self.expirations += len(expired)
        if expired:
            logger.info("Cache cleanup removed %d expired entries", len(expired))
        return len(expired)

    def peek(self, key: Hashable, default: Any = None) -> Any:
        """Return the live value for *key* without touching recency or counters."""
        with self._lock:
            handle = self._index.lookup(key)
            if handle is None:
                return default
            entry = self._entries.get(handle)
            return default if entry.is_expired(_now()) else entry.value

    def get_or_insert(self, key: Hashable, value: Any, ttl: float | None = None) -> tuple[Any, bool]:
        """Atomically return the live value for *key*, or store *value*.

        Returns:
            ``(existing, False)`` on a hit, ``(value, True)`` when *value*
            was inserted (or would have been, for a disabled cache).
        """
        with self._lock:
            handle = self._index.lookup(key)
            if handle is not None:
                entry = self._entries.get(handle)
                if not entry.is_expired(_now()):
                    self._recency.move_to_front(entry.node)
                    self.hits += 1
                    return entry.value, False
                self.expirations += 1
            self.misses += 1
            self._store(key, value, ttl)
            return value, True

    def remove_if(self, key: Hashable, expected: Any) -> bool:
        """Delete *key* only while its stored value is *expected* (identity)."""
        with self._lock:
            handle = self._index.lookup(key)
            if handle is None or self._entries.get(handle).value is not expected:
                return False
            self._drop(handle)
            return True

    def keys(self) -> list[Hashable]:
        """Live keys from most to least recently used."""
        with self._lock:
            now = _now()
            entries = (self._entries.get(h) for h in self._recency)
            return [e.key for e in entries if not e.is_expired(now)]

    def clear(self) -> None:
        with self._lock:
            self._index.clear()
            self._recency.clear()
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                capacity=self._capacity,
                hits=self.hits,
                misses=self.misses,
                evictions=self.evictions,
                expirations=self.expirations,
            )

    def __len__(self) -> int:
        """Physical entry count, including expired entries not yet swept."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            handle = self._index.lookup(key)
            return handle is not None and not self._entries.get(handle).is_expired(_now())

    # --- internals (caller holds self._lock) ---

    def _store(self, key: Hashable, value: Any, ttl: float | None) -> None:
        if self._capacity == 0:
            return
        expires_at = self._expires_at(ttl)

        handle = self._index.lookup(key)
        if handle is not None:
            entry = self._entries.get(handle)
            entry.value = value
            entry.expires_at = expires_at
            self._recency.move_to_front(entry.node)
            return

        if len(self._entries) >= self._capacity:
            self._evict_lru()

        entry = Entry(key=key, value=value, expires_at=expires_at)
        handle = self._entries.allocate(entry)
        self._index.insert(key, handle)
        entry.node = self._recency.push_front(handle)

    def _expires_at(self, ttl: float | None) -> float | None:
        if ttl is None:
            ttl = self._default_ttl
        if ttl is None:
            return None
        return _now() + float(ttl)

    def _evict_lru(self) -> None:
        handle = self._recency.pop_back()
        if handle is None:
            return
        entry = self._entries.release(handle)
        self._index.remove(entry.key)
        self.evictions += 1
        logger.debug("Evicted least recently used cache entry: %r", entry.key)

    def _drop(self, handle: int) -> None:
        entry = self._entries.release(handle)
        self._index.remove(entry.key)
        self._recency.remove(entry.node)
