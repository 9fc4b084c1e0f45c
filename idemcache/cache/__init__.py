"""In-memory LRU + TTL cache engine."""

from idemcache.cache.engine import LRUCache
from idemcache.cache.sharded import ShardedLRUCache
from idemcache.cache.sweeper import CacheSweeper

__all__ = ["CacheSweeper", "LRUCache", "ShardedLRUCache"]
