"""Standalone cache — simplest usage."""

from idemcache import LRUCache

cache = LRUCache(capacity=2, default_ttl=60)
cache.put("A", 1)
cache.put("B", 2)
cache.get("A")
cache.put("C", 3)
print(f"Keys (MRU first): {cache.keys()}")
print(f"Stats: {cache.stats()}")
