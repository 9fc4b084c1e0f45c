"""idemcache — Bounded in-memory LRU/TTL cache with idempotency-key deduplication."""

import sys

if sys.version_info < (3, 10):
    raise RuntimeError(
        f"idemcache requires Python 3.10+, but you're running {sys.version}. "
        "Please upgrade Python or use a virtual environment with 3.10+."
    )

__version__ = "0.1.0"

from idemcache.cache.engine import LRUCache  # noqa: E402, F401
from idemcache.cache.sharded import ShardedLRUCache  # noqa: E402, F401
from idemcache.cache.sweeper import CacheSweeper  # noqa: E402, F401
from idemcache.core.exceptions import (  # noqa: E402, F401
    ConfigurationError,
    IdemcacheError,
    OperationInProgressError,
)
from idemcache.core.models import CacheStats, CheckResult, CheckStatus  # noqa: E402, F401
from idemcache.idempotency.decorators import idempotent  # noqa: E402, F401
from idemcache.idempotency.layer import IdempotencyLayer  # noqa: E402, F401

__all__ = [
    "__version__",
    "CacheStats",
    "CacheSweeper",
    "CheckResult",
    "CheckStatus",
    "ConfigurationError",
    "IdemcacheError",
    "IdempotencyLayer",
    "LRUCache",
    "OperationInProgressError",
    "ShardedLRUCache",
    "idempotent",
]
