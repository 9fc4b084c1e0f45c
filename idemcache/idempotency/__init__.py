"""Idempotency-key deduplication built on the LRU cache."""

from idemcache.idempotency.decorators import idempotent
from idemcache.idempotency.layer import IdempotencyLayer

__all__ = ["IdempotencyLayer", "idempotent"]
