"""Core data models for idemcache."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# --- Enums ---


class CheckStatus(str, Enum):
    """Outcome of an idempotency check."""

    NEW = "NEW"
    DUPLICATE = "DUPLICATE"
    IN_PROGRESS = "IN_PROGRESS"


# --- Data Models ---


class CheckResult(BaseModel):
    """Result of :meth:`IdempotencyLayer.check_or_create`.

    ``result`` is only meaningful when ``status`` is ``DUPLICATE``; it is the
    exact object that was passed to ``save_result``.
    """

    model_config = ConfigDict(frozen=True)

    status: CheckStatus
    result: Any = None

    @property
    def is_new(self) -> bool:
        return self.status == CheckStatus.NEW

    @property
    def is_duplicate(self) -> bool:
        return self.status == CheckStatus.DUPLICATE

    @property
    def in_progress(self) -> bool:
        return self.status == CheckStatus.IN_PROGRESS


class CacheStats(BaseModel):
    """Point-in-time counters for a cache instance."""

    model_config = ConfigDict(frozen=True)

    size: int = 0
    capacity: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    shards: int = Field(default=1, ge=1)

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total, 3) if total else 0.0

    def merge(self, other: CacheStats) -> CacheStats:
        """Combine counters of two caches (used to aggregate shards)."""
        return CacheStats(
            size=self.size + other.size,
            capacity=self.capacity + other.capacity,
            hits=self.hits + other.hits,
            misses=self.misses + other.misses,
            evictions=self.evictions + other.evictions,
            expirations=self.expirations + other.expirations,
            shards=self.shards + other.shards,
        )
