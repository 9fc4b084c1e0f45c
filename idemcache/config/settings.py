"""Centralized configuration from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else None


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else None


def _env_bool(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheSettings:
    """idemcache overrides read from ``IDEMCACHE_*`` environment variables.

    Cache fields are ``None`` when the variable is unset, so they only
    override a config file when explicitly provided.
    """

    # Config file
    config_path: str | None = field(default_factory=lambda: os.environ.get("IDEMCACHE_CONFIG"))
    # Cache
    capacity: int | None = field(default_factory=lambda: _env_int("IDEMCACHE_CAPACITY"))
    default_ttl: float | None = field(default_factory=lambda: _env_float("IDEMCACHE_DEFAULT_TTL"))
    hash_seed: bool | None = field(default_factory=lambda: _env_bool("IDEMCACHE_HASH_SEED"))
    shards: int | None = field(default_factory=lambda: _env_int("IDEMCACHE_SHARDS"))
    # Logging
    log_level: str = field(default_factory=lambda: os.environ.get("IDEMCACHE_LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: os.environ.get("IDEMCACHE_LOG_FORMAT", "text"))


def get_settings() -> CacheSettings:
    """Create settings from current environment."""
    return CacheSettings()
