"""Unified configuration for idemcache."""

from idemcache.config.loader import (
    IdemcacheConfig,
    build_cache_from_config,
    build_idempotency_from_config,
    build_sweeper_from_config,
    load_config,
)
from idemcache.config.settings import CacheSettings, get_settings

__all__ = [
    "CacheSettings",
    "IdemcacheConfig",
    "build_cache_from_config",
    "build_idempotency_from_config",
    "build_sweeper_from_config",
    "get_settings",
    "load_config",
]
