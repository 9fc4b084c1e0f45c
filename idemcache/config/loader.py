"""Unified config loader for idemcache.

Loads ``idemcache.yaml``, expands ``${VAR}`` env-var references,
validates, and builds configured cache, sweeper and idempotency instances.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from idemcache.cache.engine import LRUCache
from idemcache.cache.sharded import ShardedLRUCache
from idemcache.cache.sweeper import CacheSweeper
from idemcache.config.settings import get_settings
from idemcache.core.exceptions import ConfigurationError
from idemcache.idempotency.layer import IdempotencyLayer

_ENV_RE = re.compile(r"\$\{([^}]+)\}")


# ────────────────────────────────────────────────────────────────────
# Config dataclass
# ────────────────────────────────────────────────────────────────────


@dataclass
class IdemcacheConfig:
    """Resolved configuration for a cache and its idempotency layer."""

    # cache
    capacity: int = 10_000
    default_ttl: float | None = None
    hash_seed: bool | bytes = True
    shards: int = 1
    sweep_interval: float | None = None

    # idempotency
    idempotency_ttl: float = 300.0
    idempotency_in_flight_timeout: float = 30.0
    idempotency_capacity: int = 10_000


# ────────────────────────────────────────────────────────────────────
# Loaders
# ────────────────────────────────────────────────────────────────────


def _expand_env(value: str) -> str:
    """Replace ``${VAR}`` with env values."""

    def _sub(m: re.Match) -> str:
        return os.environ.get(m.group(1), m.group(0))

    return _ENV_RE.sub(_sub, value)


def _expand_env_recursive(obj):  # noqa: ANN001, ANN202
    if isinstance(obj, str):
        return _expand_env(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(i) for i in obj]
    return obj


def load_config(path: str | Path | None = None) -> IdemcacheConfig:
    """Load config from YAML with env-var expansion.

    Search order:
    1. *path* argument
    2. ``IDEMCACHE_CONFIG`` env var
    3. ``./idemcache.yaml``
    4. Defaults

    ``IDEMCACHE_CAPACITY``, ``IDEMCACHE_DEFAULT_TTL``, ``IDEMCACHE_HASH_SEED``
    and ``IDEMCACHE_SHARDS`` override the file.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigurationError: If a value is invalid.
    """
    try:
        settings = get_settings()
    except ValueError as e:
        raise ConfigurationError(f"Invalid IDEMCACHE_* environment variable: {e}") from e

    if path is None:
        path = settings.config_path
    if path is None:
        candidate = Path("idemcache.yaml")
        if candidate.exists():
            path = candidate

    data: dict = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", file_path=str(path)) from e
        if isinstance(raw, dict):
            data = raw.get("idemcache", raw) or {}
        data = _expand_env_recursive(data)

    try:
        cfg = _build_config(data)
    except ConfigurationError as e:
        if path is not None and e.file_path is None:
            raise ConfigurationError(str(e), file_path=str(path)) from e
        raise

    # Env-var overrides (e.g. IDEMCACHE_CAPACITY=500)
    if settings.capacity is not None:
        cfg.capacity = _non_negative_int(settings.capacity, "capacity")
    if settings.default_ttl is not None:
        cfg.default_ttl = _optional_ttl(settings.default_ttl, "IDEMCACHE_DEFAULT_TTL")
    if settings.hash_seed is not None:
        cfg.hash_seed = settings.hash_seed
    if settings.shards is not None:
        cfg.shards = _positive_int(settings.shards, "shards")

    return cfg


def _build_config(data: dict) -> IdemcacheConfig:
    """Map raw dict to :class:`IdemcacheConfig`."""
    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a mapping")
    cache = data.get("cache", {}) or {}
    idem = data.get("idempotency", {}) or {}
    if not isinstance(cache, dict):
        raise ConfigurationError("cache must be a mapping")
    if not isinstance(idem, dict):
        raise ConfigurationError("idempotency must be a mapping")

    defaults = IdemcacheConfig()
    return IdemcacheConfig(
        capacity=_non_negative_int(cache.get("capacity", defaults.capacity), "cache.capacity"),
        default_ttl=_optional_ttl(cache.get("default_ttl"), "cache.default_ttl"),
        hash_seed=_hash_seed(cache.get("hash_seed", True)),
        shards=_positive_int(cache.get("shards", defaults.shards), "cache.shards"),
        sweep_interval=_optional_positive_float(cache.get("sweep_interval"), "cache.sweep_interval"),
        idempotency_ttl=_positive_float(idem.get("ttl", defaults.idempotency_ttl), "idempotency.ttl"),
        idempotency_in_flight_timeout=_finite_positive_float(
            idem.get("in_flight_timeout", defaults.idempotency_in_flight_timeout),
            "idempotency.in_flight_timeout",
        ),
        idempotency_capacity=_non_negative_int(
            idem.get("capacity", defaults.idempotency_capacity), "idempotency.capacity"
        ),
    )


# ────────────────────────────────────────────────────────────────────
# Value coercion
# ────────────────────────────────────────────────────────────────────


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if result < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {result}")
    return result


def _positive_int(value: Any, name: str) -> int:
    result = _non_negative_int(value, name)
    if result < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {result}")
    return result


def _optional_float(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if math.isnan(result):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    return result


def _optional_ttl(value: Any, name: str) -> float | None:
    result = _optional_float(value, name)
    if result is not None and result < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {result}")
    return result


def _optional_positive_float(value: Any, name: str) -> float | None:
    result = _optional_float(value, name)
    if result is not None and result <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {result}")
    return result


def _positive_float(value: Any, name: str) -> float:
    result = _optional_positive_float(value, name)
    if result is None:
        raise ConfigurationError(f"{name} is required")
    return result


def _finite_positive_float(value: Any, name: str) -> float:
    result = _positive_float(value, name)
    if math.isinf(result):
        raise ConfigurationError(f"{name} must be finite, got {result}")
    return result


def _hash_seed(value: Any) -> bool | bytes:
    """``true``/``false`` (or ``0``/``1``), or a hex string used as a fixed seed.

    The strings ``"0"`` and ``"1"`` read as booleans; spell one-byte seeds
    with two hex digits (``"01"``).
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        try:
            seed = bytes.fromhex(lowered)
        except ValueError:
            raise ConfigurationError(f"cache.hash_seed must be a boolean or hex string, got {value!r}")
        if not 1 <= len(seed) <= 64:
            raise ConfigurationError("cache.hash_seed must decode to 1..64 bytes")
        return seed
    raise ConfigurationError(f"cache.hash_seed must be a boolean or hex string, got {value!r}")


# ────────────────────────────────────────────────────────────────────
# Builders
# ────────────────────────────────────────────────────────────────────


def build_cache_from_config(config: IdemcacheConfig) -> LRUCache | ShardedLRUCache:
    """Create the configured cache; sharded when ``shards > 1``."""
    if config.shards > 1:
        return ShardedLRUCache(
            capacity=config.capacity,
            shards=config.shards,
            default_ttl=config.default_ttl,
            hash_seed=config.hash_seed,
        )
    return LRUCache(
        capacity=config.capacity,
        default_ttl=config.default_ttl,
        hash_seed=config.hash_seed,
    )


def build_sweeper_from_config(
    config: IdemcacheConfig,
    cache: LRUCache | ShardedLRUCache,
) -> CacheSweeper | None:
    """Create a (not yet started) sweeper, or ``None`` if sweeping is off."""
    if config.sweep_interval is None:
        return None
    return CacheSweeper(cache, interval=config.sweep_interval)


def build_idempotency_from_config(config: IdemcacheConfig) -> IdempotencyLayer:
    """Create an :class:`IdempotencyLayer` with its own cache."""
    cache = LRUCache(capacity=config.idempotency_capacity, hash_seed=config.hash_seed)
    return IdempotencyLayer(
        cache,
        ttl=config.idempotency_ttl,
        in_flight_timeout=config.idempotency_in_flight_timeout,
    )


# ────────────────────────────────────────────────────────────────────
# Validation helpers
# ────────────────────────────────────────────────────────────────────


def validate_config_file(path: str | Path) -> list[str]:
    """Validate a config file.

    Returns a list of error messages (empty → valid).
    """
    path = Path(path)
    if not path.exists():
        return [f"File not found: {path}"]

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        return [f"Invalid YAML: {e}"]

    if not isinstance(raw, dict):
        return ["Config root must be a mapping"]

    data = _expand_env_recursive(raw.get("idemcache", raw) or {})
    if not isinstance(data, dict):
        return ["Config root must be a mapping"]

    errors: list[str] = []
    for section in ("cache", "idempotency"):
        value = data.get(section, {})
        if value is not None and not isinstance(value, dict):
            errors.append(f"{section} must be a mapping")
    if errors:
        return errors

    unknown = set(data) - {"version", "cache", "idempotency"}
    errors.extend(f"Unknown key: {key}" for key in sorted(unknown))

    try:
        _build_config(data)
    except ConfigurationError as e:
        errors.append(str(e))
    return errors


def render_config(config: IdemcacheConfig) -> str:
    """Render resolved config as YAML string."""
    hash_seed = config.hash_seed.hex() if isinstance(config.hash_seed, bytes) else config.hash_seed
    d = {
        "idemcache": {
            "version": 1,
            "cache": {
                "capacity": config.capacity,
                "default_ttl": config.default_ttl,
                "hash_seed": hash_seed,
                "shards": config.shards,
                "sweep_interval": config.sweep_interval,
            },
            "idempotency": {
                "ttl": config.idempotency_ttl,
                "in_flight_timeout": config.idempotency_in_flight_timeout,
                "capacity": config.idempotency_capacity,
            },
        }
    }
    return yaml.dump(d, default_flow_style=False, sort_keys=False)


def generate_default_config() -> str:
    """Generate default idemcache.yaml content."""
    return render_config(IdemcacheConfig())
