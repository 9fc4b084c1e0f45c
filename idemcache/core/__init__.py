"""Core module for idemcache — data models and exceptions."""

from idemcache.core.exceptions import (
    ConfigurationError,
    IdemcacheError,
    OperationInProgressError,
)
from idemcache.core.models import CacheStats, CheckResult, CheckStatus

__all__ = [
    "CacheStats",
    "CheckResult",
    "CheckStatus",
    "ConfigurationError",
    "IdemcacheError",
    "OperationInProgressError",
]
