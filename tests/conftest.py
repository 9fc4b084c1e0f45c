# idemcache test configuration

import pytest


class FakeClock:
    """Stand-in for the cache's monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    """Freeze cache time; advance it with ``clock.advance(seconds)``."""
    fake = FakeClock()
    monkeypatch.setattr("idemcache.cache.engine._now", fake)
    return fake


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep IDEMCACHE_* variables from the outer environment out of tests."""
    for name in (
        "IDEMCACHE_CONFIG",
        "IDEMCACHE_CAPACITY",
        "IDEMCACHE_DEFAULT_TTL",
        "IDEMCACHE_HASH_SEED",
        "IDEMCACHE_SHARDS",
        "IDEMCACHE_LOG_LEVEL",
        "IDEMCACHE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
