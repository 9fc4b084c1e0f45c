"""Background thread that periodically purges expired cache entries."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger("idemcache")


class Sweepable(Protocol):
    def cleanup(self) -> int: ...


class CacheSweeper:
    """Calls ``cache.cleanup()`` every ``interval`` seconds.

    Lazy expiration only reclaims keys that are read again; the sweeper
    reclaims the rest. The owner starts and stops it explicitly.

    Args:
        cache: Any object with a ``cleanup() -> int`` method.
        interval: Seconds between sweeps.
    """

    def __init__(self, cache: Sweepable, interval: float = 60.0) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self._cache = cache
        self._interval = interval
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self.total_removed: int = 0

    def start(self) -> None:
        """Start sweeping in a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._sweep_loop, name="idemcache-sweeper", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop sweeping."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self) -> int:
        removed = self._cache.cleanup()
        self.total_removed += removed
        return removed

    def __enter__(self) -> CacheSweeper:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    def _sweep_loop(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._interval)
            if self._stop_event.is_set():
                break
            try:
                self.sweep_once()
            except Exception as e:
                logger.warning("Cache sweep failed: %s", e)
