"""Idempotency-key deduplication on top of the LRU cache.

Each token moves through three states:

- unseen (or expired/forgotten): ``check_or_create`` claims it atomically by
  storing an in-flight marker and answers ``NEW``
- in flight: further checks answer ``IN_PROGRESS``, or block with
  ``wait=True`` until the owner saves or releases it
- recorded: checks answer ``DUPLICATE`` with the saved result

The in-flight marker expires after ``in_flight_timeout`` so an owner that
dies without calling ``save_result`` or ``release`` cannot lock a key out.
"""

from __future__ import annotations

import logging
import math
import threading
from time import monotonic
from typing import Any, Hashable

from idemcache.cache.engine import LRUCache
from idemcache.cache.sharded import ShardedLRUCache
from idemcache.core.exceptions import ConfigurationError
from idemcache.core.models import CheckResult, CheckStatus

logger = logging.getLogger("idemcache")


class _InFlight:
    """Marker stored while the operation for a token is running."""

    __slots__ = ("started_at",)

    def __init__(self) -> None:
        self.started_at = monotonic()

    def __repr__(self) -> str:
        return f"<in-flight since {self.started_at:.3f}>"


_NEW = CheckResult(status=CheckStatus.NEW)
_IN_PROGRESS = CheckResult(status=CheckStatus.IN_PROGRESS)

_MAX_WAIT_SLICE = 1.0


class IdempotencyLayer:
    """Deduplicates retried operations by caller-supplied tokens.

    Args:
        cache: Backing cache. A private :class:`LRUCache` is created when omitted.
        ttl: Dedup window in seconds; should cover the longest client retry.
        in_flight_timeout: Seconds before an unresolved in-flight marker
            expires; required so a crashed owner cannot hold a token forever.
        capacity: Size of the private cache (ignored when *cache* is given).
    """

    def __init__(
        self,
        cache: LRUCache | ShardedLRUCache | None = None,
        *,
        ttl: float = 300.0,
        in_flight_timeout: float = 30.0,
        capacity: int = 10_000,
    ) -> None:
        if ttl <= 0:
            raise ConfigurationError(f"ttl must be > 0, got {ttl}")
        if in_flight_timeout is None or not 0 < in_flight_timeout < math.inf:
            raise ConfigurationError(f"in_flight_timeout must be a finite number > 0, got {in_flight_timeout}")
        self._cache = cache if cache is not None else LRUCache(capacity=capacity)
        self._ttl = float(ttl)
        self._in_flight_timeout = float(in_flight_timeout)
        self._cond = threading.Condition()

    @property
    def cache(self) -> LRUCache | ShardedLRUCache:
        return self._cache

    @property
    def ttl(self) -> float:
        return self._ttl

    def check_or_create(
        self,
        token: Hashable,
        *,
        wait: bool = False,
        timeout: float | None = None,
    ) -> CheckResult:
        """Claim *token* or report what is already known about it.

        Args:
            token: Idempotency key, e.g. ``("charge", request_id)``.
            wait: Block while another caller holds the token in flight.
            timeout: Upper bound in seconds for ``wait``; on expiry the
                result is ``IN_PROGRESS``.
        """
        deadline = None if timeout is None else monotonic() + timeout
        while True:
            result = self._claim(token)
            if not (wait and result.in_progress):
                return result
            with self._cond:
                if not isinstance(self._cache.peek(token), _InFlight):
                    continue
                remaining = None if deadline is None else deadline - monotonic()
                if remaining is not None and remaining <= 0:
                    return result
                # Wake up at least when the marker could have expired.
                slice_ = min(self._in_flight_timeout, _MAX_WAIT_SLICE)
                if remaining is not None:
                    slice_ = min(slice_, remaining)
                self._cond.wait(slice_)

    def save_result(self, token: Hashable, result: Any) -> None:
        """Record *result* for *token* for the dedup window."""
        self._cache.put(token, result, ttl=self._ttl)
        self._notify()

    def release(self, token: Hashable) -> bool:
        """Drop the in-flight marker after a failed operation.

        A recorded result is never removed. Returns whether a marker was
        released, so the next check on *token* answers ``NEW``.
        """
        current = self._cache.peek(token)
        if not isinstance(current, _InFlight):
            return False
        released = self._cache.remove_if(token, current)
        if released:
            logger.debug("Released in-flight idempotency key %r", token)
            self._notify()
        return released

    def forget(self, token: Hashable) -> bool:
        """Remove anything stored for *token*."""
        removed = self._cache.remove(token)
        if removed:
            self._notify()
        return removed

    def cleanup(self) -> int:
        return self._cache.cleanup()

    # --- internals ---

    def _claim(self, token: Hashable) -> CheckResult:
        value, inserted = self._cache.get_or_insert(token, _InFlight(), ttl=self._in_flight_timeout)
        if inserted:
            return _NEW
        if isinstance(value, _InFlight):
            return _IN_PROGRESS
        logger.debug("Duplicate request for idempotency key %r", token)
        return CheckResult(status=CheckStatus.DUPLICATE, result=value)

    def _notify(self) -> None:
        with self._cond:
            self._cond.notify_all()
