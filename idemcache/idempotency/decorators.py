"""Decorator API for making functions idempotent.

Usage:
    from idemcache.idempotency import IdempotencyLayer, idempotent

    layer = IdempotencyLayer(ttl=600)

    @idempotent(layer, key=lambda order_id, amount: ("charge", order_id))
    def charge(order_id: str, amount: int) -> dict: ...

    @idempotent(layer, wait=True, timeout=5.0)
    async def send_invoice(invoice_id: str) -> str: ...
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Hashable

from idemcache.core.exceptions import OperationInProgressError
from idemcache.core.models import CheckResult
from idemcache.idempotency.layer import IdempotencyLayer


def idempotent(
    layer: IdempotencyLayer,
    key: Callable[..., Hashable] | None = None,
    wait: bool = False,
    timeout: float | None = None,
) -> Callable:
    """Run the wrapped function at most once per idempotency key.

    Works with both sync and async functions.

    Args:
        layer: Layer that records results.
        key: Builds the token from the call arguments. Defaults to the
            function's qualified name plus its bound arguments, which must
            then be hashable.
        wait: Block on a concurrent in-flight call instead of raising.
        timeout: Upper bound for ``wait`` in seconds.

    Raises:
        OperationInProgressError: If the same key is still in flight.
    """

    def decorator(func: Callable) -> Callable:
        make_key = key or functools.partial(_default_key, func)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                token = make_key(*args, **kwargs)
                if wait:
                    check = await asyncio.to_thread(layer.check_or_create, token, wait=True, timeout=timeout)
                else:
                    check = layer.check_or_create(token)
                if not check.is_new:
                    return _replay(token, check)
                try:
                    result = await func(*args, **kwargs)
                except BaseException:
                    layer.release(token)
                    raise
                layer.save_result(token, result)
                return result

            return async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                token = make_key(*args, **kwargs)
                check = layer.check_or_create(token, wait=wait, timeout=timeout)
                if not check.is_new:
                    return _replay(token, check)
                try:
                    result = func(*args, **kwargs)
                except BaseException:
                    layer.release(token)
                    raise
                layer.save_result(token, result)
                return result

            return sync_wrapper

    return decorator


def _replay(token: Hashable, check: CheckResult) -> Any:
    if check.in_progress:
        raise OperationInProgressError(token)
    return check.result


def _default_key(func: Callable, *args: Any, **kwargs: Any) -> Hashable:
    """Token from the function name and its arguments bound by signature."""
    try:
        bound = inspect.signature(func).bind(*args, **kwargs)
        bound.apply_defaults()
        arguments = tuple(bound.arguments.items())
    except (ValueError, TypeError):
        # Fallback for callables without an introspectable signature
        arguments = (args, tuple(sorted(kwargs.items())))
    return (func.__qualname__, arguments)
