# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Helpers for calling user callbacks that may or may not be coroutines."""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable

import anyio.to_thread


async def maybe_await_with_args(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call *fn* with the given arguments without blocking the event loop.

    Coroutine functions are awaited in place. Anything else runs in a worker
    thread, so a slow sync callback only holds up its own request; an
    awaitable it returns is awaited back on the loop.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(*args, **kwargs)
    result = await anyio.to_thread.run_sync(functools.partial(fn, *args, **kwargs))
    if inspect.isawaitable(result):
        return await result
    return result


__all__ = ["maybe_await_with_args"]
