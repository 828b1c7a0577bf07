"""Invoke helpers: call sync or async callables uniformly.

Lifecycle hooks, policies and view factories may be ``def`` or
``async def``. This module keeps the sync/async check in one place.

Usage::

    from wren._internal.invoke import invoke

    result = await invoke(hook, *args, **kwargs)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
