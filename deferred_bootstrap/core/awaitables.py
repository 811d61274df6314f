from __future__ import annotations

import inspect
from typing import Any, Callable


def is_awaitable(value: Any) -> bool:
    return inspect.isawaitable(value)


async def with_awaitable(func: Callable[..., Any] | None, *args: Any) -> Any:
    """Call ``func`` and await its result when it returned an awaitable.

    A missing hook behaves like one that returned ``True`` immediately.
    """

    if func is None or not callable(func):
        return True
    result = func(*args)
    if is_awaitable(result):
        return await result
    return True


def close_awaitable(value: Any) -> None:
    """Release an awaitable that will never be awaited."""

    if inspect.iscoroutine(value):
        value.close()
    elif hasattr(value, "cancel"):
        value.cancel()
