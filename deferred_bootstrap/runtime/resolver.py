from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from deferred_bootstrap.config.model import ResolveEntry
from deferred_bootstrap.core.awaitables import close_awaitable, is_awaitable
from deferred_bootstrap.core.errors import InvalidResolveShape, ResolveFailure
from deferred_bootstrap.observability.logging import get_logger

from .host import BootstrapHost, Injector


def _is_set(value: Any) -> bool:
    # Array-likes refuse bool(); a present payload counts as set.
    try:
        return bool(value)
    except (TypeError, ValueError):
        return value is not None


def unwrap_result(value: Any) -> Any:
    """Return the ``data`` payload of a response-like value, else the value.

    Only a truthy ``data`` on a truthy value is unwrapped. Values without a
    truth value (array-likes) are committed whole.
    """

    try:
        if not value:
            return value
    except (TypeError, ValueError):
        return value
    if isinstance(value, Mapping):
        data = value.get("data")
    else:
        data = getattr(value, "data", None)
    return data if _is_set(data) else value


class ResolveExecutor:
    """Runs every resolve provider concurrently and commits the results."""

    def __init__(self, entries: list[ResolveEntry], *, host: BootstrapHost) -> None:
        self._entries = list(entries)
        self._host = host
        self._tasks: list[asyncio.Task[Any]] = []
        self._gathered: asyncio.Future[list[Any]] | None = None
        self._log = get_logger("deferred_bootstrap.resolver")

    @property
    def entries(self) -> list[ResolveEntry]:
        return list(self._entries)

    def launch(self, injector: Injector) -> None:
        """Instantiate all providers and schedule their awaitables.

        Must be called with a running event loop.

        Raises:
            InvalidResolveShape: If a provider returns a non-awaitable value.
        """

        awaitables: list[Any] = []
        try:
            for entry in self._entries:
                result = injector.instantiate(entry.provider)
                if not is_awaitable(result):
                    raise InvalidResolveShape(entry.name)
                awaitables.append(result)
        except BaseException:
            for aw in awaitables:
                close_awaitable(aw)
            raise

        for entry, aw in zip(self._entries, awaitables):
            task = asyncio.ensure_future(self._await_entry(entry, aw))
            task.add_done_callback(self._drain)
            self._tasks.append(task)
        self._gathered = asyncio.gather(*self._tasks)
        self._gathered.add_done_callback(self._drain)

    async def _await_entry(self, entry: ResolveEntry, aw: Any) -> Any:
        try:
            return await aw
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ResolveFailure(entry.name, entry.module_name, str(e) or type(e).__name__) from e

    def _drain(self, fut: asyncio.Future[Any]) -> None:
        # Failures of siblings after the first one are not awaited by anyone.
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self._log.debug("resolve_task_failed", error=str(exc))

    async def commit_all(self) -> list[Any]:
        """Wait for every provider, then commit the unwrapped results in order.

        Cancelling this coroutine leaves provider tasks running.

        Raises:
            ResolveFailure: For the first provider that raised.
        """

        if self._gathered is None:
            raise RuntimeError("launch() must be called before commit_all()")

        results = await asyncio.shield(self._gathered) if self._tasks else []

        committed: list[Any] = []
        for entry, raw in zip(self._entries, results):
            value = unwrap_result(raw)
            self._host.commit_constant(entry.module_name, entry.name, value)
            self._log.info("resolve_committed", constant=entry.name, target_module=entry.module_name)
            committed.append(value)
        return committed
