from __future__ import annotations

import asyncio
from typing import Callable

from deferred_bootstrap.observability.logging import get_logger


class TimeoutGuard:
    """Single max-duration timer for one bootstrap run.

    ``on_expire`` runs at most once, and never after ``cancel()``.
    """

    def __init__(self, timeout_ms: int, on_expire: Callable[[], None]) -> None:
        self.timeout_ms = timeout_ms
        self._on_expire = on_expire
        self._handle: asyncio.TimerHandle | None = None
        self._done = False
        self.fired = False
        self._log = get_logger("deferred_bootstrap.timeout")

    @property
    def enabled(self) -> bool:
        return self.timeout_ms > 0

    def arm(self) -> None:
        if not self.enabled or self._done or self._handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.timeout_ms / 1000, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._done:
            return
        self._done = True
        self.fired = True
        self._log.warning("timeout_fired", timeout_ms=self.timeout_ms)
        self._on_expire()

    def cancel(self) -> None:
        self._done = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
