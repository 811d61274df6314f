from __future__ import annotations

import asyncio
import enum
from typing import Any

from deferred_bootstrap.config.model import ERROR_STATE, LOADING_STATE, Hook
from deferred_bootstrap.core.awaitables import with_awaitable
from deferred_bootstrap.core.clock import monotonic_ms
from deferred_bootstrap.observability.logging import get_logger

from .host import OverlayView


class OverlayState(str, enum.Enum):
    HIDDEN = "HIDDEN"
    SHOWING = "SHOWING"
    SHOWN = "SHOWN"
    HIDING = "HIDING"
    ERROR = "ERROR"


class LoadingOverlayController:
    """Debounced loading overlay.

    The overlay appears only when loading outlasts ``threshold_ms`` and, once
    it appeared, stays up for at least ``min_duration_ms``. The
    "shown long enough" latch opens ``min_duration_ms`` after the threshold
    timer fired, or right away when loading finished before that.
    """

    def __init__(
        self,
        view: OverlayView,
        *,
        threshold_ms: int = 0,
        min_duration_ms: int = 0,
        on_show: Hook | None = None,
        on_hide: Hook | None = None,
        on_error_show: Hook | None = None,
    ) -> None:
        self._view = view
        self._threshold_ms = threshold_ms
        self._min_duration_ms = min_duration_ms
        self._on_show = on_show
        self._on_hide = on_hide
        self._on_error_show = on_error_show

        self.state = OverlayState.HIDDEN
        self.shown_at_ms: int | None = None
        self.hidden_at_ms: int | None = None

        self._loading = True
        self._threshold_handle: asyncio.TimerHandle | None = None
        self._latch_handle: asyncio.TimerHandle | None = None
        self._shown_long_enough = asyncio.Event()
        self._show_task: asyncio.Task[None] | None = None
        self._hide_task: asyncio.Task[None] | None = None
        self._error_shown = False
        self._log = get_logger("deferred_bootstrap.overlay")

    @property
    def was_shown(self) -> bool:
        return self._show_task is not None

    @property
    def shown_long_enough(self) -> bool:
        return self._shown_long_enough.is_set()

    def arm(self) -> None:
        loop = asyncio.get_running_loop()
        self._threshold_handle = loop.call_later(self._threshold_ms / 1000, self._on_threshold)

    def _on_threshold(self) -> None:
        self._threshold_handle = None
        if self._loading:
            self._show_task = asyncio.ensure_future(self._show())

        # Debounce: keep the overlay on screen for the minimum duration.
        loop = asyncio.get_running_loop()
        self._latch_handle = loop.call_later(self._min_duration_ms / 1000, self._open_latch)

    def _open_latch(self) -> None:
        self._latch_handle = None
        self._shown_long_enough.set()

    async def _show(self) -> None:
        self.state = OverlayState.SHOWING
        self.shown_at_ms = monotonic_ms()
        self._log.info("overlay_show", threshold_ms=self._threshold_ms)
        await self._call_hook("on_loading_show", self._on_show)
        self._view.add_visual_state(LOADING_STATE)
        if self.state is OverlayState.SHOWING:
            self.state = OverlayState.SHOWN

    async def _hide(self) -> None:
        if self._show_task is not None:
            await asyncio.shield(self._show_task)
        await self._shown_long_enough.wait()
        self.state = OverlayState.HIDING
        await self._call_hook("on_loading_hide", self._on_hide)
        self._view.remove_visual_state(LOADING_STATE)
        self.hidden_at_ms = monotonic_ms()
        self.state = OverlayState.HIDDEN
        self._log.info(
            "overlay_hide",
            visible_ms=self.hidden_at_ms - (self.shown_at_ms or self.hidden_at_ms),
        )

    async def _call_hook(self, name: str, hook: Hook | None) -> Any:
        try:
            return await with_awaitable(hook)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Cosmetic hooks must not block the visual transition.
            self._log.exception("overlay_hook_failed", hook=name)
            return None

    def finish_loading(self) -> None:
        """Mark loading as done; cancels the pending show when never shown."""

        self._loading = False
        if self._threshold_handle is not None:
            self._threshold_handle.cancel()
            self._threshold_handle = None
            self._shown_long_enough.set()

    async def settle(self) -> None:
        """Wait until the overlay is gone, honouring the minimum duration."""

        self.finish_loading()
        if self._show_task is None:
            self._shown_long_enough.set()
            return
        if self._hide_task is None:
            self._hide_task = asyncio.ensure_future(self._hide())
        await asyncio.shield(self._hide_task)

    async def show_error(self) -> None:
        """Replace the loading overlay with the error overlay. Runs once."""

        if self._error_shown:
            return
        self._error_shown = True
        await self.settle()
        await self._call_hook("on_error_show", self._on_error_show)
        self._view.add_visual_state(ERROR_STATE)
        self.state = OverlayState.ERROR
        self._log.info("overlay_error")

    def dispose(self) -> None:
        """Drop pending timers; a loading overlay still on screen is hidden."""

        self._loading = False
        for handle in (self._threshold_handle, self._latch_handle):
            if handle is not None:
                handle.cancel()
        self._threshold_handle = None
        self._latch_handle = None
        self._shown_long_enough.set()
        if self._show_task is not None and self._hide_task is None:
            self._hide_task = asyncio.ensure_future(self._hide())
