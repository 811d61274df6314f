from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any

from deferred_bootstrap.config.loader import check_config
from deferred_bootstrap.config.model import BootstrapConfig
from deferred_bootstrap.core.awaitables import is_awaitable, with_awaitable
from deferred_bootstrap.core.clock import RunTimings, monotonic_ms
from deferred_bootstrap.core.errors import BootstrapTimeoutError, StartupFailure
from deferred_bootstrap.observability import bind_context, get_logger, set_state
from deferred_bootstrap.observability.ids import new_run_id

from .host import BootstrapHost, OverlayView
from .overlay import LoadingOverlayController
from .resolver import ResolveExecutor
from .timeout import TimeoutGuard


class BootstrapState(str, enum.Enum):
    INITIALIZING = "INITIALIZING"
    RESOLVING = "RESOLVING"
    AWAITING_OVERLAY_SETTLED = "AWAITING_OVERLAY_SETTLED"
    STARTING = "STARTING"
    STARTED = "STARTED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class Outcome:
    state: BootstrapState
    error: BaseException | None = None

    @classmethod
    def started(cls) -> Outcome:
        return cls(state=BootstrapState.STARTED)

    @classmethod
    def failed(cls, error: BaseException) -> Outcome:
        return cls(state=BootstrapState.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.state is BootstrapState.STARTED

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class BootstrapOrchestrator:
    """Resolve → settle overlay → start, with a timeout and an error overlay.

    One instance drives exactly one run. ``start()`` does the synchronous
    part (validation, injector, provider calls) so configuration mistakes
    raise at the call site; everything after that happens in the returned
    task, which always resolves to an ``Outcome``.
    """

    def __init__(self, config: BootstrapConfig, *, host: BootstrapHost, overlay: OverlayView) -> None:
        self._config = check_config(config)
        self._host = host
        self._view = overlay
        self.run_id = new_run_id()
        self.state = BootstrapState.INITIALIZING
        self.outcome: Outcome | None = None
        self.timings: RunTimings | None = None

        self._executor = ResolveExecutor(self._config.resolve_entries(), host=host)
        self._overlay: LoadingOverlayController | None = None
        self._guard = TimeoutGuard(self._config.max_loading_timeout, self._on_timeout)
        self._before_loading: Any = None
        self._sequence: asyncio.Task[None] | None = None
        self._expired: asyncio.Future[None] | None = None
        self._task: asyncio.Task[Outcome] | None = None
        self._log = get_logger("deferred_bootstrap.orchestrator")

    @property
    def overlay(self) -> LoadingOverlayController | None:
        return self._overlay

    def _set_state(self, state: BootstrapState) -> None:
        self.state = state
        set_state(state.value)

    def start(self) -> asyncio.Task[Outcome]:
        """Begin the run; must be called from a running event loop.

        Raises:
            ConfigError: Malformed configuration.
            InvalidResolveShape: A provider did not return an awaitable.
        """

        if self._task is not None:
            raise RuntimeError("a BootstrapOrchestrator runs only once")

        loop = asyncio.get_running_loop()
        cfg = self._config
        bind_context(run_id=self.run_id, module=cfg.module)
        self._set_state(BootstrapState.INITIALIZING)
        self.timings = RunTimings(started_ms=monotonic_ms())

        injector = self._host.create_injector(cfg.element, cfg.injector_modules)

        if cfg.before_loading is not None:
            result = cfg.before_loading()
            if is_awaitable(result):
                self._before_loading = asyncio.ensure_future(result)
                self._before_loading.add_done_callback(self._drain_before_loading)

        try:
            self._executor.launch(injector)
        except BaseException:
            if self._before_loading is not None:
                self._before_loading.cancel()
            raise

        self._log.info(
            "bootstrap_started",
            resolves=len(self._executor.entries),
            threshold_ms=cfg.show_loading_threshold,
            min_duration_ms=cfg.show_loading_min_duration,
            timeout_ms=cfg.max_loading_timeout,
        )

        self._set_state(BootstrapState.RESOLVING)
        self._overlay = LoadingOverlayController(
            self._view,
            threshold_ms=cfg.show_loading_threshold,
            min_duration_ms=cfg.show_loading_min_duration,
            on_show=cfg.on_loading_show,
            on_hide=cfg.on_loading_hide,
            on_error_show=cfg.on_error_show,
        )
        self._expired = loop.create_future()
        self._guard.arm()
        self._overlay.arm()

        # The sequence is scheduled first so an empty resolve set finishes
        # loading before a zero threshold can show the overlay.
        self._sequence = loop.create_task(self._run_sequence())
        self._task = loop.create_task(self._run())
        return self._task

    def _on_timeout(self) -> None:
        if self.outcome is not None or self._expired is None or self._expired.done():
            return
        self._expired.set_result(None)

    def _drain_before_loading(self, fut: asyncio.Future[Any]) -> None:
        # A failed run never joins before_loading.
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self._log.warning("before_loading_failed", error_type=type(exc).__name__, error=str(exc))

    async def _run_sequence(self) -> None:
        assert self._overlay is not None
        cfg = self._config

        t0 = monotonic_ms()
        await self._executor.commit_all()
        self._log.info("resolves_done", latency_ms=monotonic_ms() - t0)

        self._set_state(BootstrapState.AWAITING_OVERLAY_SETTLED)
        self._overlay.finish_loading()
        try:
            await self._overlay.settle()
            if self._before_loading is not None:
                await self._before_loading

            self._set_state(BootstrapState.STARTING)
            await with_awaitable(cfg.after_loading)
            await with_awaitable(self._host.start_application, cfg.element, cfg.module, cfg.bootstrap_options)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise StartupFailure(str(e) or type(e).__name__) from e

    async def _run(self) -> Outcome:
        assert self._sequence is not None and self._expired is not None
        error: BaseException | None = None
        try:
            done, _ = await asyncio.wait({self._sequence, self._expired}, return_when=asyncio.FIRST_COMPLETED)
            if self._sequence in done:
                error = self._sequence.exception()
            else:
                self._sequence.cancel()
                error = BootstrapTimeoutError(self._config.max_loading_timeout)
        except asyncio.CancelledError:
            self._sequence.cancel()
            self._finish()
            raise

        if error is None:
            self.outcome = Outcome.started()
            self._set_state(BootstrapState.STARTED)
            self._finish()
            self._log.info("bootstrap_started_app", latency_ms=self._elapsed_ms())
            return self.outcome

        return await self._fail(error)

    async def _fail(self, error: BaseException) -> Outcome:
        self.outcome = Outcome.failed(error)
        self._set_state(BootstrapState.FAILED)
        self._guard.cancel()
        self._log.error(
            "bootstrap_failed",
            error_type=type(error).__name__,
            error=str(error),
            latency_ms=self._elapsed_ms(),
        )

        assert self._overlay is not None
        try:
            try:
                await self._overlay.show_error()
            except Exception:
                self._log.exception("error_overlay_failed")
            if self._config.on_error is not None:
                try:
                    await with_awaitable(self._config.on_error, error)
                except Exception:
                    self._log.exception("error_handler_failed")
        finally:
            self._finish()
        return self.outcome

    def _elapsed_ms(self) -> int | None:
        if self.timings is None:
            return None
        return monotonic_ms() - self.timings.started_ms

    def _finish(self) -> None:
        self._guard.cancel()
        if self._expired is not None and not self._expired.done():
            self._expired.cancel()
        if self._before_loading is not None and not self._before_loading.done():
            self._before_loading.cancel()
        if self._overlay is not None:
            self._overlay.dispose()
            if self.timings is not None:
                self.timings.overlay_shown_ms = self._overlay.shown_at_ms
                self.timings.overlay_hidden_ms = self._overlay.hidden_at_ms
        if self.timings is not None and self.timings.finished_ms is None:
            self.timings.finished_ms = monotonic_ms()


def bootstrap(
    config: BootstrapConfig,
    *,
    host: BootstrapHost,
    overlay: OverlayView,
) -> asyncio.Task[Outcome]:
    """Start a deferred bootstrap run and return the task resolving to its Outcome.

    Configuration errors and providers that return non-awaitables raise here,
    before any asynchronous work starts.
    """

    return BootstrapOrchestrator(config, host=host, overlay=overlay).start()


def bootstrap_sync(
    config: BootstrapConfig,
    *,
    host: BootstrapHost,
    overlay: OverlayView,
) -> Outcome:
    """Run a bootstrap on a fresh event loop and return its Outcome."""

    async def _main() -> Outcome:
        return await bootstrap(config, host=host, overlay=overlay)

    return asyncio.run(_main())
