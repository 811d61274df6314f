from __future__ import annotations

import asyncio

from deferred_bootstrap.config.model import ERROR_STATE, LOADING_STATE
from deferred_bootstrap.runtime.host import ClassListOverlay
from deferred_bootstrap.runtime.overlay import LoadingOverlayController, OverlayState


def test_finish_before_threshold_never_shows() -> None:
    calls: list[str] = []

    async def main() -> LoadingOverlayController:
        ctl = LoadingOverlayController(
            ClassListOverlay(),
            threshold_ms=50,
            min_duration_ms=50,
            on_show=lambda: calls.append("show"),
            on_hide=lambda: calls.append("hide"),
        )
        ctl.arm()
        await asyncio.sleep(0.01)
        ctl.finish_loading()
        await ctl.settle()
        await asyncio.sleep(0.08)
        return ctl

    ctl = asyncio.run(main())

    assert calls == []
    assert ctl.was_shown is False
    assert ctl.shown_long_enough is True
    assert ctl.state is OverlayState.HIDDEN


def test_show_then_settle_honours_min_duration() -> None:
    async def main() -> tuple[LoadingOverlayController, ClassListOverlay, list[bool], float]:
        view = ClassListOverlay()
        ctl = LoadingOverlayController(view, threshold_ms=10, min_duration_ms=80)
        ctl.arm()
        await asyncio.sleep(0.03)
        visible = [LOADING_STATE in view.active]
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        await ctl.settle()
        return ctl, view, visible, loop.time() - t0

    ctl, view, visible, waited = asyncio.run(main())

    assert visible == [True]
    # Shown at ~10ms, latch at ~90ms, settle called at ~30ms.
    assert waited >= 0.05
    assert view.active == set()
    assert ctl.state is OverlayState.HIDDEN
    assert ctl.shown_at_ms is not None and ctl.hidden_at_ms is not None


def test_awaitable_show_hook_is_awaited_before_visual_state() -> None:
    async def main() -> list[str]:
        order: list[str] = []
        view = ClassListOverlay()

        async def on_show() -> None:
            await asyncio.sleep(0.02)
            order.append(f"hook:{LOADING_STATE in view.active}")

        ctl = LoadingOverlayController(view, threshold_ms=0, min_duration_ms=0, on_show=on_show)
        ctl.arm()
        await asyncio.sleep(0.01)
        assert ctl.state is OverlayState.SHOWING
        await asyncio.sleep(0.03)
        order.append(f"after:{LOADING_STATE in view.active}")
        assert ctl.state is OverlayState.SHOWN
        await ctl.settle()
        return order

    assert asyncio.run(main()) == ["hook:False", "after:True"]


def test_error_without_show_skips_hide_hook() -> None:
    calls: list[str] = []

    async def main() -> ClassListOverlay:
        view = ClassListOverlay()
        ctl = LoadingOverlayController(
            view,
            threshold_ms=100,
            on_hide=lambda: calls.append("hide"),
            on_error_show=lambda: calls.append("error"),
        )
        ctl.arm()
        await ctl.show_error()
        await ctl.show_error()
        ctl.dispose()
        return view

    view = asyncio.run(main())

    assert calls == ["error"]
    assert view.active == {ERROR_STATE}


def test_error_after_show_removes_loading_first() -> None:
    async def main() -> tuple[ClassListOverlay, LoadingOverlayController]:
        view = ClassListOverlay()
        ctl = LoadingOverlayController(view, threshold_ms=0, min_duration_ms=20)
        ctl.arm()
        await asyncio.sleep(0.01)
        await ctl.show_error()
        return view, ctl

    view, ctl = asyncio.run(main())

    assert view.active == {ERROR_STATE}
    assert ctl.state is OverlayState.ERROR


def test_dispose_while_shown_hides_loading_overlay() -> None:
    calls: list[str] = []

    async def main() -> tuple[ClassListOverlay, LoadingOverlayController]:
        view = ClassListOverlay()
        ctl = LoadingOverlayController(
            view,
            threshold_ms=0,
            min_duration_ms=500,
            on_hide=lambda: calls.append("hide"),
        )
        ctl.arm()
        await asyncio.sleep(0.02)
        assert LOADING_STATE in view.active
        ctl.dispose()
        await asyncio.sleep(0.02)
        return view, ctl

    view, ctl = asyncio.run(main())

    assert calls == ["hide"]
    assert view.active == set()
    assert ctl.state is OverlayState.HIDDEN
    assert ctl.shown_long_enough is True
