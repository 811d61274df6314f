from __future__ import annotations

import time
from dataclasses import dataclass


def monotonic_ms() -> int:
    """Monotonic clock in milliseconds.

    Use this for latency measurements.
    """

    return int(time.monotonic() * 1000)


@dataclass(slots=True)
class RunTimings:
    """Per-run timing markers for overlay and startup instrumentation."""

    started_ms: int
    overlay_shown_ms: int | None = None
    overlay_hidden_ms: int | None = None
    finished_ms: int | None = None

    def overlay_visible_ms(self) -> int | None:
        if self.overlay_shown_ms is None or self.overlay_hidden_ms is None:
            return None
        return self.overlay_hidden_ms - self.overlay_shown_ms

    def total_ms(self) -> int | None:
        if self.finished_ms is None:
            return None
        return self.finished_ms - self.started_ms
