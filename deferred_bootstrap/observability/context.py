from __future__ import annotations

from contextvars import ContextVar


_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_module: ContextVar[str | None] = ContextVar("module", default=None)
_state: ContextVar[str | None] = ContextVar("state", default=None)


def bind_context(*, run_id: str, module: str) -> None:
    _run_id.set(run_id)
    _module.set(module)
    _state.set(None)


def set_state(state: str) -> None:
    _state.set(state)


def snapshot() -> dict[str, object]:
    """Return a snapshot of current observability context for logging."""

    out: dict[str, object] = {}
    if (v := _run_id.get()) is not None:
        out["run_id"] = v
    if (v := _module.get()) is not None:
        out["module"] = v
    if (v := _state.get()) is not None:
        out["state"] = v
    return out
