from __future__ import annotations

import json
import logging

from deferred_bootstrap.observability.context import bind_context, set_state
from deferred_bootstrap.observability.logging import KVLogger, _JsonFormatter


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_kv_logger_emits_context_fields_as_json() -> None:
    base = logging.getLogger("deferred_bootstrap.test_logging")
    base.setLevel(logging.INFO)
    handler = _ListHandler()
    base.addHandler(handler)
    try:
        bind_context(run_id="r1", module="app")
        set_state("RESOLVING")
        KVLogger(base).info("resolves_done", latency_ms=12, module="clash")
    finally:
        base.removeHandler(handler)

    payload = json.loads(_JsonFormatter().format(handler.records[0]))
    assert payload["message"] == "resolves_done"
    assert payload["run_id"] == "r1"
    assert payload["state"] == "RESOLVING"
    assert payload["latency_ms"] == 12
    assert payload["module_"] == "clash"


def test_configure_logging_installs_json_handler_once(monkeypatch) -> None:
    import deferred_bootstrap.observability.logging as obs_logging

    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    monkeypatch.setattr(obs_logging, "_configured", False)
    try:
        obs_logging.configure_logging("debug")
        obs_logging.configure_logging("WARNING")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, _JsonFormatter)
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_kv_logger_exception_attaches_traceback() -> None:
    base = logging.getLogger("deferred_bootstrap.test_logging.exc")
    base.setLevel(logging.INFO)
    handler = _ListHandler()
    base.addHandler(handler)
    try:
        try:
            raise RuntimeError("hook failed")
        except RuntimeError:
            KVLogger(base).exception("overlay_hook_failed", hook="on_loading_show", message="x")
    finally:
        base.removeHandler(handler)

    record = handler.records[0]
    assert record.levelno == logging.ERROR
    payload = json.loads(_JsonFormatter().format(record))
    assert payload["hook"] == "on_loading_show"
    assert payload["message_"] == "x"
    assert "RuntimeError: hook failed" in payload["exc_info"]
