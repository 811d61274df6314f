from __future__ import annotations

from .context import bind_context, set_state
from .logging import configure_logging, get_logger

__all__ = ["bind_context", "configure_logging", "get_logger", "set_state"]
