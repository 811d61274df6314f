"""Project core.

Stable building blocks shared by the runtime: errors, clock and awaitable helpers.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
