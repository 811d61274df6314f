"""Delay application startup until asynchronous resolves are available.

A loading overlay appears only when resolving is slow, stays up long enough
not to flicker, and gives way to an error overlay on failure or timeout.
"""

from __future__ import annotations

from deferred_bootstrap.config import BootstrapConfig, ModuleResolve, load_config, parse_config
from deferred_bootstrap.core import __version__
from deferred_bootstrap.core.errors import (
    BootstrapTimeoutError,
    ConfigError,
    DeferredBootstrapError,
    InvalidResolveShape,
    ResolveFailure,
    StartupFailure,
)
from deferred_bootstrap.runtime import (
    BootstrapOrchestrator,
    BootstrapState,
    ClassListOverlay,
    Outcome,
    RegistryHost,
    bootstrap,
    bootstrap_sync,
)

__all__ = [
    "BootstrapConfig",
    "BootstrapOrchestrator",
    "BootstrapState",
    "BootstrapTimeoutError",
    "ClassListOverlay",
    "ConfigError",
    "DeferredBootstrapError",
    "InvalidResolveShape",
    "ModuleResolve",
    "Outcome",
    "RegistryHost",
    "ResolveFailure",
    "StartupFailure",
    "__version__",
    "bootstrap",
    "bootstrap_sync",
    "load_config",
    "parse_config",
]
