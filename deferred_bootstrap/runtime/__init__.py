"""Bootstrap runtime: resolve executor, overlay controller, timeout guard and orchestrator."""

from __future__ import annotations

from .host import (
    BootstrapHost,
    ClassListOverlay,
    Injector,
    ModuleRegistry,
    OverlayView,
    ParameterInjector,
    RegistryHost,
)
from .orchestrator import BootstrapOrchestrator, BootstrapState, Outcome, bootstrap, bootstrap_sync
from .overlay import LoadingOverlayController, OverlayState
from .resolver import ResolveExecutor, unwrap_result
from .timeout import TimeoutGuard

__all__ = [
    "BootstrapHost",
    "BootstrapOrchestrator",
    "BootstrapState",
    "ClassListOverlay",
    "Injector",
    "LoadingOverlayController",
    "ModuleRegistry",
    "Outcome",
    "OverlayState",
    "OverlayView",
    "ParameterInjector",
    "RegistryHost",
    "ResolveExecutor",
    "TimeoutGuard",
    "bootstrap",
    "bootstrap_sync",
    "unwrap_result",
]
