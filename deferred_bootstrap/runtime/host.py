"""Collaborator contracts for the bootstrap runtime.

The orchestrator never touches a DI container or a rendering layer directly;
it talks to a ``BootstrapHost`` and an ``OverlayView``. The small concrete
classes here are enough to embed the runtime in a plain asyncio program and
are what the tests run against.
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Protocol

from deferred_bootstrap.core.errors import DuplicateConstantError, UnknownDependencyError
from deferred_bootstrap.observability.logging import get_logger


class Injector(Protocol):
    def instantiate(self, provider: Any) -> Any: ...


class BootstrapHost(Protocol):
    def create_injector(self, element: Any, modules: Sequence[str]) -> Injector: ...

    def commit_constant(self, module_name: str, constant_name: str, value: Any) -> None: ...

    def start_application(self, element: Any, module_name: str, options: Mapping[str, Any] | None) -> Any: ...


class OverlayView(Protocol):
    def add_visual_state(self, name: str) -> None: ...

    def remove_visual_state(self, name: str) -> None: ...


class ParameterInjector:
    """Instantiate providers by supplying their parameters by name.

    ``fn(http, config)`` receives ``services["http"]`` and ``services["config"]``.
    The annotated form ``["http", "config", fn]`` passes them positionally
    instead, which keeps working when ``fn``'s parameter names differ.
    """

    def __init__(self, services: Mapping[str, Any]) -> None:
        self._services = dict(services)

    def get(self, name: str) -> Any:
        if name not in self._services:
            raise UnknownDependencyError(name)
        return self._services[name]

    def instantiate(self, provider: Any) -> Any:
        if isinstance(provider, (list, tuple)):
            *deps, fn = provider
            return fn(*(self.get(d) for d in deps))

        kwargs: dict[str, Any] = {}
        for param in inspect.signature(provider).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.name in self._services:
                kwargs[param.name] = self._services[param.name]
            elif param.default is param.empty:
                raise UnknownDependencyError(param.name)
        return provider(**kwargs)


class ModuleRegistry:
    """Named constants per module, filled once before startup."""

    def __init__(self) -> None:
        self._constants: dict[str, dict[str, Any]] = {}

    def constant(self, module_name: str, constant_name: str, value: Any) -> None:
        consts = self._constants.setdefault(module_name, {})
        if constant_name in consts:
            raise DuplicateConstantError(module_name, constant_name)
        consts[constant_name] = value

    def constants(self, module_name: str) -> dict[str, Any]:
        return dict(self._constants.get(module_name, {}))

    def modules(self) -> list[str]:
        return list(self._constants)


Starter = Callable[[Any, str, Mapping[str, Any], ModuleRegistry], Any]


class RegistryHost:
    """A ``BootstrapHost`` backed by a ``ModuleRegistry``.

    ``starter(element, module_name, options, registry)`` performs the actual
    application startup and may be a coroutine function.
    """

    def __init__(
        self,
        *,
        starter: Starter,
        services: Mapping[str, Any] | None = None,
        registry: ModuleRegistry | None = None,
    ) -> None:
        self._starter = starter
        self._services = dict(services or {})
        self.registry = registry or ModuleRegistry()
        self._log = get_logger("deferred_bootstrap.host")

    def create_injector(self, element: Any, modules: Sequence[str]) -> ParameterInjector:
        services = dict(self._services)
        services["root_element"] = element
        services["modules"] = tuple(modules)
        return ParameterInjector(services)

    def commit_constant(self, module_name: str, constant_name: str, value: Any) -> None:
        self.registry.constant(module_name, constant_name, value)

    def start_application(self, element: Any, module_name: str, options: Mapping[str, Any] | None) -> Any:
        self._log.info("start_application", target_module=module_name)
        return self._starter(element, module_name, dict(options or {}), self.registry)


class ClassListOverlay:
    """An ``OverlayView`` that keeps the active visual states in a set."""

    def __init__(self) -> None:
        self.active: set[str] = set()
        self._log = get_logger("deferred_bootstrap.overlay.view")

    def add_visual_state(self, name: str) -> None:
        self.active.add(name)
        self._log.debug("visual_state_added", visual_state=name)

    def remove_visual_state(self, name: str) -> None:
        self.active.discard(name)
        self._log.debug("visual_state_removed", visual_state=name)
