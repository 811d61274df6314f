from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence, Union

# A provider is either a plain callable or the annotated form
# ``[dep_name, ..., callable]`` naming the dependencies explicitly.
Provider = Union[Callable[..., Any], Sequence[Any]]
Hook = Callable[[], Union[Awaitable[Any], Any]]
ErrorHook = Callable[[BaseException], Union[Awaitable[Any], Any]]

LOADING_STATE = "deferred-bootstrap-loading"
ERROR_STATE = "deferred-bootstrap-error"


@dataclass(frozen=True, slots=True)
class ModuleResolve:
    """Resolves registered against a module other than the primary one."""

    module: str
    resolve: Mapping[str, Provider]


@dataclass(frozen=True, slots=True)
class ResolveEntry:
    name: str
    module_name: str
    provider: Provider


@dataclass(frozen=True)
class BootstrapConfig:
    module: str
    element: Any = None
    injector_modules: tuple[str, ...] = ()
    resolve: Mapping[str, Provider] | None = None
    module_resolves: tuple[ModuleResolve, ...] | None = None
    bootstrap_options: Mapping[str, Any] | None = None

    before_loading: Hook | None = None
    after_loading: Hook | None = None
    on_loading_show: Hook | None = None
    on_loading_hide: Hook | None = None
    on_error_show: Hook | None = None
    on_error: ErrorHook | None = None

    # Milliseconds; 0 disables.
    show_loading_threshold: int = 0
    show_loading_min_duration: int = 0
    max_loading_timeout: int = 0

    def resolve_entries(self) -> list[ResolveEntry]:
        """Flatten the resolve map or module groups in declaration order."""

        entries: list[ResolveEntry] = []
        if self.module_resolves:
            for group in self.module_resolves:
                for name, provider in group.resolve.items():
                    entries.append(ResolveEntry(name=name, module_name=group.module, provider=provider))
        elif self.resolve:
            for name, provider in self.resolve.items():
                entries.append(ResolveEntry(name=name, module_name=self.module, provider=provider))
        return entries
