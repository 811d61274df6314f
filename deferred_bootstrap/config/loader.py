from __future__ import annotations

import importlib
import os
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from deferred_bootstrap.config.model import BootstrapConfig, ModuleResolve
from deferred_bootstrap.core.errors import ConfigError


_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

_HOOKS = (
    "before_loading",
    "after_loading",
    "on_loading_show",
    "on_loading_hide",
    "on_error_show",
    "on_error",
)
_DURATIONS = (
    "show_loading_threshold",
    "show_loading_min_duration",
    "max_loading_timeout",
)

# Browser-era camelCase keys are still accepted.
_ALIASES = {
    "injectorModules": "injector_modules",
    "moduleResolves": "module_resolves",
    "bootstrapConfig": "bootstrap_options",
    "beforeLoading": "before_loading",
    "afterLoading": "after_loading",
    "onLoadingShow": "on_loading_show",
    "onLoadingHide": "on_loading_hide",
    "onErrorShow": "on_error_show",
    "onError": "on_error",
    "showLoadingThreshold": "show_loading_threshold",
    "showLoadingMinDuration": "show_loading_min_duration",
    "maxLoadingTimeout": "max_loading_timeout",
}
_KNOWN_KEYS = {
    "module",
    "element",
    "injector_modules",
    "resolve",
    "module_resolves",
    "bootstrap_options",
    *_HOOKS,
    *_DURATIONS,
}


def _expand_env_in_str(value: str, *, path: str) -> str:
    def repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in os.environ or os.environ[key] == "":
            raise ConfigError(f"environment variable {key!r} is missing or empty", path=path)
        return os.environ[key]

    return _ENV_PATTERN.sub(repl, value)


def _expand_env(obj: Any, *, path: str) -> Any:
    if isinstance(obj, str):
        return _expand_env_in_str(obj, path=path)
    if isinstance(obj, list):
        return [_expand_env(v, path=f"{path}[{i}]") for i, v in enumerate(obj)]
    if isinstance(obj, dict):
        return {k: _expand_env(v, path=f"{path}.{k}" if path else str(k)) for k, v in obj.items()}
    return obj


def import_object(ref: str, *, path: str) -> Any:
    """Resolve a ``"package.module:attribute"`` reference."""

    module_name, sep, attr_path = ref.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"expected 'module:attribute' reference, got {ref!r}", path=path)
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import {module_name!r}: {e}", path=path) from e
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"{module_name!r} has no attribute {attr_path!r}", path=path) from e
    return obj


def parse_duration_ms(value: Any, *, path: str) -> int:
    """Parse a millisecond duration with lenient integer semantics.

    ``None`` and unparseable strings mean 0 (disabled); strings use their
    leading integer, so ``"250ms"`` is 250.
    """

    if value is None:
        return 0
    if isinstance(value, bool):
        raise ConfigError("must be a non-negative integer", path=path)
    if isinstance(value, int):
        out = value
    elif isinstance(value, float):
        out = int(value)
    elif isinstance(value, str):
        m = _LEADING_INT.match(value)
        out = int(m.group(1)) if m else 0
    else:
        raise ConfigError("must be a non-negative integer", path=path)
    if out < 0:
        raise ConfigError("must be a non-negative integer", path=path)
    return out


def _is_valid_provider(provider: Any) -> bool:
    if callable(provider):
        return True
    if isinstance(provider, (list, tuple)) and provider:
        *deps, fn = provider
        return callable(fn) and all(isinstance(d, str) for d in deps)
    return False


def _parse_provider(value: Any, *, path: str) -> Any:
    if isinstance(value, str):
        return import_object(value, path=path)
    if isinstance(value, (list, tuple)) and value and isinstance(value[-1], str) and ":" in value[-1]:
        return [*value[:-1], import_object(value[-1], path=f"{path}[{len(value) - 1}]")]
    return value


def _parse_resolve_map(value: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigError("must be a mapping", path=path)
    return {str(k): _parse_provider(v, path=f"{path}.{k}") for k, v in value.items()}


def check_config(config: Any) -> BootstrapConfig:
    """Validate the shape of a bootstrap configuration.

    Raises:
        ConfigError: On the first problem found.
    """

    if not isinstance(config, BootstrapConfig):
        raise ConfigError("Bootstrap configuration must be a BootstrapConfig.")
    if not isinstance(config.module, str) or not config.module:
        raise ConfigError("must be a non-empty string", path="module")
    if config.resolve is not None and config.module_resolves is not None:
        raise ConfigError("Bootstrap configuration can contain either 'resolve' or 'module_resolves' but not both")

    if not isinstance(config.injector_modules, tuple) or not all(
        isinstance(m, str) and m for m in config.injector_modules
    ):
        raise ConfigError("must be a tuple of module names", path="injector_modules")

    if config.bootstrap_options is not None and not isinstance(config.bootstrap_options, Mapping):
        raise ConfigError("must be a mapping", path="bootstrap_options")

    if config.resolve is not None:
        if not isinstance(config.resolve, Mapping):
            raise ConfigError("must be a mapping", path="resolve")
        for name, provider in config.resolve.items():
            if not _is_valid_provider(provider):
                raise ConfigError("is not a valid dependency injection format", path=f"resolve.{name}")

    if config.module_resolves is not None:
        if not isinstance(config.module_resolves, Sequence) or isinstance(config.module_resolves, str):
            raise ConfigError("must be a sequence", path="module_resolves")
        declared: set[tuple[str, str]] = set()
        for i, group in enumerate(config.module_resolves):
            where = f"module_resolves[{i}]"
            if not isinstance(group, ModuleResolve):
                raise ConfigError("must be a ModuleResolve", path=where)
            if not isinstance(group.module, str) or not group.module:
                raise ConfigError("A module resolve item must contain a 'module' name.", path=where)
            if not isinstance(group.resolve, Mapping):
                raise ConfigError("must be a mapping", path=f"{where}.resolve")
            for name, provider in group.resolve.items():
                if not _is_valid_provider(provider):
                    raise ConfigError(
                        "is not a valid dependency injection format",
                        path=f"{where}.resolve.{name}",
                    )
                if (group.module, name) in declared:
                    raise ConfigError(
                        f"constant is already resolved for module '{group.module}'",
                        path=f"{where}.resolve.{name}",
                    )
                declared.add((group.module, name))

    for hook in _HOOKS:
        value = getattr(config, hook)
        if value is not None and not callable(value):
            raise ConfigError("must be callable", path=hook)

    for key in _DURATIONS:
        value = getattr(config, key)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError("must be a non-negative integer", path=key)

    return config


def parse_config(raw: Mapping[str, Any], **overrides: Any) -> BootstrapConfig:
    """Build a validated BootstrapConfig from a plain mapping.

    ``overrides`` win over ``raw``; use them for values YAML cannot carry,
    like the target element or in-process callables.
    """

    if not isinstance(raw, Mapping):
        raise ConfigError("Bootstrap configuration must be a mapping.")

    merged: dict[str, Any] = {}
    for source in (raw, overrides):
        for k, v in source.items():
            key = _ALIASES.get(k, k)
            if key not in _KNOWN_KEYS:
                raise ConfigError("unknown configuration key", path=str(k))
            merged[key] = v

    module = merged.get("module")
    if not isinstance(module, str) or not module:
        raise ConfigError("must be a non-empty string", path="module")

    if merged.get("resolve") is not None and merged.get("module_resolves") is not None:
        raise ConfigError("Bootstrap configuration can contain either 'resolve' or 'module_resolves' but not both")

    injector_raw = merged.get("injector_modules") or ()
    if isinstance(injector_raw, str):
        injector_modules: tuple[str, ...] = (injector_raw,)
    elif isinstance(injector_raw, (list, tuple)) and all(isinstance(m, str) for m in injector_raw):
        injector_modules = tuple(injector_raw)
    else:
        raise ConfigError("must be a string or a list of strings", path="injector_modules")

    resolve = None
    if merged.get("resolve") is not None:
        resolve = _parse_resolve_map(merged["resolve"], path="resolve")

    module_resolves = None
    if merged.get("module_resolves") is not None:
        groups_raw = merged["module_resolves"]
        if not isinstance(groups_raw, (list, tuple)):
            raise ConfigError("must be a list", path="module_resolves")
        groups: list[ModuleResolve] = []
        for i, item in enumerate(groups_raw):
            where = f"module_resolves[{i}]"
            if isinstance(item, ModuleResolve):
                groups.append(item)
                continue
            if not isinstance(item, Mapping):
                raise ConfigError("must be a mapping", path=where)
            if not item.get("module"):
                raise ConfigError("A module resolve item must contain a 'module' name.", path=where)
            groups.append(
                ModuleResolve(
                    module=item["module"],
                    resolve=_parse_resolve_map(item.get("resolve"), path=f"{where}.resolve"),
                )
            )
        module_resolves = tuple(groups)

    hooks: dict[str, Any] = {}
    for hook in _HOOKS:
        value = merged.get(hook)
        hooks[hook] = import_object(value, path=hook) if isinstance(value, str) else value

    durations = {key: parse_duration_ms(merged.get(key), path=key) for key in _DURATIONS}

    config = BootstrapConfig(
        module=module,
        element=merged.get("element"),
        injector_modules=injector_modules,
        resolve=resolve,
        module_resolves=module_resolves,
        bootstrap_options=merged.get("bootstrap_options"),
        **hooks,
        **durations,
    )
    return check_config(config)


def load_config(path: str | Path, *, load_dotenv_file: bool = True, **overrides: Any) -> BootstrapConfig:
    """Load a YAML bootstrap config and expand ${ENV_VAR}.

    Raises:
        ConfigError: If the file is missing, YAML is invalid, env expansion is
            unresolved, or the resulting configuration is malformed.
    """

    if load_dotenv_file:
        # Local dev: allow injecting values from .env without overriding the environment.
        load_dotenv(override=False)

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError("config file does not exist", path=str(config_path))

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse YAML: {e}", path=str(config_path)) from e

    if not isinstance(raw, dict):
        raise ConfigError("top level must be a YAML mapping", path=str(config_path))

    return parse_config(_expand_env(raw, path=""), **overrides)
