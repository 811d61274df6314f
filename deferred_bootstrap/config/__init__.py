"""Bootstrap configuration: model, validation and YAML loading.

- YAML files with strict ${ENV_VAR} expansion
- Providers and hooks given as 'package.module:attribute' references
"""

from __future__ import annotations

from deferred_bootstrap.config.loader import check_config, load_config, parse_config
from deferred_bootstrap.config.model import BootstrapConfig, ModuleResolve, ResolveEntry
from deferred_bootstrap.core.errors import ConfigError

__all__ = [
    "BootstrapConfig",
    "ConfigError",
    "ModuleResolve",
    "ResolveEntry",
    "check_config",
    "load_config",
    "parse_config",
]
