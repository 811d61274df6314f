from __future__ import annotations


class DeferredBootstrapError(Exception):
    """Base exception for this project."""


class ConfigError(DeferredBootstrapError):
    """Raised when the bootstrap configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class InvalidResolveShape(DeferredBootstrapError):
    """A resolve provider returned something that cannot be awaited."""

    def __init__(self, constant_name: str):
        super().__init__(f"Resolve function for {constant_name!r} must return an awaitable.")
        self.constant_name = constant_name


class ResolveFailure(DeferredBootstrapError):
    """A resolve provider's awaitable raised.

    The provider's own exception is available as ``__cause__``.
    """

    def __init__(self, constant_name: str, module_name: str, message: str):
        super().__init__(f"Resolve {constant_name!r} for module {module_name!r} failed: {message}")
        self.constant_name = constant_name
        self.module_name = module_name


class BootstrapTimeoutError(DeferredBootstrapError, TimeoutError):
    def __init__(self, timeout_ms: int):
        super().__init__("Timeout while loading")
        self.timeout_ms = timeout_ms


class StartupFailure(DeferredBootstrapError):
    """Application startup (or the hooks right before it) raised."""


class UnknownDependencyError(DeferredBootstrapError):
    def __init__(self, name: str):
        super().__init__(f"Unknown dependency {name!r}")
        self.name = name


class DuplicateConstantError(DeferredBootstrapError):
    def __init__(self, module_name: str, constant_name: str):
        super().__init__(f"Constant {constant_name!r} already registered on module {module_name!r}")
        self.module_name = module_name
        self.constant_name = constant_name
