"""hostdb: Exception hierarchy.

All exceptions raised by hostdb inherit from HostDbError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    HostDbError
    ├── ModelError
    │   ├── DuplicateResourceError
    │   ├── DuplicateEndpointError
    │   ├── EndpointNotFoundError
    │   ├── EndpointNotAllocatedError
    │   ├── MissingParameterValueError
    │   ├── MissingConnectionStringRedirectError
    │   └── ResourceNotFoundError
    ├── HealthCheckError
    │   ├── HealthCheckNotFoundError
    │   └── HealthCheckTimeoutError
    ├── ContainerRuntimeError
    └── DriverNotInstalledError

Health checks never raise these to their callers; a failing probe is
reported as an unhealthy ``HealthCheckResult`` instead.
"""

from __future__ import annotations

from typing import Any


class HostDbError(Exception):
    """Base exception for all hostdb errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Application model
# ---------------------------------------------------------------------------


class ModelError(HostDbError):
    """Base for errors raised while building or resolving the resource graph."""


class DuplicateResourceError(ModelError):
    """A resource with the same name (case-insensitive) already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Cannot add resource with name '{name}' because a resource "
            "with that name already exists. Resource names are case-insensitive.",
            context={"resource": name},
        )
        self.name = name


class DuplicateEndpointError(ModelError):
    """The resource already declares an endpoint with this name."""

    def __init__(self, resource: str, endpoint: str) -> None:
        super().__init__(
            f"Endpoint with name '{endpoint}' already exists on resource '{resource}'",
            context={"resource": resource, "endpoint": endpoint},
        )
        self.resource = resource
        self.endpoint = endpoint


class EndpointNotFoundError(ModelError):
    """No endpoint with the given name is declared on the resource."""

    def __init__(self, resource: str, endpoint: str) -> None:
        super().__init__(
            f"Resource '{resource}' has no endpoint named '{endpoint}'",
            context={"resource": resource, "endpoint": endpoint},
        )
        self.resource = resource
        self.endpoint = endpoint


class EndpointNotAllocatedError(ModelError):
    """The endpoint exists but has not been bound to a host and port yet."""

    def __init__(self, resource: str, endpoint: str) -> None:
        super().__init__(
            f"The endpoint '{endpoint}' for resource '{resource}' is not allocated yet",
            context={"resource": resource, "endpoint": endpoint},
        )
        self.resource = resource
        self.endpoint = endpoint


class MissingParameterValueError(ModelError):
    """A parameter has no value, no configured value and no default."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Parameter resource could not be used because configuration key "
            f"'parameters.{name}' is missing and the parameter has no default value.",
            context={"parameter": name},
        )
        self.name = name


class MissingConnectionStringRedirectError(ModelError):
    """A resource that only forwards its connection string has no target."""

    def __init__(self, resource: str) -> None:
        super().__init__(
            f"Resource '{resource}' must have connection string redirection.",
            context={"resource": resource},
        )
        self.resource = resource


class ResourceNotFoundError(ModelError):
    """No resource with the given name exists in the application."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Resource '{name}' is not part of the application model",
            context={"resource": name},
        )
        self.name = name


# ---------------------------------------------------------------------------
# Health checks
# ---------------------------------------------------------------------------


class HealthCheckError(HostDbError):
    """Base for health-check registry errors."""


class HealthCheckNotFoundError(HealthCheckError):
    """A resource references a health-check key that was never registered."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"No health check registered under key '{key}'",
            context={"key": key},
        )
        self.key = key


class HealthCheckTimeoutError(HealthCheckError):
    """A resource did not become healthy before the wait deadline."""

    def __init__(self, resource: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Resource '{resource}' did not become healthy within {timeout_seconds}s",
            context={"resource": resource, "timeout_seconds": timeout_seconds},
        )
        self.resource = resource
        self.timeout_seconds = timeout_seconds


# ---------------------------------------------------------------------------
# Container runtime
# ---------------------------------------------------------------------------


class ContainerRuntimeError(HostDbError):
    """The docker CLI returned a non-zero exit code or could not be executed."""

    def __init__(self, command: list[str], returncode: int | None, stderr: str = "") -> None:
        super().__init__(
            f"Command '{' '.join(command[:3])} ...' failed with exit code {returncode}: "
            f"{stderr.strip()}",
            context={"command": command[:3], "returncode": returncode},
        )
        self.returncode = returncode
        self.stderr = stderr


class DriverNotInstalledError(HostDbError):
    """An optional database driver needed by a health check is missing."""

    def __init__(self, driver: str, install_hint: str) -> None:
        super().__init__(
            f"{driver} is required for this health check: {install_hint}",
            context={"driver": driver},
        )
        self.driver = driver
