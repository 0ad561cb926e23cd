"""hostdb model: Health checks.

Resources reference health checks by key (``HealthCheckAnnotation``); the
checks themselves live in the builder's ``HealthCheckRegistry``.  A check is
either a ``HealthCheck`` instance or a factory called with the running
application, so it can capture state that only exists after start-up.

A check never raises to its caller: ``HealthCheckRegistry.run()`` converts
exceptions and timeouts into a result carrying the registration's
``failure_status``.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Union

from hostdb.exceptions import HealthCheckNotFoundError
from hostdb.logging import bind_resource_context, get_logger

if TYPE_CHECKING:
    from hostdb.model.application import DistributedApplication

log = get_logger(__name__)


class HealthStatus(str, Enum):
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    HEALTHY = "healthy"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {HealthStatus.UNHEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.HEALTHY: 2}


@dataclass(frozen=True)
class HealthCheckResult:
    status: HealthStatus
    description: str | None = None
    exception: BaseException | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def healthy(cls, description: str | None = None, **data: Any) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, description, data=data)

    @classmethod
    def degraded(
        cls, description: str | None = None, exception: BaseException | None = None
    ) -> "HealthCheckResult":
        return cls(HealthStatus.DEGRADED, description, exception)

    @classmethod
    def unhealthy(
        cls, description: str | None = None, exception: BaseException | None = None
    ) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, description, exception)

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY


@dataclass
class HealthCheckContext:
    registration: "HealthCheckRegistration"
    app: "DistributedApplication | None" = None


class HealthCheck(ABC):
    @abstractmethod
    async def check_health(self, context: HealthCheckContext) -> HealthCheckResult: ...


CheckOrFactory = Union[HealthCheck, Callable[["DistributedApplication | None"], HealthCheck]]


@dataclass
class HealthCheckRegistration:
    name: str
    check: CheckOrFactory
    failure_status: HealthStatus = HealthStatus.UNHEALTHY
    timeout: float | None = None

    def instantiate(self, app: "DistributedApplication | None") -> HealthCheck:
        if isinstance(self.check, HealthCheck):
            return self.check
        return self.check(app)


class HealthCheckRegistry:
    """Health checks keyed by name, in registration order."""

    def __init__(self) -> None:
        self._registrations: dict[str, HealthCheckRegistration] = {}

    def add(
        self,
        key: str,
        check: CheckOrFactory,
        timeout: float | None = None,
        failure_status: HealthStatus | None = None,
    ) -> HealthCheckRegistration:
        if not key:
            raise ValueError("Health check key must not be empty")
        if key in self._registrations:
            raise ValueError(f"A health check named '{key}' is already registered")
        if not isinstance(check, HealthCheck) and not callable(check):
            raise TypeError("check must be a HealthCheck or a factory returning one")
        registration = HealthCheckRegistration(
            name=key,
            check=check,
            failure_status=failure_status or HealthStatus.UNHEALTHY,
            timeout=timeout,
        )
        self._registrations[key] = registration
        return registration

    def remove(self, key: str) -> bool:
        return self._registrations.pop(key, None) is not None

    def get(self, key: str) -> HealthCheckRegistration:
        try:
            return self._registrations[key]
        except KeyError:
            raise HealthCheckNotFoundError(key) from None

    def keys(self) -> list[str]:
        return list(self._registrations)

    def __contains__(self, key: object) -> bool:
        return key in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    async def run(
        self,
        key: str,
        app: "DistributedApplication | None" = None,
        default_timeout: float | None = None,
    ) -> HealthCheckResult:
        registration = self.get(key)
        timeout = registration.timeout or default_timeout
        bind_resource_context(health_check=key)
        try:
            check = registration.instantiate(app)
            result = await asyncio.wait_for(
                check.check_health(HealthCheckContext(registration, app)), timeout
            )
        except asyncio.TimeoutError as exc:
            log.warning("health_check_timeout", timeout_seconds=timeout)
            return HealthCheckResult(
                registration.failure_status,
                f"Health check '{key}' timed out after {timeout}s",
                exc,
            )
        except Exception as exc:
            log.warning("health_check_failed", error=str(exc))
            return HealthCheckResult(registration.failure_status, str(exc), exc)

        log.debug("health_check_completed", status=result.status.value)
        return result


def worst_of(results: list[HealthCheckResult]) -> HealthCheckResult:
    """The least healthy result; ``healthy()`` when there is none."""
    if not results:
        return HealthCheckResult.healthy()
    return min(results, key=lambda r: r.status.rank)
