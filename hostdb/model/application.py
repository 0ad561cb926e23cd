"""hostdb model: The running application.

``DistributedApplication`` is what ``DistributedApplicationBuilder.build()``
returns.  Lifecycle::

    app = builder.build(runtime=DockerCliRuntime())
    async with app:                       # start() ... stop()
        await app.wait_for_resource_healthy("og")
        dsn = await app.get_connection_string("orders")

Without a runtime, ``start()`` only allocates endpoints and publishes the
lifecycle events, which is what the unit tests and ``hostdb manifest`` need.
"""

from __future__ import annotations

import asyncio
import socket
import time
from typing import TYPE_CHECKING, Any

from hostdb.exceptions import HealthCheckTimeoutError, ResourceNotFoundError
from hostdb.logging import bind_resource_context, get_logger
from hostdb.model.annotations import AllocatedEndpoint, EndpointAnnotation, HealthCheckAnnotation
from hostdb.model.eventing import BeforeStartEvent, ConnectionStringAvailableEvent
from hostdb.model.health import HealthCheckResult, worst_of
from hostdb.model.resources import Resource, ResourceWithConnectionString

if TYPE_CHECKING:
    from hostdb.model.builder import DistributedApplicationBuilder

log = get_logger(__name__)


def find_free_port(host: str = "127.0.0.1") -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


class DistributedApplication:
    def __init__(self, builder: "DistributedApplicationBuilder", runtime: Any = None) -> None:
        self.builder = builder
        self.settings = builder.settings
        self.app_name = builder.app_name
        self.resources: list[Resource] = list(builder.resources)
        self.health_checks = builder.health_checks
        self.eventing = builder.eventing
        self.runtime = runtime
        self._started = False

    def get_resource(self, name: str) -> Resource:
        folded = name.casefold()
        for resource in self.resources:
            if resource.name.casefold() == folded:
                return resource
        raise ResourceNotFoundError(name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def allocate_endpoints(self, host: str | None = None) -> None:
        """Give every unallocated endpoint its host port, or a free one."""
        host = host or self.settings.runtime.bind_host
        for resource in self.resources:
            for endpoint in resource.annotations_of(EndpointAnnotation):
                if endpoint.allocated is not None:
                    continue
                port = endpoint.port or find_free_port()
                endpoint.allocated = AllocatedEndpoint(host=host, port=port)
                log.debug(
                    "endpoint_allocated",
                    resource=resource.name,
                    endpoint=endpoint.name,
                    port=port,
                )

    async def start(self) -> None:
        self.allocate_endpoints()
        await self.eventing.publish(BeforeStartEvent(self))
        if self.runtime is not None:
            await self.runtime.start(self)
        self._started = True
        await self._publish_connection_strings()
        log.info("application_started", app=self.app_name, resources=len(self.resources))

    async def attach(self) -> None:
        """Bind to containers started by an earlier ``start()`` (``hostdb health``)."""
        if self.runtime is not None:
            await self.runtime.discover_endpoints(self)
        self.allocate_endpoints()
        self._started = True
        await self._publish_connection_strings()

    async def stop(self) -> None:
        if self.runtime is not None:
            await self.runtime.stop(self)
        self._started = False
        log.info("application_stopped", app=self.app_name)

    async def _publish_connection_strings(self) -> None:
        for resource in self.resources:
            if isinstance(resource, ResourceWithConnectionString):
                await self.eventing.publish(ConnectionStringAvailableEvent(resource, self))

    async def __aenter__(self) -> "DistributedApplication":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_resource_health(self, name: str) -> HealthCheckResult:
        """Run every health check of *name*; return the least healthy result."""
        resource = self.get_resource(name)
        bind_resource_context(resource=resource.name)
        results = [
            await self.health_checks.run(
                annotation.key,
                self,
                default_timeout=self.settings.health.default_timeout_seconds,
            )
            for annotation in resource.annotations_of(HealthCheckAnnotation)
        ]
        return worst_of(results)

    async def wait_for_resource_healthy(
        self,
        name: str,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> HealthCheckResult:
        """Poll the health checks of *name* until they all pass.

        Raises:
            HealthCheckTimeoutError: *timeout* elapsed first.
        """
        timeout = timeout if timeout is not None else self.settings.health.wait_timeout_seconds
        interval = interval if interval is not None else self.settings.health.wait_interval_seconds
        deadline = time.monotonic() + timeout
        while True:
            result = await self.check_resource_health(name)
            if result.is_healthy:
                log.info("resource_healthy", resource=name)
                return result
            if time.monotonic() + interval > deadline:
                log.warning(
                    "resource_unhealthy", resource=name, description=result.description
                )
                raise HealthCheckTimeoutError(name, timeout)
            log.debug("resource_not_ready", resource=name, description=result.description)
            await asyncio.sleep(interval)

    async def get_connection_string(self, name: str) -> str | None:
        resource = self.get_resource(name)
        if not isinstance(resource, ResourceWithConnectionString):
            raise TypeError(f"Resource '{name}' does not expose a connection string")
        return await resource.get_connection_string()
