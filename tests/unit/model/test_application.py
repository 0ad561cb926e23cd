"""Unit tests — DistributedApplication lifecycle, health and connection strings."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hostdb.exceptions import HealthCheckTimeoutError, ResourceNotFoundError
from hostdb.model.annotations import EndpointAnnotation
from hostdb.model.eventing import BeforeStartEvent, ConnectionStringAvailableEvent
from hostdb.model.health import HealthCheck, HealthCheckResult
from hostdb.model.resources import ContainerResource
from hostdb.opengauss import add_opengauss


class CountingCheck(HealthCheck):
    """Unhealthy for the first *failures* calls."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def check_health(self, context):
        self.calls += 1
        if self.calls <= self.failures:
            return HealthCheckResult.unhealthy("starting")
        return HealthCheckResult.healthy()


@pytest.mark.unit
class TestLifecycle:
    def test_allocate_uses_host_port_or_free_port(self, builder) -> None:
        web = builder.add_resource(ContainerResource("web"))
        web.with_endpoint(port=18080, target_port=80, name="http")
        web.with_endpoint(target_port=443, name="https")
        app = builder.build()
        app.allocate_endpoints()
        fixed, free = web.resource.annotations_of(EndpointAnnotation)
        assert fixed.allocated.port == 18080
        assert free.allocated.port > 0
        assert fixed.allocated.host == builder.settings.runtime.bind_host

    @pytest.mark.asyncio
    async def test_start_publishes_events_and_runs_runtime(self, builder) -> None:
        add_opengauss(builder, "og")
        events: list[str] = []

        async def on_start(event):
            events.append("before_start")

        async def on_connection_string(event):
            events.append(f"cs:{event.resource.name}")

        builder.eventing.subscribe(BeforeStartEvent, on_start)
        builder.eventing.subscribe(ConnectionStringAvailableEvent, on_connection_string)
        runtime = AsyncMock()
        app = builder.build(runtime=runtime)

        async with app:
            runtime.start.assert_awaited_once_with(app)
        runtime.stop.assert_awaited_once_with(app)
        assert events == ["before_start", "cs:og"]

    @pytest.mark.asyncio
    async def test_attach_discovers_endpoints(self, builder) -> None:
        add_opengauss(builder, "og")
        runtime = AsyncMock()
        app = builder.build(runtime=runtime)
        await app.attach()
        runtime.discover_endpoints.assert_awaited_once_with(app)

    def test_get_resource_unknown(self, builder) -> None:
        with pytest.raises(ResourceNotFoundError):
            builder.build().get_resource("missing")


@pytest.mark.unit
class TestHealthAndConnectionStrings:
    @pytest.mark.asyncio
    async def test_check_resource_health_without_checks(self, builder) -> None:
        builder.add_resource(ContainerResource("web"))
        assert (await builder.build().check_resource_health("web")).is_healthy

    @pytest.mark.asyncio
    async def test_wait_until_healthy(self, builder) -> None:
        check = CountingCheck(failures=2)
        builder.health_checks.add("web-check", check)
        builder.add_resource(ContainerResource("web")).with_health_check("web-check")
        result = await builder.build().wait_for_resource_healthy("web", timeout=5, interval=0.01)
        assert result.is_healthy
        assert check.calls == 3

    @pytest.mark.asyncio
    async def test_wait_times_out(self, builder) -> None:
        builder.health_checks.add("web-check", CountingCheck(failures=1000))
        builder.add_resource(ContainerResource("web")).with_health_check("web-check")
        with pytest.raises(HealthCheckTimeoutError):
            await builder.build().wait_for_resource_healthy("web", timeout=0.05, interval=0.01)

    @pytest.mark.asyncio
    async def test_get_connection_string(self, builder, secret) -> None:
        add_opengauss(builder, "og", password=secret("pw", "pass"), port=15432)
        app = builder.build()
        app.allocate_endpoints()
        assert await app.get_connection_string("og") == (
            "Host=localhost;Port=15432;Username=gaussdb;Password=pass"
        )

    @pytest.mark.asyncio
    async def test_get_connection_string_requires_support(self, builder) -> None:
        builder.add_resource(ContainerResource("web"))
        with pytest.raises(TypeError):
            await builder.build().get_connection_string("web")
