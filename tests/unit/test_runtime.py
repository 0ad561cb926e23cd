"""Unit tests — Docker CLI runtime (docker itself is mocked)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hostdb.dmdb import add_dmdb
from hostdb.exceptions import ContainerRuntimeError
from hostdb.model.annotations import (
    AllocatedEndpoint,
    ContainerDirectory,
    ContainerFile,
    ContainerLifetime,
)
from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.model.resources import ContainerResource
from hostdb.mongodb import add_mongodb
from hostdb.opengauss import add_opengauss
from hostdb.runtime import (
    PARAMETERS_FILE,
    DockerCli,
    DockerCliRuntime,
    container_resources,
    parse_port_output,
    write_entry,
)


def _container(builder, name: str):
    return builder.add_resource(ContainerResource(name)).with_image("busybox")


def _process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    return proc


@pytest.fixture
def runtime(test_settings, tmp_path: Path) -> DockerCliRuntime:
    runtime = DockerCliRuntime(settings=test_settings)
    runtime.state_directory = lambda app: tmp_path / "state"
    return runtime


# ---------------------------------------------------------------------------
# Ordering and parsing helpers
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestContainerResources:
    def test_wait_targets_come_first(self, builder) -> None:
        a = _container(builder, "a")
        _container(builder, "b").wait_for(_container(builder, "c"))
        a.wait_for(builder.find_resource("b"))
        names = [r.name for r in container_resources(builder.resources)]
        assert names == ["c", "b", "a"]

    def test_non_containers_are_skipped(self, builder, secret) -> None:
        secret("pw")
        _container(builder, "a")
        assert [r.name for r in container_resources(builder.resources)] == ["a"]

    def test_cycle_raises(self, builder) -> None:
        a = _container(builder, "a")
        b = _container(builder, "b").wait_for(a)
        a.wait_for(b)
        with pytest.raises(ValueError, match="Circular"):
            container_resources(builder.resources)


@pytest.mark.unit
class TestParsePortOutput:
    @pytest.mark.parametrize(
        "output, expected",
        [
            ("0.0.0.0:49153\n", 49153),
            ("[::]:49154\n", 49154),
            ("0.0.0.0:5432\n[::]:5432\n", 5432),
            ("", None),
            ("garbage", None),
        ],
    )
    def test_parse(self, output, expected) -> None:
        assert parse_port_output(output) == expected


@pytest.mark.unit
class TestWriteEntry:
    def test_files_and_directories(self, tmp_path: Path) -> None:
        write_entry(
            tmp_path,
            ContainerDirectory("conf", [ContainerFile("a.txt", "hello", mode=0o600)]),
        )
        path = tmp_path / "conf" / "a.txt"
        assert path.read_text() == "hello"
        assert path.stat().st_mode & 0o777 == 0o600

    def test_unknown_entry_raises(self, tmp_path: Path) -> None:
        with pytest.raises(TypeError):
            write_entry(tmp_path, object())


# ---------------------------------------------------------------------------
# Command rendering
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestDockerCli:
    @pytest.mark.asyncio
    async def test_render_run_opengauss(self, builder, secret, test_settings) -> None:
        add_opengauss(builder, "og", password=secret("og-secret"), port=5433).with_data_volume()
        app = builder.build()
        app.allocate_endpoints()
        argv = await DockerCli(test_settings).render_run(app.get_resource("og"), app)
        assert argv == [
            "docker", "run", "--detach",
            "--name", "testapp-og",
            "--label", "io.hostdb.app=testapp",
            "--network", "testapp-network",
            "--network-alias", "og",
            "--publish", "5433:5432",
            "--env", "GS_PASSWORD=P@ssw0rd!",
            "--env", "PGPASSWORD=P@ssw0rd!",
            "--mount", "type=volume,source=og-data,target=/var/lib/opengauss",
            "docker.io/opengauss/opengauss:6.0.0",
        ]  # fmt: skip

    @pytest.mark.asyncio
    async def test_runtime_args_and_file_mounts(self, builder, test_settings) -> None:
        add_dmdb(builder, "dm", port=5236)
        app = builder.build()
        app.allocate_endpoints()
        argv = await DockerCli(test_settings).render_run(
            app.get_resource("dm"), app, [("/tmp/x/init.sql", "/init/init.sql")]
        )
        assert argv[argv.index("--network-alias") + 2] == "--privileged"
        assert "type=bind,source=/tmp/x/init.sql,target=/init/init.sql,readonly" in argv

    @pytest.mark.asyncio
    async def test_entrypoint_and_args(self, builder, test_settings) -> None:
        resource = (
            _container(builder, "tool").with_entrypoint("/bin/sh").with_args("-c", "true").resource
        )
        app = builder.build()
        argv = await DockerCli(test_settings).render_run(resource, app)
        assert argv[-4:] == ["/bin/sh", "busybox:latest", "-c", "true"]
        assert argv[-5] == "--entrypoint"

    def test_render_build(self, builder, test_settings) -> None:
        mongo = add_mongodb(builder, "mongo").with_replica_set()
        build = DockerCli(test_settings).render_build(mongo.resource)
        assert build[:4] == ["docker", "build", "--tag", "testapp-mongo:latest"]
        assert build[5].endswith("Mongo.Dockerfile")

    def test_render_build_for_pulled_image(self, builder, test_settings) -> None:
        assert DockerCli(test_settings).render_build(add_opengauss(builder, "og").resource) is None

    def test_configured_network(self, builder, test_settings) -> None:
        test_settings.runtime.network = "shared"
        assert DockerCli(test_settings).network_name(builder.build()) == "shared"

    def test_container_name_is_slugged(self, test_settings) -> None:
        app = MagicMock(app_name="My App")
        resource = ContainerResource("Og_1")
        assert DockerCli(test_settings).container_name(app, resource) == "my-app-og_1"


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRun:
    @pytest.mark.asyncio
    async def test_success(self, runtime) -> None:
        proc = _process(stdout=b"ok\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            code, out, err = await runtime.run(["docker", "ps"])
        assert (code, out, err) == (0, "ok\n", "")
        assert spawn.call_args.args == ("docker", "ps")

    @pytest.mark.asyncio
    async def test_failure_raises(self, runtime) -> None:
        proc = _process(returncode=1, stderr=b"boom")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(ContainerRuntimeError) as exc_info:
                await runtime.run(["docker", "run", "x"])
        assert exc_info.value.returncode == 1
        assert "boom" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_failure_without_check(self, runtime) -> None:
        proc = _process(returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            code, _, _ = await runtime.run(["docker", "rm", "x"], check=False)
        assert code == 1

    @pytest.mark.asyncio
    async def test_missing_binary(self, runtime) -> None:
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError())):
            with pytest.raises(ContainerRuntimeError):
                await runtime.run(["docker", "ps"])

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, runtime) -> None:
        proc = _process()

        async def communicate():
            if not proc.kill.called:
                await asyncio.sleep(10)
            return b"", b""

        proc.communicate = AsyncMock(side_effect=communicate)
        runtime.timeout = 0.01
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(ContainerRuntimeError, match="timed out"):
                await runtime.run(["docker", "ps"])
        proc.kill.assert_called_once()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_waits_and_runs_in_order(self, builder, runtime) -> None:
        first = _container(builder, "first")
        _container(builder, "second").wait_for(first)
        app = builder.build()
        app.wait_for_resource_healthy = AsyncMock()
        runtime.run = AsyncMock(return_value=(0, "", ""))

        await runtime.start(app)

        commands = [c.args[0][:3] for c in runtime.run.call_args_list]
        assert commands[0] == ["docker", "network", "inspect"]
        run_names = [
            c.args[0][c.args[0].index("--name") + 1]
            for c in runtime.run.call_args_list
            if c.args[0][1] == "run"
        ]
        assert run_names == ["testapp-first", "testapp-second"]
        app.wait_for_resource_healthy.assert_awaited_once_with("first")

    @pytest.mark.asyncio
    async def test_start_creates_missing_network(self, builder, runtime) -> None:
        _container(builder, "a")
        runtime.run = AsyncMock(side_effect=[(1, "", "no such network"), (0, "", ""), *[(0, "", "")] * 2])
        await runtime.start(builder.build())
        assert runtime.run.call_args_list[1].args[0] == [
            "docker", "network", "create", "testapp-network"
        ]  # fmt: skip

    @pytest.mark.asyncio
    async def test_start_persists_parameters(self, builder, runtime, tmp_path) -> None:
        add_opengauss(builder, "og")
        runtime.run = AsyncMock(return_value=(0, "", ""))
        app = builder.build()
        app.allocate_endpoints()
        await runtime.start(app)
        path = tmp_path / "state" / PARAMETERS_FILE
        values = json.loads(path.read_text())
        assert values["og-password"] == await app.get_resource("og").password_parameter.get_value()
        assert path.stat().st_mode & 0o777 == 0o600

    @pytest.mark.asyncio
    async def test_persistent_container_is_reused(self, builder, runtime) -> None:
        _container(builder, "keep").with_lifetime(ContainerLifetime.PERSISTENT)
        runtime.run = AsyncMock(return_value=(0, "", ""))
        await runtime.start(builder.build())
        assert not any(c.args[0][1] == "run" for c in runtime.run.call_args_list)

    @pytest.mark.asyncio
    async def test_state_directory_is_private(self, builder, runtime, tmp_path) -> None:
        (tmp_path / "state").mkdir(mode=0o755)
        _container(builder, "a")
        runtime.run = AsyncMock(return_value=(0, "", ""))
        await runtime.start(builder.build())
        assert (tmp_path / "state").stat().st_mode & 0o777 == 0o700

    @pytest.mark.asyncio
    async def test_restart_reuses_saved_password(
        self, builder, runtime, test_settings, app_host_dir
    ) -> None:
        add_opengauss(builder, "og").with_lifetime(ContainerLifetime.PERSISTENT)
        runtime.run = AsyncMock(return_value=(0, "0.0.0.0:49160\n", ""))
        first = builder.build()
        first.allocate_endpoints()
        await runtime.start(first)
        await runtime.stop(first)

        again = DistributedApplicationBuilder(
            "testapp", settings=test_settings, app_host_directory=app_host_dir
        )
        og = add_opengauss(again, "og").with_lifetime(ContainerLifetime.PERSISTENT)
        second = again.build()
        second.allocate_endpoints()
        await runtime.start(second)

        assert await og.resource.password_parameter.get_value() == (
            await first.get_resource("og").password_parameter.get_value()
        )

    @pytest.mark.asyncio
    async def test_container_files_are_mounted(self, builder, runtime, tmp_path) -> None:
        async def files(context):
            return [ContainerFile("servers.json", "{}")]

        _container(builder, "tool").with_container_files("/pgadmin4", files)
        runtime.run = AsyncMock(return_value=(0, "", ""))
        await runtime.start(builder.build())

        written = tmp_path / "state" / "tool" / "0" / "servers.json"
        assert written.read_text() == "{}"
        run = next(c.args[0] for c in runtime.run.call_args_list if c.args[0][1] == "run")
        assert f"type=bind,source={written},target=/pgadmin4/servers.json,readonly" in run

    @pytest.mark.asyncio
    async def test_stop_removes_session_containers(self, builder, runtime, tmp_path) -> None:
        _container(builder, "a")
        _container(builder, "b")
        (tmp_path / "state").mkdir()
        runtime.run = AsyncMock(return_value=(0, "", ""))

        await runtime.stop(builder.build())

        removed = [c.args[0][-1] for c in runtime.run.call_args_list]
        assert removed == ["testapp-b", "testapp-a"]
        assert not (tmp_path / "state").exists()

    @pytest.mark.asyncio
    async def test_stop_keeps_parameters_for_persistent_containers(
        self, builder, runtime, tmp_path
    ) -> None:
        _container(builder, "a")
        _container(builder, "keep").with_lifetime(ContainerLifetime.PERSISTENT)
        (tmp_path / "state").mkdir()
        (tmp_path / "state" / PARAMETERS_FILE).write_text("{}")
        runtime.run = AsyncMock(return_value=(0, "", ""))

        await runtime.stop(builder.build())

        runtime.run.assert_awaited_once_with(["docker", "rm", "--force", "testapp-a"], check=False)
        assert (tmp_path / "state" / PARAMETERS_FILE).exists()


@pytest.mark.unit
class TestDiscovery:
    @pytest.mark.asyncio
    async def test_discovers_published_ports(self, builder, runtime) -> None:
        add_opengauss(builder, "og")
        runtime.run = AsyncMock(return_value=(0, "0.0.0.0:49160\n", ""))
        app = builder.build()
        await runtime.discover_endpoints(app)
        endpoint = app.get_resource("og").primary_endpoint
        assert endpoint.annotation.allocated == AllocatedEndpoint("localhost", 49160)

    @pytest.mark.asyncio
    async def test_unpublished_port_raises(self, builder, runtime) -> None:
        add_opengauss(builder, "og")
        runtime.run = AsyncMock(return_value=(0, "", ""))
        with pytest.raises(ContainerRuntimeError, match="no published port"):
            await runtime.discover_endpoints(builder.build())

    @pytest.mark.asyncio
    async def test_loads_saved_parameters(self, builder, runtime, tmp_path) -> None:
        og = add_opengauss(builder, "og")
        (tmp_path / "state").mkdir()
        (tmp_path / "state" / PARAMETERS_FILE).write_text(json.dumps({"og-password": "saved"}))
        runtime.run = AsyncMock(return_value=(0, "0.0.0.0:49160\n", ""))
        await runtime.discover_endpoints(builder.build())
        assert og.resource.password_parameter.value == "saved"
