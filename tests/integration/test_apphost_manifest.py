"""Integration tests — the example app host, from builder to docker commands."""

from __future__ import annotations

import importlib.util
import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from hostdb.manifest import build_manifest
from hostdb.runtime import DockerCliRuntime

APPHOST_PATH = Path(__file__).resolve().parents[2] / "examples" / "apphost.py"


@pytest.fixture
def apphost(test_settings):
    spec = importlib.util.spec_from_file_location("hostdb_example_apphost", APPHOST_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module.create_builder()


@pytest.mark.integration
class TestApphostManifest:
    def test_resource_types(self, apphost) -> None:
        resources = build_manifest(apphost)["resources"]
        types = {name: entry["type"] for name, entry in resources.items()}
        assert types == {
            "opengauss-password": "parameter.v0",
            "opengauss": "container.v0",
            "pgadmin": "container.v0",
            "mydb": "value.v0",
            "user-password": "parameter.v0",
            "dba-password": "parameter.v0",
            "dmdb-custom": "container.v0",
            "testdb": "value.v0",
            "kingbase-password": "parameter.v0",
            "kingbase": "container.v0",
            "pgweb": "container.v0",
            "orders": "value.v0",
            "mongo-password": "parameter.v0",
            "mongo": "container.v1",
            "catalog": "value.v0",
            "mongo-rs": "value.v0",
        }

    def test_custom_dmdb_passwords(self, apphost) -> None:
        entry = build_manifest(apphost)["resources"]["dmdb-custom"]
        assert entry["env"]["DM_USER_PWD"] == "{user-password.value}"
        assert entry["env"]["SYSDBA_PWD"] == "{dba-password.value}"
        assert entry["bindings"]["tcp"]["port"] == 5236

    def test_manifest_is_json_serialisable(self, apphost) -> None:
        assert json.loads(json.dumps(build_manifest(apphost)))["$schema"]


@pytest.mark.integration
class TestApphostStart:
    @pytest.mark.asyncio
    async def test_start_with_mocked_docker(self, apphost, test_settings, tmp_path) -> None:
        runtime = DockerCliRuntime(settings=test_settings)
        runtime.state_directory = lambda app: tmp_path / "state"
        runtime.run = AsyncMock(return_value=(0, "", ""))
        app = apphost.build(runtime=runtime)

        await app.start()

        commands = [c.args[0] for c in runtime.run.call_args_list]
        started = [argv[argv.index("--network-alias") + 1] for argv in commands if argv[1] == "run"]
        assert sorted(started) == ["dmdb-custom", "kingbase", "mongo", "opengauss", "pgadmin", "pgweb"]
        assert any(argv[1] == "build" for argv in commands)

        servers = json.loads(
            next((tmp_path / "state" / "pgadmin").rglob("servers.json")).read_text()
        )["Servers"]
        assert {server["Name"] for server in servers.values()} == {"opengauss", "kingbase"}

        connection_string = await app.get_connection_string("testdb")
        assert ";Database=testdb;" in connection_string
        assert "Password=Test@1234" in connection_string
        assert "Port=5236" in connection_string
