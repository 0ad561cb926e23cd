"""Integration tests — real containers through the docker CLI.

Skipped when docker is unavailable or SKIP_DOCKER_TESTS is set.  Images are
pulled on first run, which can take several minutes.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import uuid

import pytest

from hostdb import DistributedApplicationBuilder, add_opengauss
from hostdb.config import Settings
from hostdb.runtime import DockerCliRuntime


def _docker_available() -> bool:
    if os.environ.get("SKIP_DOCKER_TESTS") or shutil.which("docker") is None:
        return False
    try:
        subprocess.run(["docker", "info"], capture_output=True, check=True, timeout=20)
    except (subprocess.SubprocessError, OSError):
        return False
    return True


pytestmark = [
    pytest.mark.integration,
    pytest.mark.docker,
    pytest.mark.skipif(not _docker_available(), reason="docker is not available"),
]


@pytest.fixture
def docker_settings() -> Settings:
    return Settings(
        health={"wait_timeout_seconds": 600, "wait_interval_seconds": 5},
        runtime={"bind_host": "127.0.0.1"},
    )


@pytest.mark.asyncio
async def test_opengauss_becomes_healthy(docker_settings, tmp_path) -> None:
    builder = DistributedApplicationBuilder(
        f"hostdb-it-{uuid.uuid4().hex[:8]}", settings=docker_settings, app_host_directory=tmp_path
    )
    password = builder.add_parameter("og-password", value="Secret@123", secret=True)
    opengauss = add_opengauss(builder, "og", password=password).run_as_privileged()
    opengauss.add_database("postgres_db", "postgres")

    app = builder.build(runtime=DockerCliRuntime(settings=docker_settings))
    async with app:
        result = await app.wait_for_resource_healthy("og")
        assert result.is_healthy
        database = await app.wait_for_resource_healthy("postgres_db")
        assert database.is_healthy
        connection_string = await app.get_connection_string("og")
        assert connection_string.startswith("Host=127.0.0.1;Port=")
