"""Shared pytest fixtures for the hostdb test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from hostdb.config import Settings, override_settings
from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.model.parameters import ParameterResource


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    settings = Settings(
        logging={"level": "debug", "format": "console"},
        health={"default_timeout_seconds": 5.0, "wait_interval_seconds": 0.01},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Application model
# ---------------------------------------------------------------------------


@pytest.fixture
def app_host_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "apphost"
    directory.mkdir()
    return directory


@pytest.fixture
def builder(test_settings: Settings, app_host_dir: Path) -> DistributedApplicationBuilder:
    return DistributedApplicationBuilder(
        "testapp", settings=test_settings, app_host_directory=app_host_dir
    )


@pytest.fixture
def secret(builder: DistributedApplicationBuilder):
    """Factory adding a secret parameter with a fixed value."""

    def make(name: str, value: str = "P@ssw0rd!") -> ParameterResource:
        return builder.add_parameter(name, value=value, secret=True).resource

    return make
