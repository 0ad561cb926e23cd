"""Fixtures for the CLI tests: an importable app host module."""

from __future__ import annotations

import sys
import uuid
from pathlib import Path
from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from hostdb.config import Settings

APP_HOST_SOURCE = '''
from hostdb import DistributedApplicationBuilder, add_opengauss


def create_builder():
    builder = DistributedApplicationBuilder("cli", app_host_directory={directory!r})
    password = builder.add_parameter("og-secret", value="Secret123", secret=True)
    add_opengauss(builder, "og", password=password, port=15432).add_database("orders")
    return builder


builder = create_builder()
not_a_builder = 42
'''


@pytest.fixture
def app_module(tmp_path: Path):
    """Write an app host module; yields ``(module name, directory)``."""
    name = f"cli_apphost_{uuid.uuid4().hex}"
    (tmp_path / f"{name}.py").write_text(APP_HOST_SOURCE.format(directory=str(tmp_path)))
    yield name, tmp_path
    sys.modules.pop(name, None)
    if str(tmp_path) in sys.path:
        sys.path.remove(str(tmp_path))


@pytest.fixture(autouse=True)
def quiet_cli():
    """Skip config files and logging handlers when the CLI callback runs."""
    with patch("hostdb.cli.main.Settings.load", return_value=Settings()), patch(
        "hostdb.cli.main.configure_logging"
    ), capture_logs():
        yield
