"""CLI: Locate the application builder named on the command line.

``APP`` is ``module:attribute``.  The attribute is either a
``DistributedApplicationBuilder`` or a zero-argument callable returning one::

    hostdb manifest apphost:builder
    hostdb up apphost:create_builder
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

import typer

from hostdb.model.builder import DistributedApplicationBuilder


def load_builder(target: str, app_dir: Path | None = None) -> DistributedApplicationBuilder:
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise typer.BadParameter(f"Expected 'module:attribute', got '{target}'")

    directory = str((app_dir or Path.cwd()).resolve())
    if directory not in sys.path:
        sys.path.insert(0, directory)

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import module '{module_name}': {exc}") from exc

    try:
        obj = getattr(module, attribute)
    except AttributeError as exc:
        raise typer.BadParameter(
            f"Module '{module_name}' has no attribute '{attribute}'"
        ) from exc

    if not isinstance(obj, DistributedApplicationBuilder) and callable(obj):
        obj = obj()
    if not isinstance(obj, DistributedApplicationBuilder):
        raise typer.BadParameter(
            f"'{target}' is not a DistributedApplicationBuilder (got {type(obj).__name__})"
        )
    return obj
