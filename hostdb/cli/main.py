"""hostdb CLI: Entry point.

Usage:
    hostdb manifest <module:attr> [--output manifest.json]
    hostdb run-args <module:attr>
    hostdb up <module:attr> [--wait <resource>]
    hostdb down <module:attr>
    hostdb health <module:attr> <resource>
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from hostdb.cli.commands import containers, health, manifest
from hostdb.config import Settings, override_settings
from hostdb.logging import configure_logging

app = typer.Typer(
    name="hostdb",
    help="hostdb: database containers as resources of an application graph.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.command("manifest")(manifest.manifest)
app.command("run-args")(containers.run_args)
app.command("up")(containers.up)
app.command("down")(containers.down)
app.command("health")(health.health)


@app.callback()
def main_callback(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: str | None = typer.Option(None, help="Log level (overrides config)."),
    log_format: str | None = typer.Option(None, help="console or json (overrides config)."),
) -> None:
    settings = Settings.load(config_file=config)
    if log_level:
        settings.logging.level = log_level.lower()
    if log_format:
        settings.logging.format = log_format
    override_settings(settings)
    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )


if __name__ == "__main__":
    app()
