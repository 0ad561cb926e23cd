"""CLI: Health of a running resource."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from hostdb.cli.loader import load_builder
from hostdb.exceptions import HostDbError
from hostdb.model.health import HealthStatus
from hostdb.runtime import DockerCliRuntime

console = Console()

STATUS_STYLES = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.UNHEALTHY: "red",
}


def health(
    target: str = typer.Argument(help="Application builder as module:attribute."),
    resource: str = typer.Argument(help="Resource to check."),
    app_dir: Path = typer.Option(Path("."), "--app-dir", help="Directory to import APP from."),
) -> None:
    """Run the health checks of RESOURCE against the running containers."""
    builder = load_builder(target, app_dir)
    app = builder.build(runtime=DockerCliRuntime(settings=builder.settings))

    async def check():
        await app.attach()
        return await app.check_resource_health(resource)

    try:
        result = asyncio.run(check())
    except HostDbError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)

    style = STATUS_STYLES[result.status]
    line = f"[{style}]{resource}: {result.status.value}[/{style}]"
    if result.description:
        line += f" ({result.description})"
    console.print(line)
    if not result.is_healthy:
        raise typer.Exit(1)
