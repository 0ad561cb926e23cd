"""CLI: Start, stop and preview the application's containers."""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from hostdb.cli.loader import load_builder
from hostdb.exceptions import HostDbError
from hostdb.model.annotations import EndpointAnnotation
from hostdb.runtime import DockerCli, DockerCliRuntime, container_resources

console = Console()

APP_ARGUMENT = typer.Argument(help="Application builder as module:attribute.")
APP_DIR_OPTION = typer.Option(Path("."), "--app-dir", help="Directory to import APP from.")


def _endpoint_table(app) -> Table:
    table = Table(title=f"{app.app_name} resources")
    table.add_column("Resource", style="cyan")
    table.add_column("Endpoint")
    table.add_column("Address", style="green")
    for resource in app.resources:
        for endpoint in resource.annotations_of(EndpointAnnotation):
            address = (
                f"{endpoint.scheme}://{endpoint.allocated.host}:{endpoint.allocated.port}"
                if endpoint.allocated
                else "-"
            )
            table.add_row(resource.name, endpoint.name, address)
    return table


def run_args(
    target: str = APP_ARGUMENT,
    app_dir: Path = APP_DIR_OPTION,
) -> None:
    """Print the docker commands 'up' would run (secrets included)."""
    builder = load_builder(target, app_dir)
    cli = DockerCli(builder.settings)
    app = builder.build()
    app.allocate_endpoints()

    async def render() -> list[list[str]]:
        commands = []
        for resource in container_resources(app.resources):
            build = cli.render_build(resource)
            if build is not None:
                commands.append(build)
            commands.append(await cli.render_run(resource, app))
        return commands

    for argv in asyncio.run(render()):
        typer.echo(shlex.join(argv))


def up(
    target: str = APP_ARGUMENT,
    wait: list[str] = typer.Option([], "--wait", "-w", help="Wait until RESOURCE is healthy."),
    timeout: float | None = typer.Option(None, help="Seconds to wait for each resource."),
    app_dir: Path = APP_DIR_OPTION,
) -> None:
    """Start every container of the application."""
    builder = load_builder(target, app_dir)
    app = builder.build(runtime=DockerCliRuntime(settings=builder.settings))

    async def start() -> None:
        await app.start()
        for name in wait:
            console.print(f"Waiting for [cyan]{name}[/cyan]...")
            await app.wait_for_resource_healthy(name, timeout=timeout)

    try:
        asyncio.run(start())
    except HostDbError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)
    console.print(_endpoint_table(app))


def down(
    target: str = APP_ARGUMENT,
    app_dir: Path = APP_DIR_OPTION,
) -> None:
    """Remove the application's containers (persistent ones are kept)."""
    builder = load_builder(target, app_dir)
    app = builder.build(runtime=DockerCliRuntime(settings=builder.settings))
    try:
        asyncio.run(app.stop())
    except HostDbError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{app.app_name} stopped[/green]")
