"""CLI: Manifest export."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from hostdb.cli.loader import load_builder
from hostdb.manifest import build_manifest

console = Console()


def manifest(
    target: str = typer.Argument(help="Application builder as module:attribute."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file path."),
    app_dir: Path = typer.Option(Path("."), "--app-dir", help="Directory to import APP from."),
) -> None:
    """Print the deployment manifest of the application as JSON."""
    builder = load_builder(target, app_dir)
    manifest_directory = output.resolve().parent if output else None
    json_str = json.dumps(build_manifest(builder, manifest_directory), indent=2)

    if output:
        output.write_text(json_str + "\n")
        console.print(f"[green]Manifest written to {output}[/green]")
    else:
        typer.echo(json_str)
