"""Serve command for running the HTTP API."""

from __future__ import annotations

from pathlib import Path

import click
import uvicorn
from rich.console import Console

from flatbridge.api import create_app
from flatbridge.config import TransferConfig

console = Console()


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file with paths, delimiter and preview size",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option(
    "--port",
    type=int,
    default=5000,
    envvar="PORT",
    show_default=True,
    help="Port to listen on (or set PORT env var)",
)
def serve(config_path: Path | None, host: str, port: int) -> None:
    """Run the HTTP API for schema discovery, previews and transfers.

    Examples:
        flatbridge serve --config flatbridge.yaml --port 5000
    """
    try:
        config = TransferConfig.from_yaml(config_path) if config_path else TransferConfig()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort() from e

    console.print(f"[cyan]Serving on http://{host}:{port}[/cyan]")
    console.print(f"[dim]  Reading files from: {config.paths.base_dir}[/dim]")
    console.print(f"[dim]  Writing files to: {config.paths.output_dir}[/dim]")
    uvicorn.run(create_app(config), host=host, port=port, log_level="info")
