"""Schema command for describing flat files and database tables."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flatbridge.database import DatabaseConnection
from flatbridge.errors import TransferError
from flatbridge.flat_file import infer_flat_file_schema, validate_delimiter

console = Console()


def format_file_size(size_bytes: float) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted file size string
    """
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"


def show_file_schema(file_path: Path, delimiter: str) -> None:
    """Print the inferred columns of a flat file.

    Args:
        file_path: Path to the flat file
        delimiter: Field delimiter

    Raises:
        TransferError: If the file cannot be read
    """
    columns = infer_flat_file_schema(file_path, delimiter)

    console.print(f"\n[bold cyan]File: {file_path.name}[/bold cyan]")
    console.print(f"[dim]Path: {file_path}[/dim]")
    console.print(f"[dim]Size: {format_file_size(file_path.stat().st_size)}[/dim]\n")

    table = Table(title=f"Columns ({len(columns)})")
    table.add_column("Column", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Logical type", style="dim")
    for column in columns:
        table.add_row(column.name, column.native_type, column.logical_type.value)
    console.print(table)
    console.print("[dim]Types are inferred from the first data row[/dim]")


def show_tables(db_url: str) -> None:
    """Print the tables of the connected database and their columns.

    Args:
        db_url: ClickHouse connection URL

    Raises:
        TransferError: If the tables cannot be listed
    """
    with DatabaseConnection(db_url) as db:
        tables = db.list_tables()

    if not tables:
        console.print("[yellow]No tables found[/yellow]")
        return

    for schema in tables:
        table = Table(title=schema.name, title_justify="left")
        table.add_column("Column", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Logical type", style="dim")
        for column in schema.columns:
            table.add_row(column.name, column.native_type, column.logical_type.value)
        console.print(table)

    console.print(f"\n[green]{len(tables)} tables[/green]")


@click.command()
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Flat file to describe",
)
@click.option("--tables", is_flag=True, help="List the tables of the connected database")
@click.option("--delimiter", "-d", default=",", show_default=True, help="Field delimiter character")
@click.option(
    "--db-url",
    envvar="CLICKHOUSE_URL",
    default=None,
    help="ClickHouse connection URL (or set CLICKHOUSE_URL env var)",
)
def schema(file_path: Path | None, tables: bool, delimiter: str, db_url: str | None) -> None:
    """Describe the columns of a flat file or of the database's tables.

    Examples:
        # Column names and inferred types of a file
        flatbridge schema --file events.csv

        # Tables and column types of the database
        flatbridge schema --tables --db-url clickhouse://localhost/default
    """
    if (file_path is None) == (not tables):
        raise click.UsageError("Specify exactly one of --file or --tables")

    try:
        if file_path is not None:
            try:
                delimiter = validate_delimiter(delimiter)
            except ValueError as e:
                raise click.BadParameter(str(e), param_hint="--delimiter") from e
            show_file_schema(file_path, delimiter)
        else:
            if not db_url:
                raise click.UsageError("--db-url is required with --tables")
            show_tables(db_url)
    except TransferError as e:
        console.print(f"[red]Error \\[{e.kind}]:[/red] {escape(str(e))}")
        raise click.Abort() from e
