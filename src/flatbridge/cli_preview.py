"""Preview command for showing the first rows of a file or query."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flatbridge import codec
from flatbridge.database import DatabaseConnection, DatabaseReader
from flatbridge.errors import TransferError
from flatbridge.flat_file import FlatFileReader, validate_delimiter
from flatbridge.transfer import Preview, preview_first_rows
from flatbridge.type_detection import ColumnDescriptor

console = Console()

MAX_VALUE_LENGTH = 80


def _display_value(column: ColumnDescriptor, value: Any) -> str:
    """Render a previewed value the way it would appear in a flat file.

    Args:
        column: Column the value belongs to
        value: Typed value

    Returns:
        Display string, truncated to MAX_VALUE_LENGTH characters
    """
    text = codec.encode(column.logical_type, value, column.native_type, column=column.name)
    if len(text) > MAX_VALUE_LENGTH:
        text = text[: MAX_VALUE_LENGTH - 3] + "..."
    return escape(text)


def render_preview(preview: Preview, title: str) -> Table:
    """Build a rich table for preview rows.

    Args:
        preview: Columns and rows to show
        title: Table title

    Returns:
        Table with one column per source column, headed by name and type
    """
    table = Table(title=title)
    for column in preview.columns:
        table.add_column(f"{column.name}\n[dim]{column.native_type}[/dim]", overflow="fold")

    for row in preview.rows:
        table.add_row(*[_display_value(col, value) for col, value in zip(preview.columns, row)])
    return table


@click.command()
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Flat file to preview",
)
@click.option("--query", type=str, help="Query whose result to preview")
@click.option("--delimiter", "-d", default=",", show_default=True, help="Field delimiter character")
@click.option(
    "--limit",
    "-n",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Maximum number of rows to show",
)
@click.option(
    "--infer-types",
    is_flag=True,
    help="Infer file column types from the first data row instead of reading text",
)
@click.option(
    "--db-url",
    envvar="CLICKHOUSE_URL",
    default=None,
    help="ClickHouse connection URL (or set CLICKHOUSE_URL env var)",
)
def preview(
    file_path: Path | None,
    query: str | None,
    delimiter: str,
    limit: int,
    infer_types: bool,
    db_url: str | None,
) -> None:
    """Show the first rows of a flat file or of a query result.

    Nothing is written. File fields are converted with the same rules a
    transfer uses, so conversion problems show up here first.

    Examples:
        # First 10 lines of a file, with inferred column types
        flatbridge preview --file events.csv --infer-types

        # First 5 rows of a query
        flatbridge preview --query "SELECT * FROM events" -n 5 --db-url clickhouse://localhost/default
    """
    if (file_path is None) == (query is None):
        raise click.UsageError("Specify exactly one of --file or --query")

    try:
        delimiter = validate_delimiter(delimiter)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--delimiter") from e

    try:
        if file_path is not None:
            title = f"{file_path.name} (first {limit} rows)"
            result = preview_first_rows(FlatFileReader(file_path, delimiter, infer_types), limit)
        else:
            if not db_url:
                raise click.UsageError("--db-url is required with --query")
            title = f"Query result (first {limit} rows)"
            with DatabaseConnection(db_url) as db:
                result = preview_first_rows(DatabaseReader(db, query), limit)
    except TransferError as e:
        console.print(f"[red]Error \\[{e.kind}]:[/red] {escape(str(e))}")
        raise click.Abort() from e

    console.print(render_preview(result, title))
    console.print(f"\n[green]{len(result.rows)} rows, {len(result.columns)} columns[/green]")
