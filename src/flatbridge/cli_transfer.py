"""Transfer commands: export query results to files and import files into tables."""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from flatbridge.config import TransferConfig, TransferJob
from flatbridge.database import DatabaseConnection
from flatbridge.flat_file import validate_delimiter
from flatbridge.transfer import (
    TransferResult,
    transfer_database_to_file,
    transfer_file_to_database,
)

console = Console()


def _report_result(result: TransferResult, target: str) -> None:
    """Print the outcome of a transfer, aborting on failure.

    Args:
        result: Result returned by the transfer
        target: Description of the destination for the summary

    Raises:
        click.Abort: If the transfer failed
    """
    if result.error is not None:
        console.print(f"[red]Error \\[{result.error.kind}]:[/red] {escape(str(result.error))}")
        console.print(f"[dim]  Records processed before failure: {result.record_count}[/dim]")
        raise click.Abort()

    console.print(f"[green]✓ Successfully transferred {result.record_count} records[/green]")
    console.print(f"[dim]  Destination: {target}[/dim]")
    if result.destination_columns:
        names = ", ".join(col.name for col in result.destination_columns)
        console.print(f"[dim]  Columns: {names}[/dim]")


def _export(db_url: str, query: str, destination: Path, delimiter: str) -> TransferResult:
    # Creating the destination directory is the caller's job, not the writer's
    destination.parent.mkdir(parents=True, exist_ok=True)
    console.print(f"[cyan]Exporting query results to {destination}...[/cyan]")
    with DatabaseConnection(db_url) as db:
        return transfer_database_to_file(db, query, destination, delimiter)


def _import(db_url: str, source: Path, table: str, delimiter: str) -> TransferResult:
    console.print(f"[cyan]Loading {source.name} into {table}...[/cyan]")
    with DatabaseConnection(db_url) as db:
        return transfer_file_to_database(db, source, delimiter, table)


@click.command()
@click.argument("query", type=str, required=True)
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option("--delimiter", "-d", default=",", show_default=True, help="Field delimiter character")
@click.option(
    "--db-url",
    envvar="CLICKHOUSE_URL",
    required=True,
    help="ClickHouse connection URL (or set CLICKHOUSE_URL env var)",
)
def export(query: str, destination: Path, delimiter: str, db_url: str) -> None:
    """Export the result of a query to a delimited flat file.

    Arguments:
        QUERY: SQL query producing the rows (required)
        DESTINATION: File to create or overwrite (required)

    Examples:
        # Export a table to CSV
        flatbridge export "SELECT * FROM events" events.csv --db-url clickhouse://localhost/default

        # Semicolon-delimited output
        flatbridge export "SELECT name, score FROM scores" scores.txt -d ";"
    """
    try:
        delimiter = validate_delimiter(delimiter)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--delimiter") from e

    try:
        result = _export(db_url, query, destination, delimiter)
    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort() from e

    _report_result(result, str(destination))


@click.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True)
@click.argument("table", type=str, required=True)
@click.option("--delimiter", "-d", default=",", show_default=True, help="Field delimiter character")
@click.option(
    "--db-url",
    envvar="CLICKHOUSE_URL",
    required=True,
    help="ClickHouse connection URL (or set CLICKHOUSE_URL env var)",
)
def import_file(source: Path, table: str, delimiter: str, db_url: str) -> None:
    """Load a delimited flat file into an existing table.

    The header line names the destination columns; every value is converted
    to its column's type and all rows are inserted in one batch.

    Arguments:
        SOURCE: Flat file to load (required)
        TABLE: Destination table, optionally as database.table (required)

    Examples:
        flatbridge import events.csv events --db-url clickhouse://localhost/default
    """
    try:
        delimiter = validate_delimiter(delimiter)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--delimiter") from e

    result = _import(db_url, source, table, delimiter)
    _report_result(result, table)


@click.command()
@click.argument("config", type=click.Path(exists=True, path_type=Path), required=True)
@click.argument("job", type=str, required=True)
@click.option(
    "--db-url",
    envvar="CLICKHOUSE_URL",
    default=None,
    help="ClickHouse connection URL overriding the config file's connection",
)
def run(config: Path, job: str, db_url: str | None) -> None:
    """Run a transfer job defined in a configuration file.

    Arguments:
        CONFIG: Path to the YAML configuration file (required)
        JOB: Name of the job to run from the config file (required)

    Examples:
        flatbridge run flatbridge.yaml export_events
    """
    try:
        transfer_config = TransferConfig.from_yaml(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort() from e

    transfer_job = transfer_config.get_job(job)
    if not transfer_job:
        available_jobs = ", ".join(transfer_config.jobs.keys())
        console.print(f"[red]Error:[/red] Job '{job}' not found in config")
        console.print(f"[dim]Available jobs: {available_jobs}[/dim]")
        raise click.Abort()

    url = db_url or transfer_config.connection.to_url()
    result, target = _run_job(transfer_config, transfer_job, url)
    _report_result(result, target)


def _run_job(config: TransferConfig, job: TransferJob, db_url: str) -> tuple[TransferResult, str]:
    delimiter = config.delimiter_for(job)

    if job.direction == "export":
        if not job.query:
            console.print(f"[red]Error:[/red] Job '{job.name}' has no query")
            raise click.Abort()
        destination = config.paths.resolve_destination(job.file)
        try:
            return _export(db_url, job.query, destination, delimiter), str(destination)
        except OSError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise click.Abort() from e

    if not job.table:
        console.print(f"[red]Error:[/red] Job '{job.name}' has no table")
        raise click.Abort()
    source = config.paths.resolve_source(job.file)
    if not source.exists():
        console.print(f"[red]Error:[/red] Source file not found: {source}")
        raise click.Abort()
    return _import(db_url, source, job.table, delimiter), job.table
