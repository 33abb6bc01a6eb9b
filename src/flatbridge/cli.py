"""Command-line interface for flatbridge."""

import click

from flatbridge import __version__
from flatbridge.cli_preview import preview
from flatbridge.cli_schema import schema
from flatbridge.cli_serve import serve
from flatbridge.cli_transfer import export, import_file, run
from flatbridge.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    envvar="FLATBRIDGE_LOG_LEVEL",
    show_default=True,
    help="Verbosity of log output on stderr",
)
@click.pass_context
def main(ctx: click.Context, log_level: str) -> None:
    """Move tabular data between ClickHouse and delimited flat files.

    Query results are exported to files, and files are loaded into existing
    tables, with every value converted according to its column type.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)


# Register commands
main.add_command(export)
main.add_command(import_file)
main.add_command(run)
main.add_command(preview)
main.add_command(schema)
main.add_command(serve)


if __name__ == "__main__":
    main()
