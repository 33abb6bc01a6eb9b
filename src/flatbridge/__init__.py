"""Move tabular data between ClickHouse and delimited flat files.

This package provides a CLI tool, an HTTP API and a programmatic API for
exporting query results to flat files and loading flat files into existing
ClickHouse tables, converting every value according to its column type.

CLI Usage:
    flatbridge export <query> <file> --db-url <url>
    flatbridge import <file> <table> --db-url <url>
    flatbridge run <config> <job>
    flatbridge preview --file <file>
    flatbridge schema --tables --db-url <url>
    flatbridge serve --config <config>

Programmatic Usage:
    from flatbridge import DatabaseConnection, transfer_file_to_database
    from pathlib import Path

    with DatabaseConnection("clickhouse://localhost/default") as db:
        result = transfer_file_to_database(db, Path("events.csv"), ",", "events")
    result.raise_for_error()
"""

__version__ = "0.1.0"

# Export main API functions
from flatbridge.config import ConnectionSettings, PathSettings, TransferConfig, TransferJob
from flatbridge.database import DatabaseConnection, DatabaseReader, DatabaseWriter, TableSchema
from flatbridge.errors import (
    BatchError,
    ConversionError,
    FileIOError,
    FormatError,
    QueryError,
    ScanError,
    SchemaError,
    TransferError,
)
from flatbridge.flat_file import FlatFileReader, FlatFileWriter, infer_flat_file_schema
from flatbridge.transfer import (
    Preview,
    TransferEngine,
    TransferResult,
    TransferState,
    preview_first_rows,
    transfer_database_to_file,
    transfer_file_to_database,
)
from flatbridge.type_detection import ColumnDescriptor, LogicalType, classify

__all__ = [
    "__version__",
    # Configuration
    "TransferConfig",
    "TransferJob",
    "ConnectionSettings",
    "PathSettings",
    # Type catalog
    "LogicalType",
    "ColumnDescriptor",
    "classify",
    # Channels
    "DatabaseConnection",
    "DatabaseReader",
    "DatabaseWriter",
    "TableSchema",
    "FlatFileReader",
    "FlatFileWriter",
    "infer_flat_file_schema",
    # Transfers
    "TransferEngine",
    "TransferResult",
    "TransferState",
    "Preview",
    "transfer_database_to_file",
    "transfer_file_to_database",
    "preview_first_rows",
    # Errors
    "TransferError",
    "FileIOError",
    "QueryError",
    "ScanError",
    "FormatError",
    "ConversionError",
    "SchemaError",
    "BatchError",
]
