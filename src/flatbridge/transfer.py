"""Transfer engine: moves rows from a source channel to a destination channel."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from flatbridge import codec
from flatbridge.database import DatabaseConnection, DatabaseReader, DatabaseWriter
from flatbridge.errors import TransferError
from flatbridge.flat_file import FlatFileReader, FlatFileWriter
from flatbridge.type_detection import ColumnDescriptor

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 1000
DEFAULT_PREVIEW_LIMIT = 100


class RowSource(Protocol):
    """Produces named columns and rows of values."""

    representation: str  # "text" for flat files, "typed" for databases

    @property
    def description(self) -> str: ...

    def open(self) -> list[ColumnDescriptor]: ...

    def rows(self) -> Iterator[tuple[Any, ...]]: ...

    def close(self) -> None: ...


class RowSink(Protocol):
    """Consumes named columns and rows of values."""

    representation: str

    @property
    def description(self) -> str: ...

    def open(self, columns: list[ColumnDescriptor]) -> list[ColumnDescriptor]: ...

    def write(self, values: Sequence[Any], row: int | None = None) -> None: ...

    def finalize(self) -> None: ...

    def close(self) -> None: ...


class TransferState(Enum):
    """Lifecycle of a single transfer."""

    IDLE = "idle"
    READING = "reading"
    CONVERTING = "converting"
    WRITING = "writing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TransferResult:
    """Outcome of a transfer.

    ``record_count`` counts rows that were read, converted and written before
    the transfer ended. It is kept when the transfer fails.
    """

    record_count: int = 0
    error: TransferError | None = None
    source_columns: list[ColumnDescriptor] = field(default_factory=list)
    destination_columns: list[ColumnDescriptor] = field(default_factory=list)
    state: TransferState = TransferState.IDLE

    @property
    def ok(self) -> bool:
        return self.error is None and self.state is TransferState.COMPLETED

    def raise_for_error(self) -> None:
        """Re-raise the error that ended the transfer, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordCount": self.record_count,
            "state": self.state.value,
            "error": str(self.error) if self.error else None,
            "kind": self.error.kind if self.error else None,
        }


Converter = Callable[[Any, int], Any]


def _build_converter(source: ColumnDescriptor, destination: ColumnDescriptor, mode: str) -> Converter:
    if mode == "decode":
        return lambda value, row: codec.decode(
            destination.logical_type,
            value,
            column=destination.name,
            row=row,
            native_type=destination.native_type,
        )
    if mode == "encode":
        return lambda value, row: codec.encode(
            source.logical_type, value, source.native_type, column=source.name, row=row
        )
    return lambda value, row: value


class TransferEngine:
    """Runs one directional, single-pass transfer.

    Rows are read, converted and written one at a time in source order. The
    first error stops the transfer; nothing is retried.
    """

    def __init__(self, source: RowSource, destination: RowSink) -> None:
        """Initialize the engine.

        Args:
            source: Channel to read rows from
            destination: Channel to write rows to

        Raises:
            ValueError: If both channels are flat files
        """
        if source.representation == "text" and destination.representation == "text":
            raise ValueError("File-to-file transfers are not supported")

        self.source = source
        self.destination = destination
        self.state = TransferState.IDLE

    def _conversion_mode(self) -> str:
        if self.source.representation == "text" and self.destination.representation == "typed":
            return "decode"
        if self.source.representation == "typed" and self.destination.representation == "text":
            return "encode"
        return "passthrough"

    def run(self) -> TransferResult:
        """Run the transfer to completion or to its first error.

        Returns:
            TransferResult with the record count and the error, if any

        Raises:
            RuntimeError: If the engine has already run
        """
        if self.state is not TransferState.IDLE:
            raise RuntimeError("Transfer has already run")

        result = TransferResult()
        logger.info(
            "Starting transfer from %s to %s", self.source.description, self.destination.description
        )

        try:
            self._transfer(result)
        except TransferError as e:
            self._fail(result, e)
        finally:
            self._release(result)

        result.state = self.state
        return result

    def _transfer(self, result: TransferResult) -> None:
        self.state = TransferState.READING
        result.source_columns = self.source.open()
        result.destination_columns = self.destination.open(result.source_columns)

        mode = self._conversion_mode()
        converters = [
            _build_converter(src, dst, mode)
            for src, dst in zip(result.source_columns, result.destination_columns)
        ]

        for row_number, values in enumerate(self.source.rows(), start=1):
            self.state = TransferState.CONVERTING
            converted = [convert(value, row_number) for convert, value in zip(converters, values)]

            self.state = TransferState.WRITING
            self.destination.write(converted, row_number)
            result.record_count += 1
            logger.debug("Processed row %d: %s", result.record_count, converted)
            if result.record_count % PROGRESS_INTERVAL == 0:
                logger.info("Processed %d records", result.record_count)

            self.state = TransferState.READING

        self.state = TransferState.FINALIZING
        self.destination.finalize()

        self.state = TransferState.COMPLETED
        logger.info("Successfully processed %d records", result.record_count)

    def _fail(self, result: TransferResult, error: TransferError) -> None:
        self.state = TransferState.FAILED
        result.error = error
        logger.error(
            "Transfer failed after %d records: [%s] %s", result.record_count, error.kind, error
        )

    def _release(self, result: TransferResult) -> None:
        for channel in (self.source, self.destination):
            try:
                channel.close()
            except TransferError as e:
                if result.error is None:
                    self._fail(result, e)
                else:
                    logger.warning("Failed to release %s: %s", channel.description, e)


def run_transfer(source: RowSource, destination: RowSink) -> TransferResult:
    """Transfer all rows from source to destination."""
    return TransferEngine(source, destination).run()


def transfer_database_to_file(
    connection: DatabaseConnection,
    query: str,
    destination_path: Path,
    delimiter: str | None = None,
) -> TransferResult:
    """Write the result of a query to a delimited flat file.

    Args:
        connection: Open database connection
        query: SQL query producing the rows
        destination_path: File to create or truncate (its directory must exist)
        delimiter: Field delimiter (default ',')

    Returns:
        TransferResult with the number of rows written

    Examples:
        >>> with DatabaseConnection("clickhouse://localhost/default") as db:
        ...     result = transfer_database_to_file(db, "SELECT * FROM events", Path("events.csv"))
        >>> result.record_count
        3
    """
    return run_transfer(
        DatabaseReader(connection, query), FlatFileWriter(destination_path, delimiter)
    )


def transfer_file_to_database(
    connection: DatabaseConnection,
    source_path: Path,
    delimiter: str | None,
    target_table: str,
) -> TransferResult:
    """Load a delimited flat file into an existing table with one batch insert.

    Args:
        connection: Open database connection
        source_path: File to read; its header names the destination columns
        delimiter: Field delimiter (default ',')
        target_table: Destination table, optionally prefixed with the database

    Returns:
        TransferResult with the number of rows processed
    """
    return run_transfer(
        FlatFileReader(source_path, delimiter), DatabaseWriter(connection, target_table)
    )


@dataclass
class Preview:
    """First rows of a source."""

    columns: list[ColumnDescriptor]
    rows: list[tuple[Any, ...]]

    def to_records(self) -> list[dict[str, Any]]:
        names = [col.name for col in self.columns]
        return [dict(zip(names, row)) for row in self.rows]


def preview_first_rows(source: RowSource, limit: int = DEFAULT_PREVIEW_LIMIT) -> Preview:
    """Read up to ``limit`` rows from a source without writing anywhere.

    Flat-file fields are decoded with the source's own column types, the
    same rules a transfer applies.

    Args:
        source: Channel to read from
        limit: Maximum number of rows to return

    Returns:
        Preview with the source columns and the decoded rows

    Raises:
        ValueError: If limit is less than 1
        TransferError: If reading or decoding fails
    """
    if limit < 1:
        raise ValueError("Preview limit must be at least 1")

    rows: list[tuple[Any, ...]] = []
    try:
        columns = source.open()
        for row_number, values in enumerate(source.rows(), start=1):
            if source.representation == "text":
                values = tuple(
                    codec.decode(
                        col.logical_type,
                        value,
                        column=col.name,
                        row=row_number,
                        native_type=col.native_type,
                    )
                    for col, value in zip(columns, values)
                )
            rows.append(values)
            if len(rows) >= limit:
                break
    finally:
        source.close()

    logger.info("Preview data retrieved: %d rows", len(rows))
    return Preview(columns=columns, rows=rows)
