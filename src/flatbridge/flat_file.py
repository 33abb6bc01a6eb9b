"""Row-oriented reader and writer for delimited flat files."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any, TextIO

from flatbridge.errors import FileIOError, FormatError
from flatbridge.type_detection import ColumnDescriptor, infer_columns, text_columns

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = ","


def validate_delimiter(delimiter: str | None) -> str:
    """Validate a field delimiter, falling back to a comma when unset.

    Args:
        delimiter: Delimiter character, or None/empty for the default

    Returns:
        The delimiter to use

    Raises:
        ValueError: If the delimiter is not a single non-newline character
    """
    if not delimiter:
        return DEFAULT_DELIMITER
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
    if delimiter in ("\n", "\r"):
        raise ValueError("Delimiter cannot be a line break")
    return delimiter


class FlatFileReader:
    """Reads a header line and then one record per line from a delimited file.

    Values are split on the delimiter with no quoting or escaping, so a value
    that contains the delimiter shifts the remaining columns of its line.
    """

    representation = "text"

    def __init__(self, path: Path, delimiter: str | None = None, infer_types: bool = False) -> None:
        """Initialize the reader.

        Args:
            path: Path of the file to read
            delimiter: Single-character field delimiter (default ',')
            infer_types: Infer column types from the first data row instead
                of treating every column as text
        """
        self.path = Path(path)
        self.delimiter = validate_delimiter(delimiter)
        self.infer_types = infer_types
        self.columns: list[ColumnDescriptor] = []
        self._file: TextIO | None = None
        self._pending: list[str] | None = None

    def __enter__(self) -> FlatFileReader:
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def description(self) -> str:
        return f"file {self.path}"

    def open(self) -> list[ColumnDescriptor]:
        """Open the file and read its header.

        Returns:
            Column descriptors, one per header field

        Raises:
            FileIOError: If the file cannot be opened
            FormatError: If the file has no header line
        """
        try:
            # Only \n ends a record; a lone \r stays part of its value
            self._file = open(self.path, encoding="utf-8", newline="\n")
        except OSError as e:
            raise FileIOError(f"Failed to open file {self.path}: {e}") from e

        try:
            header = self._next_record(None)
            if header is None:
                raise FormatError(f"File {self.path} has no header line")

            if self.infer_types:
                self._pending = self._next_record(1)
                self.columns = infer_columns(header, self._pending)
            else:
                self.columns = text_columns(header)
        except Exception:
            self.close()
            raise

        logger.debug("Found columns in %s: %s", self.path, [c.name for c in self.columns])
        return self.columns

    def _next_record(self, row: int | None) -> list[str] | None:
        if self._file is None:
            raise FileIOError(f"File {self.path} is not open", row=row)
        try:
            line = self._file.readline()
        except UnicodeDecodeError as e:
            raise FormatError(f"File is not valid UTF-8: {e}", row=row) from e
        except (OSError, ValueError) as e:
            raise FileIOError(f"Failed to read file {self.path}: {e}", row=row) from e

        if not line:
            return None
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        # A blank line is a single empty field
        return line.split(self.delimiter)

    def rows(self) -> Iterator[tuple[str, ...]]:
        """Yield the data records in file order.

        Yields:
            One tuple of raw field text per data line

        Raises:
            FormatError: If a line's field count differs from the header's
        """
        expected = len(self.columns)
        row_number = 0

        while True:
            row_number += 1
            if self._pending is not None:
                record, self._pending = self._pending, None
            else:
                record = self._next_record(row_number)
            if record is None:
                return

            if len(record) != expected:
                raise FormatError(
                    f"Expected {expected} fields but found {len(record)}", row=row_number
                )
            yield tuple(record)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._pending = None


class FlatFileWriter:
    """Writes a header line and then one delimited line per row.

    Output is buffered and flushed explicitly in ``finalize``. The directory
    of ``path`` must already exist.
    """

    representation = "text"

    def __init__(self, path: Path, delimiter: str | None = None) -> None:
        self.path = Path(path)
        self.delimiter = validate_delimiter(delimiter)
        self.columns: list[ColumnDescriptor] = []
        self._file: TextIO | None = None
        self._warned_columns: set[str] = set()

    def __enter__(self) -> FlatFileWriter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def description(self) -> str:
        return f"file {self.path}"

    def open(self, columns: list[ColumnDescriptor]) -> list[ColumnDescriptor]:
        """Create or truncate the file and write the header line.

        Args:
            columns: Columns of the incoming rows

        Returns:
            The same columns; the file keeps the source schema

        Raises:
            FileIOError: If the file cannot be created or written
        """
        try:
            self._file = open(self.path, "w", encoding="utf-8", newline="")
        except OSError as e:
            raise FileIOError(f"Failed to create file {self.path}: {e}") from e

        self.columns = list(columns)
        logger.debug("Writing columns to %s: %s", self.path, [c.name for c in self.columns])
        self._write_line([c.name for c in self.columns], None)
        return self.columns

    def write(self, fields: Sequence[str], row: int | None = None) -> None:
        """Append one row of already-encoded fields."""
        for column, field in zip(self.columns, fields):
            if self.delimiter in field and column.name not in self._warned_columns:
                self._warned_columns.add(column.name)
                logger.warning(
                    "Column '%s' has values containing the delimiter %r; "
                    "they are written unquoted and will not read back aligned",
                    column.name,
                    self.delimiter,
                )
        self._write_line(fields, row)

    def _write_line(self, fields: Sequence[str], row: int | None) -> None:
        if self._file is None:
            raise FileIOError(f"File {self.path} is not open", row=row)
        try:
            self._file.write(self.delimiter.join(fields) + "\n")
        except (OSError, ValueError) as e:
            raise FileIOError(f"Failed to write to file {self.path}: {e}", row=row) from e

    def finalize(self) -> None:
        """Flush buffered lines to disk.

        Raises:
            FileIOError: If the flush fails
        """
        if self._file is None:
            raise FileIOError(f"File {self.path} is not open")
        try:
            self._file.flush()
        except (OSError, ValueError) as e:
            raise FileIOError(f"Failed to flush file {self.path}: {e}") from e

    def close(self) -> None:
        """Close the file.

        Raises:
            FileIOError: If buffered data cannot be written while closing
        """
        if self._file is None:
            return
        file, self._file = self._file, None
        try:
            file.close()
        except OSError as e:
            raise FileIOError(f"Failed to close file {self.path}: {e}") from e


def infer_flat_file_schema(path: Path, delimiter: str | None = None) -> list[ColumnDescriptor]:
    """Describe a flat file's columns from its header and first data row.

    Args:
        path: Path to the flat file
        delimiter: Field delimiter (default ',')

    Returns:
        Column descriptors with inferred types
    """
    with FlatFileReader(path, delimiter, infer_types=True) as reader:
        return reader.columns
