"""Error taxonomy for transfers.

Every error raised while reading, converting or writing rows is a
``TransferError``. Each subclass names one failure kind; the engine stops at
the first one and reports it together with the number of rows already
processed.
"""

from __future__ import annotations


class TransferError(Exception):
    """Base exception for all transfer failures."""

    kind = "TransferError"

    def __init__(self, message: str, *, column: str | None = None, row: int | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human readable description of the failure
            column: Name of the column involved, if any
            row: 1-based data row offset involved, if any
        """
        super().__init__(message)
        self.message = message
        self.column = column
        self.row = row

    def __str__(self) -> str:
        location = []
        if self.row is not None:
            location.append(f"row {self.row}")
        if self.column is not None:
            location.append(f"column '{self.column}'")
        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"


class FileIOError(TransferError):
    """Raised when a flat file cannot be opened, created or flushed."""

    kind = "IOError"


class QueryError(TransferError):
    """Raised when a query fails to execute or its result stream breaks."""

    kind = "QueryError"


class ScanError(TransferError):
    """Raised when a result value cannot be read as its native type."""

    kind = "ScanError"


class FormatError(TransferError):
    """Raised for a malformed flat-file line."""

    kind = "FormatError"


class ConversionError(TransferError):
    """Raised when a value cannot be converted to or from text."""

    kind = "ConversionError"


class SchemaError(TransferError):
    """Raised when the destination table or one of its columns is missing."""

    kind = "SchemaError"


class BatchError(TransferError):
    """Raised when the database rejects the final batch insert."""

    kind = "BatchError"
