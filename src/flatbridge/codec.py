"""Conversion of single values between typed and flat-file text form."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import numpy as np

from flatbridge.errors import ConversionError, ScanError
from flatbridge.type_detection import (
    INT64_MAX,
    INT64_MIN,
    TIMESTAMP_FORMAT,
    UINT64_MAX,
    ColumnDescriptor,
    LogicalType,
    float_width,
    integer_bounds,
)

# Zero value of a DateTime column (the Unix epoch)
ZERO_TIME = datetime(1970, 1, 1, tzinfo=timezone.utc)

_SIGNED_PATTERN = re.compile(r"[+-]?\d+")
_UNSIGNED_PATTERN = re.compile(r"\+?\d+")


def zero_value(logical_type: LogicalType) -> Any:
    """Return the value an empty field decodes to for a logical type.

    Empty numeric and timestamp fields become zero values, not NULL. This
    is a known limitation of the flat-file format: NULL cannot be expressed.
    """
    if logical_type.is_integer:
        return 0
    if logical_type is LogicalType.FLOAT:
        return 0.0
    if logical_type is LogicalType.TIMESTAMP:
        return ZERO_TIME
    return ""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _format_float(value: float, native_type: str | None) -> str:
    """Render a float in positional notation using the shortest exact digits."""
    if native_type is not None and float_width(native_type) == 32:
        return np.format_float_positional(np.float32(value), trim="0")
    return np.format_float_positional(float(value), trim="0")


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def encode(
    logical_type: LogicalType,
    value: Any,
    native_type: str | None = None,
    *,
    column: str | None = None,
    row: int | None = None,
) -> str:
    """Convert a typed value into its flat-file text form.

    Args:
        logical_type: Logical type of the column
        value: Typed value (None renders as an empty string)
        native_type: Native type name, used to pick the float precision
        column: Column name for error reporting
        row: 1-based row offset for error reporting

    Returns:
        Text representation of the value

    Raises:
        ConversionError: If the value does not match the logical type

    Examples:
        >>> encode(LogicalType.FLOAT, 10.5)
        '10.5'
        >>> encode(LogicalType.SIGNED_INT, None)
        ''
    """
    if value is None:
        return ""

    if logical_type.is_integer:
        if not _is_int(value):
            raise ConversionError(
                f"Expected integer value, got {type(value).__name__} {value!r}",
                column=column,
                row=row,
            )
        return str(value)

    if logical_type is LogicalType.FLOAT:
        if not (isinstance(value, float) or _is_int(value)):
            raise ConversionError(
                f"Expected float value, got {type(value).__name__} {value!r}",
                column=column,
                row=row,
            )
        return _format_float(value, native_type)

    if logical_type is LogicalType.TIMESTAMP:
        if not isinstance(value, datetime):
            raise ConversionError(
                f"Expected datetime value, got {type(value).__name__} {value!r}",
                column=column,
                row=row,
            )
        return _format_timestamp(value)

    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConversionError(f"Value is not valid UTF-8: {e}", column=column, row=row) from e

    if logical_type is LogicalType.TEXT and not isinstance(value, str):
        raise ConversionError(
            f"Expected text value, got {type(value).__name__} {value!r}",
            column=column,
            row=row,
        )

    return str(value)


def _decode_integer(
    logical_type: LogicalType, text: str, native_type: str | None, column: str, row: int | None
) -> int:
    pattern = _UNSIGNED_PATTERN if logical_type is LogicalType.UNSIGNED_INT else _SIGNED_PATTERN
    kind = "unsigned integer" if logical_type is LogicalType.UNSIGNED_INT else "integer"
    if not pattern.fullmatch(text):
        raise ConversionError(f"Failed to parse {kind} from {text!r}", column=column, row=row)

    value = int(text)
    if logical_type is LogicalType.UNSIGNED_INT:
        low, high = 0, UINT64_MAX
    else:
        low, high = INT64_MIN, INT64_MAX
    if native_type is not None:
        low, high = integer_bounds(native_type) or (low, high)

    if not low <= value <= high:
        target = native_type or kind
        raise ConversionError(
            f"Value {text!r} is out of range for {target} [{low}, {high}]",
            column=column,
            row=row,
        )
    return value


def decode(
    logical_type: LogicalType,
    text: str,
    *,
    column: str,
    row: int | None = None,
    native_type: str | None = None,
) -> Any:
    """Convert a flat-file text field into a typed value.

    Args:
        logical_type: Expected logical type of the column
        text: Raw field text
        column: Column name for error reporting
        row: 1-based row offset for error reporting
        native_type: Native destination type, used for integer range checks

    Returns:
        Typed value; empty text yields the type's zero value

    Raises:
        ConversionError: If the text cannot be parsed as the expected type
    """
    if text == "":
        return zero_value(logical_type)

    if logical_type.is_integer:
        return _decode_integer(logical_type, text, native_type, column, row)

    if logical_type is LogicalType.FLOAT:
        # float() tolerates whitespace and digit separators, the file format does not
        if text != text.strip() or "_" in text:
            raise ConversionError(f"Failed to parse float from {text!r}", column=column, row=row)
        try:
            return float(text)
        except ValueError as e:
            raise ConversionError(
                f"Failed to parse float from {text!r}", column=column, row=row
            ) from e

    if logical_type is LogicalType.TIMESTAMP:
        try:
            parsed = datetime.strptime(text, TIMESTAMP_FORMAT)
        except ValueError as e:
            raise ConversionError(
                f"Failed to parse datetime from {text!r} (expected YYYY-MM-DD HH:MM:SS)",
                column=column,
                row=row,
            ) from e
        return parsed.replace(tzinfo=timezone.utc)

    return text


def scan(descriptor: ColumnDescriptor, value: Any, *, row: int | None = None) -> Any:
    """Check a value read from the database against its column's native type.

    Args:
        descriptor: Column the value belongs to
        value: Value as delivered by the database driver
        row: 1-based row offset for error reporting

    Returns:
        The value, with UTF-8 bytes of text columns decoded to str

    Raises:
        ScanError: If the value cannot be read as the column's native type
    """
    if value is None:
        return None

    logical_type = descriptor.logical_type

    if logical_type.is_integer:
        bounds = integer_bounds(descriptor.native_type)
        if not _is_int(value) or (bounds and not bounds[0] <= value <= bounds[1]):
            raise ScanError(
                f"Cannot read {value!r} as {descriptor.native_type}",
                column=descriptor.name,
                row=row,
            )
        return value

    if logical_type is LogicalType.FLOAT:
        if not (isinstance(value, float) or _is_int(value)):
            raise ScanError(
                f"Cannot read {value!r} as {descriptor.native_type}",
                column=descriptor.name,
                row=row,
            )
        return float(value)

    if logical_type is LogicalType.TEXT:
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ScanError(
                    f"Cannot read value as UTF-8 text: {e}", column=descriptor.name, row=row
                ) from e
        if not isinstance(value, str):
            raise ScanError(
                f"Cannot read {value!r} as {descriptor.native_type}",
                column=descriptor.name,
                row=row,
            )
        return value

    if logical_type is LogicalType.TIMESTAMP:
        if not isinstance(value, datetime):
            raise ScanError(
                f"Cannot read {value!r} as {descriptor.native_type}",
                column=descriptor.name,
                row=row,
            )
        return value

    return value
