"""Logical type catalog and column type inference."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


class LogicalType(Enum):
    """Closed set of value kinds every native column type is classified into."""

    SIGNED_INT = "SignedInt"
    UNSIGNED_INT = "UnsignedInt"
    FLOAT = "Float"
    TEXT = "Text"
    TIMESTAMP = "Timestamp"
    UNKNOWN = "Unknown"

    @property
    def is_integer(self) -> bool:
        return self in (LogicalType.SIGNED_INT, LogicalType.UNSIGNED_INT)

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self is LogicalType.FLOAT


# Native ClickHouse type name -> (logical type, bit width)
NATIVE_TYPES: dict[str, tuple[LogicalType, int | None]] = {
    "UInt8": (LogicalType.UNSIGNED_INT, 8),
    "UInt16": (LogicalType.UNSIGNED_INT, 16),
    "UInt32": (LogicalType.UNSIGNED_INT, 32),
    "UInt64": (LogicalType.UNSIGNED_INT, 64),
    "Int8": (LogicalType.SIGNED_INT, 8),
    "Int16": (LogicalType.SIGNED_INT, 16),
    "Int32": (LogicalType.SIGNED_INT, 32),
    "Int64": (LogicalType.SIGNED_INT, 64),
    "Float32": (LogicalType.FLOAT, 32),
    "Float64": (LogicalType.FLOAT, 64),
    "String": (LogicalType.TEXT, None),
    "DateTime": (LogicalType.TIMESTAMP, None),
}

_WRAPPER_PATTERN = re.compile(r"^(Nullable|LowCardinality)\((.*)\)$")
_FIXED_STRING_PATTERN = re.compile(r"^FixedString\(\s*\d+\s*\)$")
_DATETIME_TZ_PATTERN = re.compile(r"^DateTime\(\s*'[^']*'\s*\)$")


def base_type(native_type: str) -> str:
    """Strip ``Nullable(...)`` and ``LowCardinality(...)`` wrappers from a type name.

    Args:
        native_type: Native type name as reported by the database

    Returns:
        The innermost type name

    Examples:
        >>> base_type("LowCardinality(Nullable(String))")
        'String'
    """
    name = (native_type or "").strip()
    match = _WRAPPER_PATTERN.match(name)
    while match:
        name = match.group(2).strip()
        match = _WRAPPER_PATTERN.match(name)
    return name


def classify(native_type: str) -> LogicalType:
    """Map a native database type name to its logical type.

    Total function: names outside the catalog map to ``LogicalType.UNKNOWN``.

    Args:
        native_type: Native type name (e.g. 'UInt32', 'Nullable(Float64)')

    Returns:
        The logical type for the name

    Examples:
        >>> classify("UInt8")
        <LogicalType.UNSIGNED_INT: 'UnsignedInt'>
        >>> classify("Decimal(10, 2)")
        <LogicalType.UNKNOWN: 'Unknown'>
    """
    name = base_type(native_type)

    if name in NATIVE_TYPES:
        return NATIVE_TYPES[name][0]
    if _FIXED_STRING_PATTERN.match(name):
        return LogicalType.TEXT
    if _DATETIME_TZ_PATTERN.match(name):
        return LogicalType.TIMESTAMP

    return LogicalType.UNKNOWN


def integer_bounds(native_type: str) -> tuple[int, int] | None:
    """Return the inclusive value range of an integer native type.

    Args:
        native_type: Native type name

    Returns:
        (min, max) tuple, or None if the type is not a catalogued integer
    """
    entry = NATIVE_TYPES.get(base_type(native_type))
    if entry is None:
        return None

    logical_type, bits = entry
    if bits is None or not logical_type.is_integer:
        return None
    if logical_type is LogicalType.UNSIGNED_INT:
        return 0, 2**bits - 1
    return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1


def float_width(native_type: str) -> int | None:
    """Return 32 or 64 for float native types, None otherwise."""
    entry = NATIVE_TYPES.get(base_type(native_type))
    if entry is None or entry[0] is not LogicalType.FLOAT:
        return None
    return entry[1]


@dataclass(frozen=True)
class ColumnDescriptor:
    """A named column with its native and logical type."""

    name: str
    native_type: str
    logical_type: LogicalType

    @classmethod
    def from_native(cls, name: str, native_type: str) -> ColumnDescriptor:
        """Build a descriptor, classifying the native type."""
        return cls(name=name, native_type=native_type, logical_type=classify(native_type))

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "type": self.native_type,
            "logicalType": self.logical_type.value,
        }


def text_columns(names: list[str]) -> list[ColumnDescriptor]:
    """Describe columns that carry no type information (plain text)."""
    return [ColumnDescriptor.from_native(name, "String") for name in names]


def _is_integer(value: str) -> bool:
    """Check if a string represents a signed 64-bit integer."""
    if not re.fullmatch(r"[+-]?\d+", value):
        return False
    return INT64_MIN <= int(value) <= INT64_MAX


def _is_float(value: str) -> bool:
    """Check if a string represents a float."""
    if value != value.strip() or "_" in value:
        return False
    try:
        float(value)
        return True
    except ValueError:
        return False


def _is_datetime(value: str) -> bool:
    """Check if a string matches the timestamp layout (YYYY-MM-DD HH:MM:SS)."""
    try:
        datetime.strptime(value, TIMESTAMP_FORMAT)
        return True
    except ValueError:
        return False


def infer_column_type(value: str) -> str:
    """Infer a native type name from a single sample value.

    Best-effort only; used when no authoritative schema exists.

    Args:
        value: Raw text value from a flat file

    Returns:
        'Int64', 'Float64', 'DateTime' or 'String'
    """
    if not value:
        return "String"

    if _is_integer(value):
        return "Int64"

    if _is_float(value):
        return "Float64"

    if _is_datetime(value):
        return "DateTime"

    return "String"


def infer_columns(header: list[str], first_row: list[str] | None) -> list[ColumnDescriptor]:
    """Infer column descriptors from a header and its first data row.

    Args:
        header: Column names
        first_row: First data row, or None if the file has no data

    Returns:
        One descriptor per header column; columns without a sample are text
    """
    descriptors = []
    for i, name in enumerate(header):
        sample = first_row[i] if first_row is not None and i < len(first_row) else ""
        descriptors.append(ColumnDescriptor.from_native(name, infer_column_type(sample)))
    return descriptors
