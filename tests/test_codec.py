"""Tests for value conversion between typed and text form."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from flatbridge.codec import ZERO_TIME, decode, encode, scan, zero_value
from flatbridge.errors import ConversionError, ScanError, TransferError
from flatbridge.type_detection import ColumnDescriptor, LogicalType


class TestEncode:
    """Test suite for encode function."""

    def test_integers(self) -> None:
        """Test integers render in base 10 with a minus sign for negatives."""
        assert encode(LogicalType.SIGNED_INT, -5) == "-5"
        assert encode(LogicalType.UNSIGNED_INT, 255) == "255"
        assert encode(LogicalType.UNSIGNED_INT, 2**64 - 1) == "18446744073709551615"

    def test_floats_use_shortest_positional_form(self) -> None:
        """Test floats render without exponent and without padding zeros."""
        assert encode(LogicalType.FLOAT, 10.5) == "10.5"
        assert encode(LogicalType.FLOAT, 0.1) == "0.1"
        assert encode(LogicalType.FLOAT, 1.0) == "1.0"
        assert encode(LogicalType.FLOAT, 1e-7) == "0.0000001"

    def test_float32_precision(self) -> None:
        """Test Float32 columns render the shortest digits at single precision."""
        assert encode(LogicalType.FLOAT, 0.1, "Float32") == "0.1"

    def test_integer_value_in_float_column(self) -> None:
        """Test an int delivered for a float column renders as a float."""
        assert encode(LogicalType.FLOAT, 3) == "3.0"

    def test_timestamps(self) -> None:
        """Test timestamps render as YYYY-MM-DD HH:MM:SS in UTC."""
        value = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
        assert encode(LogicalType.TIMESTAMP, value) == "2024-01-15 10:30:00"

    def test_aware_timestamp_converted_to_utc(self) -> None:
        """Test timestamps in other zones are shifted to UTC."""
        value = datetime(2024, 1, 15, 12, 30, 0, tzinfo=timezone(timedelta(hours=2)))
        assert encode(LogicalType.TIMESTAMP, value) == "2024-01-15 10:30:00"

    def test_naive_timestamp(self) -> None:
        """Test naive timestamps are written as-is."""
        assert encode(LogicalType.TIMESTAMP, datetime(2024, 1, 15, 10, 30)) == "2024-01-15 10:30:00"

    def test_text(self) -> None:
        """Test text passes through and bytes are decoded."""
        assert encode(LogicalType.TEXT, "Alice") == "Alice"
        assert encode(LogicalType.TEXT, "Zoë".encode()) == "Zoë"

    def test_null_is_empty(self) -> None:
        """Test NULL renders as an empty field for every type."""
        for logical_type in LogicalType:
            assert encode(logical_type, None) == ""

    def test_unknown_uses_default_rendering(self) -> None:
        """Test unknown types fall back to str()."""
        assert encode(LogicalType.UNKNOWN, Decimal("1.50")) == "1.50"

    def test_type_mismatch(self) -> None:
        """Test values that don't match the logical type are rejected."""
        with pytest.raises(ConversionError):
            encode(LogicalType.SIGNED_INT, "5")
        with pytest.raises(ConversionError):
            encode(LogicalType.SIGNED_INT, True)
        with pytest.raises(ConversionError):
            encode(LogicalType.TIMESTAMP, "2024-01-15 10:30:00")
        with pytest.raises(ConversionError):
            encode(LogicalType.TEXT, 5)

    def test_invalid_utf8_bytes(self) -> None:
        """Test undecodable bytes are a conversion error."""
        with pytest.raises(ConversionError) as exc_info:
            encode(LogicalType.TEXT, b"\xff\xfe", column="name", row=2)
        assert exc_info.value.column == "name"
        assert exc_info.value.row == 2


class TestDecode:
    """Test suite for decode function."""

    def test_integers(self) -> None:
        """Test integer parsing with optional sign."""
        assert decode(LogicalType.SIGNED_INT, "-42", column="a") == -42
        assert decode(LogicalType.SIGNED_INT, "+7", column="a") == 7
        assert decode(LogicalType.UNSIGNED_INT, "18446744073709551615", column="a") == 2**64 - 1

    def test_empty_fields_become_zero_values(self) -> None:
        """Test empty text yields the zero value of each type."""
        assert decode(LogicalType.SIGNED_INT, "", column="a") == 0
        assert decode(LogicalType.UNSIGNED_INT, "", column="a") == 0
        assert decode(LogicalType.FLOAT, "", column="a") == 0.0
        assert decode(LogicalType.TIMESTAMP, "", column="a") == ZERO_TIME
        assert decode(LogicalType.TEXT, "", column="a") == ""

    def test_negative_unsigned_rejected(self) -> None:
        """Test a minus sign is invalid for unsigned columns."""
        with pytest.raises(ConversionError) as exc_info:
            decode(LogicalType.UNSIGNED_INT, "-1", column="id", row=3)
        assert exc_info.value.column == "id"
        assert exc_info.value.row == 3
        assert "row 3" in str(exc_info.value)
        assert "column 'id'" in str(exc_info.value)

    def test_range_checked_against_native_type(self) -> None:
        """Test values beyond the native width are rejected."""
        assert decode(LogicalType.UNSIGNED_INT, "255", column="a", native_type="UInt8") == 255
        with pytest.raises(ConversionError, match="out of range"):
            decode(LogicalType.UNSIGNED_INT, "256", column="a", native_type="UInt8")
        with pytest.raises(ConversionError, match="out of range"):
            decode(LogicalType.SIGNED_INT, "9223372036854775808", column="a")

    def test_malformed_integer(self) -> None:
        """Test non-integer text is rejected."""
        for text in ["1.5", "abc", " 1", "1_000"]:
            with pytest.raises(ConversionError):
                decode(LogicalType.SIGNED_INT, text, column="a")

    def test_floats(self) -> None:
        """Test float parsing."""
        assert decode(LogicalType.FLOAT, "3.25", column="a") == 3.25
        assert decode(LogicalType.FLOAT, "-1e3", column="a") == -1000.0
        for text in ["abc", " 3.25", "1_000.5"]:
            with pytest.raises(ConversionError):
                decode(LogicalType.FLOAT, text, column="a")

    def test_timestamps(self) -> None:
        """Test timestamps parse as UTC."""
        value = decode(LogicalType.TIMESTAMP, "2024-01-15 10:30:00", column="a")
        assert value == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_timestamp_layout_is_strict(self) -> None:
        """Test other layouts are rejected."""
        for text in ["2024-01-15T10:30:00", "2024-01-15", "15/01/2024 10:30:00"]:
            with pytest.raises(ConversionError, match="YYYY-MM-DD HH:MM:SS"):
                decode(LogicalType.TIMESTAMP, text, column="a")

    def test_text_and_unknown_pass_through(self) -> None:
        """Test text is taken verbatim."""
        assert decode(LogicalType.TEXT, " spaced ", column="a") == " spaced "
        assert decode(LogicalType.UNKNOWN, "1.50", column="a") == "1.50"

    def test_decode_inverts_encode(self) -> None:
        """Test decoding an encoded value gives the value back."""
        value = datetime(2023, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        assert decode(LogicalType.TIMESTAMP, encode(LogicalType.TIMESTAMP, value), column="a") == value
        assert decode(LogicalType.FLOAT, encode(LogicalType.FLOAT, 0.3), column="a") == 0.3

    @pytest.mark.parametrize(
        ("logical_type", "text", "native_type"),
        [
            (LogicalType.SIGNED_INT, "-9223372036854775808", "Int64"),
            (LogicalType.SIGNED_INT, "9223372036854775807", "Int64"),
            (LogicalType.SIGNED_INT, "-128", "Int8"),
            (LogicalType.UNSIGNED_INT, "18446744073709551615", "UInt64"),
            (LogicalType.UNSIGNED_INT, "0", "UInt64"),
            (LogicalType.FLOAT, "0.1", "Float64"),
            (LogicalType.FLOAT, "-3.25", "Float64"),
            (LogicalType.FLOAT, "88.0", "Float64"),
            (LogicalType.FLOAT, "0.0000001", "Float64"),
            (LogicalType.FLOAT, "0.1", "Float32"),
        ],
    )
    def test_boundary_text_survives_decode_and_encode(
        self, logical_type: LogicalType, text: str, native_type: str
    ) -> None:
        """Test boundary values come back as the same text after decode then encode."""
        value = decode(logical_type, text, column="a", native_type=native_type)
        assert encode(logical_type, value, native_type) == text

    def test_zero_value(self) -> None:
        """Test zero values per type."""
        assert zero_value(LogicalType.FLOAT) == 0.0
        assert zero_value(LogicalType.TIMESTAMP) == datetime(1970, 1, 1, tzinfo=timezone.utc)


class TestScan:
    """Test suite for scan function."""

    def test_accepts_matching_values(self) -> None:
        """Test values of the native type pass."""
        assert scan(ColumnDescriptor.from_native("a", "UInt8"), 200) == 200
        assert scan(ColumnDescriptor.from_native("a", "Float64"), 1) == 1.0
        assert scan(ColumnDescriptor.from_native("a", "String"), "x") == "x"
        now = datetime(2024, 1, 1)
        assert scan(ColumnDescriptor.from_native("a", "DateTime"), now) is now

    def test_decodes_bytes_for_text(self) -> None:
        """Test FixedString bytes are read as UTF-8 text."""
        assert scan(ColumnDescriptor.from_native("a", "FixedString(3)"), b"abc") == "abc"

    def test_null_passes(self) -> None:
        """Test NULL from a Nullable column is kept."""
        assert scan(ColumnDescriptor.from_native("a", "Nullable(Int32)"), None) is None

    def test_rejects_mismatched_values(self) -> None:
        """Test values that cannot be read as the native type."""
        with pytest.raises(ScanError) as exc_info:
            scan(ColumnDescriptor.from_native("small", "UInt8"), 300, row=4)
        assert exc_info.value.column == "small"
        assert exc_info.value.row == 4

        with pytest.raises(ScanError):
            scan(ColumnDescriptor.from_native("a", "String"), 5)
        with pytest.raises(ScanError):
            scan(ColumnDescriptor.from_native("a", "DateTime"), "2024-01-01")
        with pytest.raises(ScanError):
            scan(ColumnDescriptor.from_native("a", "String"), b"\xff")

    def test_unknown_type_passes_through(self) -> None:
        """Test values of unknown types are not checked."""
        value = Decimal("1.50")
        assert scan(ColumnDescriptor.from_native("a", "Decimal(10, 2)"), value) is value


class TestErrors:
    """Test suite for error formatting."""

    def test_kind_and_location(self) -> None:
        """Test errors carry their kind and render their location."""
        error = ConversionError("bad value", column="id", row=2)
        assert isinstance(error, TransferError)
        assert error.kind == "ConversionError"
        assert str(error) == "bad value (row 2, column 'id')"

    def test_without_location(self) -> None:
        """Test errors without a location render the message only."""
        assert str(ScanError("broken")) == "broken"
