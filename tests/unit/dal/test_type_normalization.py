"""Unit tests for logical type families and column-aware value coercion."""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from dal.type_normalization import coerce_for_column, logical_type
from schema import ColumnDef


def test_logical_type_integer_families() -> None:
    """Normalize integer family types."""
    assert logical_type("int4") == "int"
    assert logical_type("integer") == "int"
    assert logical_type("BIGINT") == "bigint"


def test_logical_type_string_families() -> None:
    """Normalize string family types."""
    assert logical_type("varchar(255)") == "string"
    assert logical_type("character varying") == "string"


def test_logical_type_time_json_and_enum() -> None:
    """Normalize temporal, JSON and enum types."""
    assert logical_type("timestamp without time zone") == "timestamp"
    assert logical_type("jsonb") == "json"
    assert logical_type("USER-DEFINED") == "enum"
    assert logical_type("enum", "enum('a','b')") == "enum"


def test_logical_type_mysql_tinyint_bool() -> None:
    """tinyint(1) is MySQL's boolean."""
    assert logical_type("tinyint", "tinyint(1)") == "boolean"
    assert logical_type("tinyint", "tinyint(4)") == "int"


def test_logical_type_passthrough_unknown_type() -> None:
    """Preserve unknown types."""
    assert logical_type("geography") == "geography"
    assert logical_type(None) == "unknown"


@pytest.mark.parametrize(
    "data_type,raw,expected",
    [
        ("integer", "42", 42),
        ("bigint", " 7 ", 7),
        ("double precision", "1.5", 1.5),
        ("numeric", "10.25", Decimal("10.25")),
        ("boolean", "true", True),
        ("boolean", "OFF", False),
        ("date", "2024-03-01", date(2024, 3, 1)),
    ],
)
def test_coerce_for_column_converts_clean_strings(data_type, raw, expected) -> None:
    """String values are converted to the column family's Python type."""
    assert coerce_for_column(raw, ColumnDef(name="c", data_type=data_type)) == expected


def test_coerce_for_column_timestamp_with_zulu_suffix() -> None:
    """Trailing Z is treated as UTC."""
    column = ColumnDef(name="created_at", data_type="timestamp with time zone")
    assert coerce_for_column("2024-03-01T10:30:00Z", column) == datetime(
        2024, 3, 1, 10, 30, tzinfo=timezone.utc
    )


def test_coerce_for_column_leaves_unparseable_values() -> None:
    """Values that do not parse are handed to the database unchanged."""
    column = ColumnDef(name="age", data_type="integer")
    assert coerce_for_column("%4%", column) == "%4%"
    assert coerce_for_column("maybe", ColumnDef(name="flag", data_type="boolean")) == "maybe"


def test_coerce_for_column_ignores_non_strings_and_unknown_columns() -> None:
    """Non-text columns only convert strings; unknown columns are never touched."""
    column = ColumnDef(name="age", data_type="integer")
    assert coerce_for_column(3, column) == 3
    assert coerce_for_column(None, column) is None
    assert coerce_for_column("42", None) == "42"
    assert coerce_for_column("42", ColumnDef(name="name", data_type="text")) == "42"


def test_logical_type_time_and_array() -> None:
    """Time-of-day and array types get their own families."""
    assert logical_type("time without time zone") == "time"
    assert logical_type("time with time zone") == "time"
    assert logical_type("timetz") == "time"
    assert logical_type("ARRAY") == "array"
    assert logical_type("integer[]") == "array"


@pytest.mark.parametrize(
    "data_type,raw,expected",
    [
        ("character varying", 12345, "12345"),
        ("text", 1.5, "1.5"),
        ("character", Decimal("2.50"), "2.50"),
        ("text", True, "true"),
        ("USER-DEFINED", 3, "3"),
    ],
)
def test_coerce_for_column_stringifies_scalars_for_text_columns(data_type, raw, expected) -> None:
    """asyncpg's text encoder only accepts str, so numbers are rendered."""
    assert coerce_for_column(raw, ColumnDef(name="c", data_type=data_type)) == expected


def test_coerce_for_column_parses_time_of_day() -> None:
    """Time columns bind datetime.time values."""
    column = ColumnDef(name="opens_at", data_type="time without time zone")
    assert coerce_for_column("09:00", column) == time(9, 0)
    assert coerce_for_column("09:00:30", column) == time(9, 0, 30)

    with_zone = coerce_for_column("09:00+02:00", ColumnDef(name="t", data_type="timetz"))
    assert with_zone.utcoffset() == timedelta(hours=2)
    assert coerce_for_column("nine", column) == "nine"


def test_coerce_for_column_leaves_lists_for_array_columns() -> None:
    """Array values are not converted."""
    column = ColumnDef(name="tags", data_type="ARRAY", udt_name="_text")
    assert coerce_for_column(["a", "b"], column) == ["a", "b"]
