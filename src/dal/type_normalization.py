from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from schema import ColumnDef

_TRUE_STRINGS = {"true", "t", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "f", "0", "no", "off"}


def logical_type(type_name: Optional[str], column_type: Optional[str] = None) -> str:
    """Map a dialect-native type name onto a small set of logical families."""
    if not type_name:
        return "unknown"

    normalized = type_name.strip().lower()
    full = (column_type or "").strip().lower()
    if normalized.startswith("character varying"):
        return "string"
    if normalized.startswith("timestamp"):
        return "timestamp"
    if normalized.startswith("double precision"):
        return "float"
    if normalized.startswith(("time without", "time with")):
        return "time"
    if normalized == "array" or normalized.endswith("[]"):
        return "array"

    base = re.split(r"[\s(]", normalized, maxsplit=1)[0]

    if normalized.startswith("tinyint(1)") or full.startswith("tinyint(1)"):
        return "boolean"
    if base in {"bool", "boolean"}:
        return "boolean"
    if base in {"int", "integer", "int2", "int4", "smallint", "tinyint", "mediumint", "serial"}:
        return "int"
    if base in {"int8", "bigint", "bigserial"}:
        return "bigint"
    if base in {"float", "float4", "float8", "double", "real"}:
        return "float"
    if base in {"numeric", "decimal"}:
        return "decimal"
    if base in {"varchar", "text", "char", "character", "tinytext", "mediumtext", "longtext"}:
        return "string"
    if base in {"timestamptz", "datetime"}:
        return "timestamp"
    if base == "date":
        return "date"
    if base in {"time", "timetz"}:
        return "time"
    if base in {"json", "jsonb"}:
        return "json"
    if base in {"bytea", "blob", "binary", "varbinary"}:
        return "binary"
    if base in {"enum", "user-defined"}:
        return "enum"

    return normalized


def coerce_for_column(value: Any, column: Optional[ColumnDef]) -> Any:
    """Convert a value into the Python type the column's family expects.

    Numbers and booleans bound to text or enum columns become strings. Other
    conversions only touch strings, and only when they parse cleanly; anything
    else is returned unchanged so the database reports the real type error.
    """
    if column is None:
        return value

    family = logical_type(column.data_type, column.column_type)
    if family in {"string", "enum"} and isinstance(value, (bool, int, float, Decimal)):
        return str(value).lower() if isinstance(value, bool) else str(value)
    if not isinstance(value, str):
        return value

    text = value.strip()
    if family in {"int", "bigint"}:
        try:
            return int(text)
        except ValueError:
            return value
    if family == "float":
        try:
            return float(text)
        except ValueError:
            return value
    if family == "decimal":
        try:
            return Decimal(text)
        except InvalidOperation:
            return value
    if family == "boolean":
        lowered = text.lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return value
    if family == "timestamp":
        parsed = _parse_datetime(text)
        return parsed if parsed is not None else value
    if family == "date":
        try:
            return date.fromisoformat(text)
        except ValueError:
            return value
    if family == "time":
        try:
            return time.fromisoformat(text)
        except ValueError:
            return value
    return value


def _parse_datetime(text: str) -> Optional[datetime]:
    raw = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None
