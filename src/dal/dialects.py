"""SQL dialect strategies for the query builder and identifier sanitizer.

A ``Dialect`` captures every syntactic difference the builder cares about:
identifier quoting, placeholder style, whether writes return rows, and how a
JSON column is compared. Builders receive a dialect object instead of
branching on a provider string at each call site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from dal.errors import UnsupportedDialectError
from dal.settings import DalSettings
from dal.type_normalization import coerce_for_column
from dal.util.env import normalize_provider
from schema import ColumnDef

_ISO_TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


@dataclass(frozen=True)
class Dialect:
    """Base dialect; subclasses override the syntax hooks."""

    name: str = "unspecified"
    quote_char: str = '"'
    returns_rows_on_write: bool = False

    def quote_identifier(self, identifier: str) -> str:
        """Wrap an already-validated identifier in the dialect quote character."""
        return f"{self.quote_char}{identifier}{self.quote_char}"

    def placeholder(self, index: int) -> str:
        """Return the placeholder for the ``index``-th (1-based) bound value."""
        raise NotImplementedError

    def returning_clause(self) -> str:
        """Return the suffix that makes a write statement yield the affected rows."""
        return " RETURNING *" if self.returns_rows_on_write else ""

    def json_equals(self, column_sql: str, placeholder: str) -> str:
        """Structured JSON equality between a column and a bound JSON document."""
        return f"{column_sql} = {placeholder}"

    def json_text_equals(self, column_sql: str, placeholder: str) -> str:
        """Text equality used when a JSON filter value cannot be parsed."""
        return f"{column_sql} = {placeholder}"

    def normalize_param(self, value: Any, column: Optional[ColumnDef] = None) -> Any:
        """Adjust a bound value to what the driver expects for this dialect."""
        _ = column
        return value


@dataclass(frozen=True)
class PostgresDialect(Dialect):
    """PostgreSQL family: double quotes, ``$n`` placeholders, ``RETURNING *``."""

    name: str = "postgres"
    quote_char: str = '"'
    returns_rows_on_write: bool = True

    def placeholder(self, index: int) -> str:
        """Numbered placeholder ``$n``."""
        return f"${index}"

    def json_equals(self, column_sql: str, placeholder: str) -> str:
        """Compare both sides as ``jsonb``."""
        return f"{column_sql}::jsonb = {placeholder}::jsonb"

    def json_text_equals(self, column_sql: str, placeholder: str) -> str:
        """Compare the column's text rendering."""
        return f"{column_sql}::text = {placeholder}"

    def normalize_param(self, value: Any, column: Optional[ColumnDef] = None) -> Any:
        """Convert string values to the column's Python type; asyncpg binds strictly by type."""
        return coerce_for_column(value, column)


@dataclass(frozen=True)
class MysqlDialect(Dialect):
    """MySQL family: backticks, positional ``?`` placeholders, no RETURNING."""

    name: str = "mysql"
    quote_char: str = "`"
    returns_rows_on_write: bool = False

    def placeholder(self, index: int) -> str:
        """Positional placeholder; the driver binds by textual order."""
        _ = index
        return "?"

    def json_equals(self, column_sql: str, placeholder: str) -> str:
        """Cast the bound document to JSON."""
        return f"{column_sql} = CAST({placeholder} AS JSON)"

    def json_text_equals(self, column_sql: str, placeholder: str) -> str:
        """Compare the column cast to CHAR."""
        return f"CAST({column_sql} AS CHAR) = {placeholder}"

    def normalize_param(self, value: Any, column: Optional[ColumnDef] = None) -> Any:
        """Rewrite ISO-8601 timestamp strings into MySQL DATETIME literals."""
        _ = column
        if isinstance(value, str) and _ISO_TIMESTAMP_PATTERN.match(value):
            return _iso_to_mysql_datetime(value)
        return value


def _iso_to_mysql_datetime(value: str) -> str:
    raw = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return value
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


POSTGRES = PostgresDialect()
MYSQL = MysqlDialect()

_DIALECTS: Dict[str, Dialect] = {
    "postgres": POSTGRES,
    "mysql": MYSQL,
}


def get_dialect(provider: Union[str, Dialect, None]) -> Dialect:
    """Resolve a provider name (or alias) to its dialect; dialects pass through.

    ``None`` or an empty name selects ``DAL_DEFAULT_PROVIDER`` (PostgreSQL when unset).
    """
    if isinstance(provider, Dialect):
        return provider
    if not provider:
        provider = DalSettings.from_env().default_provider
    normalized = normalize_provider(provider)
    dialect = _DIALECTS.get(normalized)
    if dialect is None:
        supported = ", ".join(sorted(_DIALECTS))
        raise UnsupportedDialectError(
            f"Unsupported SQL dialect '{provider}'. Supported: {supported}"
        )
    return dialect
