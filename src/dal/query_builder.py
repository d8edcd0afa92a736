"""Dynamic, fully parameterized SQL for generic table resources.

A ``QueryBuilder`` is bound to one table, its introspected ``TableDef`` and a
dialect. It produces exactly one statement and is then discarded: the
placeholder counter and parameter list are per instance, and the table
definition is only ever read.

Only sanitized identifiers and fixed keywords are concatenated into SQL text.
Every value goes through ``add_param`` and comes back as a placeholder.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from dal.dialects import Dialect, get_dialect
from dal.errors import (
    AmbiguousRelationshipError,
    NoPrimaryKeyError,
    NoRelationshipError,
    NoValidColumnsError,
    UnsafeDeleteError,
    UnsafeUpdateError,
)
from dal.filters import (
    DELETE_OPERATORS,
    JSON_MODE_DOCUMENT,
    JSON_MODE_TEXT,
    SELECT_OPERATORS,
    FilterCondition,
    parse_filters,
)
from dal.identifiers import sanitize_identifier
from dal.settings import strict_relationships_enabled
from dal.type_normalization import logical_type
from schema import ColumnDef, ForeignKeyDef, ReverseForeignKeyDef, TableDef

logger = logging.getLogger(__name__)

RESERVED_QUERY_KEYS = frozenset({"limit", "offset", "orderBy", "orderDir", "order_by", "order_dir"})

_PASSTHROUGH_TYPES = (bool, int, float, Decimal, datetime, date, time, bytes)


@dataclass(frozen=True)
class QueryObject:
    """A statement ready to execute verbatim with its ordered parameter values."""

    text: str
    values: List[Any] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        """Return the ``{"text", "values"}`` shape handed to the HTTP layer."""
        return {"text": self.text, "values": list(self.values)}


@dataclass(frozen=True)
class ListOptions:
    """Sorting and pagination options for list and relationship queries."""

    limit: Any = None
    offset: Any = None
    order_by: Optional[str] = None
    order_dir: Optional[str] = "ASC"

    @classmethod
    def from_query_params(
        cls, params: Optional[Mapping[str, Any]]
    ) -> Tuple[Dict[str, Any], "ListOptions"]:
        """Split a raw query-string mapping into filters and list options."""
        params = params or {}
        filters = {
            key: _first(value) for key, value in params.items() if key not in RESERVED_QUERY_KEYS
        }
        options = cls(
            limit=_first(params.get("limit")),
            offset=_first(params.get("offset")),
            order_by=_first(params.get("orderBy", params.get("order_by"))),
            order_dir=_first(params.get("orderDir", params.get("order_dir"))) or "ASC",
        )
        return filters, options


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _parse_positive_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        parsed = int(value)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed > 0 else None


def _normalize_value(value: Any, column: Optional[ColumnDef] = None) -> Any:
    if value is None or isinstance(value, (str,) + _PASSTHROUGH_TYPES):
        return value
    # Array columns bind native lists; every other column gets a JSON document.
    if (
        isinstance(value, (list, tuple))
        and column is not None
        and logical_type(column.data_type, column.column_type) == "array"
    ):
        return list(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return str(value)


class QueryBuilder:
    """Build SELECT / INSERT / UPDATE / DELETE statements for one table."""

    def __init__(
        self,
        table_name: str,
        table: TableDef,
        dialect: Union[str, Dialect, None] = "postgres",
        strict_relationships: Optional[bool] = None,
    ) -> None:
        """Bind the builder to a table definition and dialect."""
        self.table_name = table_name
        self.table = table
        self.dialect = get_dialect(dialect)
        self.strict_relationships = (
            strict_relationships_enabled()
            if strict_relationships is None
            else strict_relationships
        )
        self._params: List[Any] = []
        self._param_counter = 1

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def get_params(self) -> List[Any]:
        """Return the values bound so far, in placeholder order."""
        return self._params

    def add_param(self, value: Any, column: Optional[ColumnDef] = None) -> str:
        """Bind ``value`` and return its placeholder."""
        bound = self.dialect.normalize_param(_normalize_value(value, column), column)
        self._params.append(bound)
        placeholder = self.dialect.placeholder(self._param_counter)
        self._param_counter += 1
        return placeholder

    def sanitize_identifier(self, identifier: str) -> str:
        """Validate and quote an identifier for this builder's dialect."""
        return sanitize_identifier(identifier, self.dialect)

    def is_valid_column(self, column_name: Any) -> bool:
        """Return True when ``column_name`` is a column of the bound table."""
        return isinstance(column_name, str) and self.table.has_column(column_name)

    def _query(self, text: str) -> QueryObject:
        logger.debug(
            "query_built dialect=%s table=%s params=%d",
            self.dialect.name,
            self.table_name,
            len(self._params),
        )
        return QueryObject(text=text, values=list(self._params))

    def _primary_key(self) -> str:
        if not self.table.primary_keys:
            raise NoPrimaryKeyError(f"No primary key found for table {self.table_name}")
        if len(self.table.primary_keys) > 1:
            logger.debug(
                "composite_primary_key table=%s using=%s",
                self.table_name,
                self.table.primary_keys[0],
            )
        return self.table.primary_keys[0]

    def _where_terms(self, conditions: List[FilterCondition]) -> List[str]:
        terms: List[str] = []
        for condition in conditions:
            column_sql = self.sanitize_identifier(condition.column)
            if condition.json_mode == JSON_MODE_DOCUMENT:
                terms.append(self.dialect.json_equals(column_sql, self.add_param(condition.value)))
            elif condition.json_mode == JSON_MODE_TEXT:
                terms.append(
                    self.dialect.json_text_equals(column_sql, self.add_param(condition.value))
                )
            else:
                placeholder = self.add_param(
                    condition.value, self.table.get_column(condition.column)
                )
                terms.append(f"{column_sql} {condition.operator} {placeholder}")
        return terms

    def _order_and_page(
        self,
        options: ListOptions,
        order_table: Optional[TableDef],
    ) -> str:
        clause = ""
        order_by = options.order_by
        if order_by:
            valid = (
                order_table.has_column(order_by) if order_table is not None else True
            ) and isinstance(order_by, str)
            if valid:
                direction = "DESC" if str(options.order_dir or "").upper() == "DESC" else "ASC"
                clause += f" ORDER BY {self.sanitize_identifier(order_by)} {direction}"

        limit = _parse_positive_int(options.limit)
        if limit is not None:
            clause += f" LIMIT {self.add_param(limit)}"

        offset = _parse_positive_int(options.offset)
        if offset is not None:
            clause += f" OFFSET {self.add_param(offset)}"
        return clause

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def build_select(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        limit: Any = None,
        offset: Any = None,
        order_by: Optional[str] = None,
        order_dir: Optional[str] = "ASC",
    ) -> QueryObject:
        """SELECT rows matching ``filters`` with optional sort and pagination."""
        query = f"SELECT * FROM {self.sanitize_identifier(self.table_name)}"

        terms = self._where_terms(parse_filters(filters, self.table, SELECT_OPERATORS))
        if terms:
            query += f" WHERE {' AND '.join(terms)}"

        options = ListOptions(limit=limit, offset=offset, order_by=order_by, order_dir=order_dir)
        query += self._order_and_page(options, self.table)
        return self._query(query)

    def build_select_by_id(self, record_id: Any) -> QueryObject:
        """SELECT the row whose first primary-key column equals ``record_id``."""
        primary_key = self._primary_key()
        placeholder = self.add_param(record_id, self.table.get_column(primary_key))
        query = (
            f"SELECT * FROM {self.sanitize_identifier(self.table_name)} "
            f"WHERE {self.sanitize_identifier(primary_key)} = {placeholder}"
        )
        return self._query(query)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def build_insert(self, data: Optional[Mapping[str, Any]]) -> QueryObject:
        """INSERT the payload's valid columns; PostgreSQL returns the inserted row."""
        columns: List[str] = []
        placeholders: List[str] = []
        for column, value in (data or {}).items():
            if not self.is_valid_column(column):
                continue
            columns.append(self.sanitize_identifier(column))
            placeholders.append(self.add_param(value, self.table.get_column(column)))

        if not columns:
            raise NoValidColumnsError("No valid columns to insert")

        query = (
            f"INSERT INTO {self.sanitize_identifier(self.table_name)} "
            f"({', '.join(columns)}) VALUES ({', '.join(placeholders)})"
        )
        return self._query(query + self.dialect.returning_clause())

    def build_update(self, record_id: Any, data: Optional[Mapping[str, Any]]) -> QueryObject:
        """UPDATE one row by primary key; the key column itself is never updated."""
        primary_key = self._primary_key()
        set_clauses: List[str] = []
        for column, value in (data or {}).items():
            if not self.is_valid_column(column) or column == primary_key:
                continue
            placeholder = self.add_param(value, self.table.get_column(column))
            set_clauses.append(f"{self.sanitize_identifier(column)} = {placeholder}")

        if not set_clauses:
            raise NoValidColumnsError("No valid columns to update")

        key_placeholder = self.add_param(record_id, self.table.get_column(primary_key))
        query = (
            f"UPDATE {self.sanitize_identifier(self.table_name)} SET {', '.join(set_clauses)} "
            f"WHERE {self.sanitize_identifier(primary_key)} = {key_placeholder}"
        )
        return self._query(query + self.dialect.returning_clause())

    def build_update_where(
        self,
        filters: Optional[Mapping[str, Any]],
        data: Optional[Mapping[str, Any]],
    ) -> QueryObject:
        """UPDATE every row matching ``filters``; refuses to run without a WHERE term.

        SET values are bound before WHERE values. The primary-key column is
        never updated.
        """
        primary_keys = set(self.table.primary_keys)
        set_clauses: List[str] = []
        for column, value in (data or {}).items():
            if not self.is_valid_column(column) or column in primary_keys:
                continue
            placeholder = self.add_param(value, self.table.get_column(column))
            set_clauses.append(f"{self.sanitize_identifier(column)} = {placeholder}")

        if not set_clauses:
            raise NoValidColumnsError("No valid columns to update")

        terms = self._where_terms(parse_filters(filters, self.table, DELETE_OPERATORS))
        if not terms:
            raise UnsafeUpdateError("Refusing to run UPDATE without filters")

        query = (
            f"UPDATE {self.sanitize_identifier(self.table_name)} SET {', '.join(set_clauses)} "
            f"WHERE {' AND '.join(terms)}"
        )
        return self._query(query + self.dialect.returning_clause())

    def build_delete(self, record_id: Any) -> QueryObject:
        """DELETE exactly the row matched by primary key."""
        primary_key = self._primary_key()
        placeholder = self.add_param(record_id, self.table.get_column(primary_key))
        query = (
            f"DELETE FROM {self.sanitize_identifier(self.table_name)} "
            f"WHERE {self.sanitize_identifier(primary_key)} = {placeholder}"
        )
        return self._query(query + self.dialect.returning_clause())

    def build_delete_where(self, filters: Optional[Mapping[str, Any]] = None) -> QueryObject:
        """DELETE rows matching ``filters``; refuses to run without at least one term."""
        terms = self._where_terms(parse_filters(filters, self.table, DELETE_OPERATORS))
        if not terms:
            raise UnsafeDeleteError("Refusing to run DELETE without filters")

        query = (
            f"DELETE FROM {self.sanitize_identifier(self.table_name)} "
            f"WHERE {' AND '.join(terms)}"
        )
        return self._query(query + self.dialect.returning_clause())

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def build_related_query(
        self,
        related_table: str,
        record_id: Any,
        fk_column: Optional[str] = None,
        options: Optional[ListOptions] = None,
        related_table_def: Optional[TableDef] = None,
    ) -> QueryObject:
        """SELECT rows of ``related_table`` connected to this table's row ``record_id``.

        Resolution order:
            1. ``fk_column`` is an FK of this table pointing at ``related_table``.
            2. ``fk_column`` names a reverse FK coming from ``related_table``.
            3. Without ``fk_column``: the first FK to ``related_table``, else the
               first reverse FK from it.

        Raises:
            NoRelationshipError: Nothing connects the two tables (or the
                explicit column matches no relationship).
            AmbiguousRelationshipError: Step 3 has several candidates and
                strict mode is on.
        """
        options = options or ListOptions()
        self.sanitize_identifier(related_table)

        if fk_column is not None:
            fk = next(
                (
                    candidate
                    for candidate in self.table.foreign_keys
                    if candidate.foreign_table_name == related_table
                    and candidate.column_name == fk_column
                ),
                None,
            )
            if fk is not None:
                return self._belongs_to_by_column(fk, record_id, options, related_table_def)

            reverse_fk = next(
                (
                    candidate
                    for candidate in self.table.reverse_foreign_keys
                    if candidate.referencing_table == related_table
                    and fk_column in (candidate.referencing_column, candidate.referenced_column)
                ),
                None,
            )
            if reverse_fk is not None:
                return self._has_many(reverse_fk, record_id, options, related_table_def)

            raise NoRelationshipError(
                f"No relationship found between {self.table_name} and {related_table} "
                f"via column {fk_column}"
            )

        fks = [fk for fk in self.table.foreign_keys if fk.foreign_table_name == related_table]
        reverse_fks = [
            rfk for rfk in self.table.reverse_foreign_keys if rfk.referencing_table == related_table
        ]
        self._check_ambiguity(related_table, fks, reverse_fks)

        if fks:
            return self._belongs_to_by_primary_key(fks[0], record_id, options, related_table_def)
        if reverse_fks:
            return self._has_many(reverse_fks[0], record_id, options, related_table_def)

        raise NoRelationshipError(
            f"No relationship found between {self.table_name} and {related_table}"
        )

    def _check_ambiguity(
        self,
        related_table: str,
        fks: List[ForeignKeyDef],
        reverse_fks: List[ReverseForeignKeyDef],
    ) -> None:
        candidates = [f"{self.table_name}.{fk.column_name} (belongs-to)" for fk in fks] + [
            f"{rfk.referencing_table}.{rfk.referencing_column} (has-many)" for rfk in reverse_fks
        ]
        if len(candidates) <= 1:
            return
        if self.strict_relationships:
            raise AmbiguousRelationshipError(
                f"Ambiguous relationship between {self.table_name} and {related_table}: "
                f"{', '.join(candidates)}. Pass an explicit foreign key column.",
                candidates=candidates,
            )
        logger.warning(
            "ambiguous_relationship table=%s related=%s candidates=%s using=%s",
            self.table_name,
            related_table,
            ",".join(candidates),
            candidates[0],
        )

    def _belongs_to_by_column(
        self,
        fk: ForeignKeyDef,
        record_id: Any,
        options: ListOptions,
        related_table_def: Optional[TableDef],
    ) -> QueryObject:
        fk_sql = self.sanitize_identifier(fk.column_name)
        placeholder = self.add_param(record_id, self.table.get_column(fk.column_name))
        subquery = (
            f"SELECT {fk_sql} FROM {self.sanitize_identifier(self.table_name)} "
            f"WHERE {fk_sql} = {placeholder}"
        )
        query = (
            f"SELECT * FROM {self.sanitize_identifier(fk.foreign_table_name)} "
            f"WHERE {self.sanitize_identifier(fk.foreign_column_name)} IN ({subquery})"
        )
        return self._query(query + self._order_and_page(options, related_table_def))

    def _belongs_to_by_primary_key(
        self,
        fk: ForeignKeyDef,
        record_id: Any,
        options: ListOptions,
        related_table_def: Optional[TableDef],
    ) -> QueryObject:
        primary_key = self._primary_key()
        placeholder = self.add_param(record_id, self.table.get_column(primary_key))
        subquery = (
            f"SELECT {self.sanitize_identifier(fk.column_name)} "
            f"FROM {self.sanitize_identifier(self.table_name)} "
            f"WHERE {self.sanitize_identifier(primary_key)} = {placeholder}"
        )
        query = (
            f"SELECT * FROM {self.sanitize_identifier(fk.foreign_table_name)} "
            f"WHERE {self.sanitize_identifier(fk.foreign_column_name)} = ({subquery})"
        )
        return self._query(query + self._order_and_page(options, related_table_def))

    def _has_many(
        self,
        reverse_fk: ReverseForeignKeyDef,
        record_id: Any,
        options: ListOptions,
        related_table_def: Optional[TableDef],
    ) -> QueryObject:
        referencing_column = (
            related_table_def.get_column(reverse_fk.referencing_column)
            if related_table_def is not None
            else self.table.get_column(reverse_fk.referenced_column)
        )
        placeholder = self.add_param(record_id, referencing_column)
        query = (
            f"SELECT * FROM {self.sanitize_identifier(reverse_fk.referencing_table)} "
            f"WHERE {self.sanitize_identifier(reverse_fk.referencing_column)} = {placeholder}"
        )
        return self._query(query + self._order_and_page(options, related_table_def))
