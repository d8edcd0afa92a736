import re
from typing import List, Optional

from common.interfaces.query_executor import QueryExecutor
from dal.introspection import CatalogSchemaIntrospector, optional_int, row_value
from schema import ColumnDef, ForeignKeyDef, ReverseForeignKeyDef

_ENUM_TYPE_PATTERN = re.compile(r"^enum\((.*)\)$", re.IGNORECASE | re.DOTALL)
_ENUM_OPTION_PATTERN = re.compile(r"'((?:[^']|'')*)'")


class MysqlSchemaIntrospector(CatalogSchemaIntrospector):
    """MySQL implementation of SchemaIntrospector using information_schema.

    The catalog is read for ``database`` when given, otherwise for the
    connection's current ``DATABASE()``. MySQL 8 returns catalog columns in
    upper case unless aliased, so rows are read through ``row_value``.
    """

    provider = "mysql"

    def __init__(self, executor: QueryExecutor, database: Optional[str] = None) -> None:
        """Introspect ``database`` or the connection default."""
        super().__init__(executor)
        self.database = database

    async def list_table_names(self) -> List[str]:
        """List all base table names in the database."""
        query = """
            SELECT table_name AS table_name
            FROM information_schema.tables
            WHERE table_schema = COALESCE(?, DATABASE())
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await self._executor.fetch(query, self.database)
        return [row_value(row, "table_name") for row in rows]

    async def get_columns(self, table_name: str) -> List[ColumnDef]:
        """Columns in ordinal order with enum options and auto-increment flags."""
        query = """
            SELECT
                column_name AS column_name,
                data_type AS data_type,
                is_nullable AS is_nullable,
                column_default AS column_default,
                character_maximum_length AS character_maximum_length,
                numeric_precision AS numeric_precision,
                numeric_scale AS numeric_scale,
                column_type AS column_type,
                extra AS extra
            FROM information_schema.columns
            WHERE table_schema = COALESCE(?, DATABASE())
            AND table_name = ?
            ORDER BY ordinal_position
        """
        rows = await self._executor.fetch(query, self.database, table_name)

        columns = []
        for row in rows:
            data_type = row_value(row, "data_type") or ""
            column_type = row_value(row, "column_type")
            enum_options = None
            if data_type.lower() == "enum":
                enum_options = parse_enum_options(column_type)
            columns.append(
                ColumnDef(
                    name=row_value(row, "column_name"),
                    data_type=data_type,
                    is_nullable=(row_value(row, "is_nullable") == "YES"),
                    default=row_value(row, "column_default"),
                    max_length=optional_int(row_value(row, "character_maximum_length")),
                    precision=optional_int(row_value(row, "numeric_precision")),
                    scale=optional_int(row_value(row, "numeric_scale")),
                    enum_options=enum_options,
                    is_auto_increment="auto_increment" in str(row_value(row, "extra") or "").lower(),
                    column_type=column_type,
                )
            )
        return columns

    async def get_primary_keys(self, table_name: str) -> List[str]:
        """Primary-key columns in key order."""
        query = """
            SELECT k.column_name AS column_name
            FROM information_schema.table_constraints t
            JOIN information_schema.key_column_usage k
                ON k.constraint_name = t.constraint_name
                AND k.table_schema = t.table_schema
                AND k.table_name = t.table_name
            WHERE t.constraint_type = 'PRIMARY KEY'
            AND t.table_schema = COALESCE(?, DATABASE())
            AND t.table_name = ?
            ORDER BY k.ordinal_position
        """
        rows = await self._executor.fetch(query, self.database, table_name)
        return [row_value(row, "column_name") for row in rows]

    async def get_foreign_keys(self, table_name: str) -> List[ForeignKeyDef]:
        """Outgoing foreign keys of the table."""
        query = """
            SELECT
                k.column_name AS column_name,
                k.referenced_table_name AS foreign_table_name,
                k.referenced_column_name AS foreign_column_name,
                k.constraint_name AS constraint_name
            FROM information_schema.key_column_usage k
            WHERE k.table_schema = COALESCE(?, DATABASE())
            AND k.table_name = ?
            AND k.referenced_table_name IS NOT NULL
            ORDER BY k.ordinal_position
        """
        rows = await self._executor.fetch(query, self.database, table_name)
        return [
            ForeignKeyDef(
                column_name=row_value(row, "column_name"),
                foreign_table_name=row_value(row, "foreign_table_name"),
                foreign_column_name=row_value(row, "foreign_column_name"),
                constraint_name=row_value(row, "constraint_name"),
            )
            for row in rows
        ]

    async def get_reverse_foreign_keys(self, table_name: str) -> List[ReverseForeignKeyDef]:
        """Foreign keys in other tables that point at this table."""
        query = """
            SELECT
                k.table_name AS referencing_table,
                k.column_name AS referencing_column,
                k.referenced_column_name AS referenced_column,
                k.constraint_name AS constraint_name
            FROM information_schema.key_column_usage k
            WHERE k.table_schema = COALESCE(?, DATABASE())
            AND k.referenced_table_name = ?
            ORDER BY k.table_name, k.ordinal_position
        """
        rows = await self._executor.fetch(query, self.database, table_name)
        return [
            ReverseForeignKeyDef(
                referencing_table=row_value(row, "referencing_table"),
                referencing_column=row_value(row, "referencing_column"),
                referenced_column=row_value(row, "referenced_column"),
                constraint_name=row_value(row, "constraint_name"),
            )
            for row in rows
        ]


def parse_enum_options(column_type: Optional[str]) -> Optional[List[str]]:
    """Parse ``enum('a','b')`` into its options in declaration order."""
    match = _ENUM_TYPE_PATTERN.match((column_type or "").strip())
    if not match:
        return None
    return [option.replace("''", "'") for option in _ENUM_OPTION_PATTERN.findall(match.group(1))]
