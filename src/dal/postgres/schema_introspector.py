from typing import Dict, List, Optional

from common.interfaces.query_executor import QueryExecutor
from dal.introspection import CatalogSchemaIntrospector, optional_int
from dal.settings import DalSettings
from schema import ColumnDef, ForeignKeyDef, ReverseForeignKeyDef


class PostgresSchemaIntrospector(CatalogSchemaIntrospector):
    """Postgres implementation of SchemaIntrospector using information_schema and pg_catalog."""

    provider = "postgres"

    def __init__(self, executor: QueryExecutor, schema: Optional[str] = None) -> None:
        """Introspect ``schema`` (default ``DAL_POSTGRES_SCHEMA`` or ``public``)."""
        super().__init__(executor)
        self.schema = schema or DalSettings.from_env().postgres_schema

    async def list_table_names(self) -> List[str]:
        """List all base table names in the schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await self._executor.fetch(query, self.schema)
        return [row["table_name"] for row in rows]

    async def get_columns(self, table_name: str) -> List[ColumnDef]:
        """Columns in ordinal order with enum labels and auto-increment flags."""
        cols_query = """
            SELECT
                column_name,
                data_type,
                is_nullable,
                column_default,
                character_maximum_length,
                numeric_precision,
                numeric_scale,
                udt_schema,
                udt_name
            FROM information_schema.columns
            WHERE table_schema = $1
            AND table_name = $2
            ORDER BY ordinal_position
        """
        col_rows = await self._executor.fetch(cols_query, self.schema, table_name)

        enum_options: Dict[str, List[str]] = {}
        for row in col_rows:
            if row["data_type"] == "USER-DEFINED":
                labels = await self._get_enum_labels(
                    row["udt_name"], row.get("udt_schema") or self.schema
                )
                if labels:
                    enum_options[row["column_name"]] = labels

        auto_increment = await self._get_auto_increment_columns(table_name)

        return [
            ColumnDef(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=(row["is_nullable"] == "YES"),
                default=row.get("column_default"),
                max_length=optional_int(row.get("character_maximum_length")),
                precision=optional_int(row.get("numeric_precision")),
                scale=optional_int(row.get("numeric_scale")),
                enum_options=enum_options.get(row["column_name"]),
                is_auto_increment=row["column_name"] in auto_increment,
                udt_name=row.get("udt_name") if row["data_type"] == "USER-DEFINED" else None,
            )
            for row in col_rows
        ]

    async def _get_enum_labels(self, type_name: Optional[str], type_schema: str) -> List[str]:
        if not type_name:
            return []
        query = """
            SELECT e.enumlabel
            FROM pg_enum e
            JOIN pg_type t ON t.oid = e.enumtypid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typname = $1
            AND n.nspname = $2
            ORDER BY e.enumsortorder
        """
        rows = await self._executor.fetch(query, type_name, type_schema)
        return [row["enumlabel"] for row in rows]

    async def _get_auto_increment_columns(self, table_name: str) -> set:
        query = """
            SELECT a.attname AS column_name
            FROM pg_class c
            JOIN pg_attribute a ON a.attrelid = c.oid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attrdef d ON d.adrelid = c.oid AND d.adnum = a.attnum
            WHERE c.relname = $1
            AND n.nspname = $2
            AND a.attnum > 0
            AND NOT a.attisdropped
            AND (
                a.attidentity IN ('a', 'd')
                OR pg_get_expr(d.adbin, d.adrelid) ILIKE 'nextval%'
            )
        """
        rows = await self._executor.fetch(query, table_name, self.schema)
        return {row["column_name"] for row in rows}

    async def get_primary_keys(self, table_name: str) -> List[str]:
        """Primary-key columns in key order."""
        query = """
            SELECT kcu.column_name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.constraint_schema = kcu.constraint_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
            AND tc.table_name = $1
            AND tc.table_schema = $2
            ORDER BY kcu.ordinal_position
        """
        rows = await self._executor.fetch(query, table_name, self.schema)
        return [row["column_name"] for row in rows]

    async def get_foreign_keys(self, table_name: str) -> List[ForeignKeyDef]:
        """Outgoing foreign keys of the table."""
        query = """
            SELECT
                kcu.column_name,
                ccu.table_name AS foreign_table_name,
                ccu.column_name AS foreign_column_name,
                tc.constraint_name
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
                ON ccu.constraint_name = tc.constraint_name
                AND ccu.table_schema = tc.table_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
            AND tc.table_name = $1
            AND tc.table_schema = $2
            ORDER BY kcu.ordinal_position
        """
        rows = await self._executor.fetch(query, table_name, self.schema)
        return [
            ForeignKeyDef(
                column_name=row["column_name"],
                foreign_table_name=row["foreign_table_name"],
                foreign_column_name=row["foreign_column_name"],
                constraint_name=row.get("constraint_name"),
            )
            for row in rows
        ]

    async def get_reverse_foreign_keys(self, table_name: str) -> List[ReverseForeignKeyDef]:
        """Foreign keys in other tables that point at this table."""
        query = """
            SELECT
                tc.table_name AS referencing_table,
                kcu.column_name AS referencing_column,
                ccu.column_name AS referenced_column,
                tc.constraint_name
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
                ON ccu.constraint_name = tc.constraint_name
                AND ccu.table_schema = tc.table_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
            AND ccu.table_name = $1
            AND tc.table_schema = $2
            ORDER BY tc.table_name, kcu.ordinal_position
        """
        rows = await self._executor.fetch(query, table_name, self.schema)
        return [
            ReverseForeignKeyDef(
                referencing_table=row["referencing_table"],
                referencing_column=row["referencing_column"],
                referenced_column=row["referenced_column"],
                constraint_name=row.get("constraint_name"),
            )
            for row in rows
        ]
