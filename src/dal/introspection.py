"""Catalog-driven schema introspection shared by the provider introspectors."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from opentelemetry import trace

from common.interfaces.query_executor import QueryExecutor
from common.interfaces.schema_introspector import SchemaIntrospector
from schema import ColumnDef, ForeignKeyDef, ReverseForeignKeyDef, SchemaMap, TableDef

logger = logging.getLogger(__name__)


def row_value(row: Mapping[str, Any], key: str) -> Any:
    """Read a catalog column by its lower-case alias, accepting upper-case keys."""
    if key in row:
        return row[key]
    return row.get(key.upper())


def optional_int(value: Any) -> Optional[int]:
    """Convert catalog numerics (which may arrive as Decimal or str) to int."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CatalogSchemaIntrospector(SchemaIntrospector):
    """Walks every base table and assembles a ``SchemaMap`` snapshot.

    Subclasses supply the catalog queries; this class owns the loop, the
    snapshot, and telemetry. A snapshot is only published once every table
    has been read, so a failure part-way leaves the previous snapshot intact.
    """

    provider = "unspecified"

    def __init__(self, executor: QueryExecutor) -> None:
        """Bind the introspector to an execution capability."""
        self._executor = executor
        self._cache: SchemaMap = {}
        self._tracer = trace.get_tracer(__name__)

    async def introspect(self) -> SchemaMap:
        """Introspect all base tables and publish the result as the current snapshot."""
        with self._tracer.start_as_current_span("schema.introspect") as span:
            span.set_attribute("db.provider", self.provider)
            schema_map: Dict[str, TableDef] = {}
            for table_name in await self.list_table_names():
                schema_map[table_name] = await self.get_table_def(table_name)
            span.set_attribute("schema.table_count", len(schema_map))

        self._cache = schema_map
        logger.info(
            "schema_introspected provider=%s tables=%d", self.provider, len(schema_map)
        )
        return dict(schema_map)

    def get_cache(self) -> SchemaMap:
        """Return a copy of the last published snapshot."""
        return dict(self._cache)

    def clear_cache(self) -> None:
        """Drop the published snapshot."""
        self._cache = {}

    async def get_table_def(self, table_name: str) -> TableDef:
        """Get the full definition of a table (columns, PKs, FKs, reverse FKs)."""
        columns = await self.get_columns(table_name)
        primary_keys = await self.get_primary_keys(table_name)
        foreign_keys = await self.get_foreign_keys(table_name)
        reverse_foreign_keys = await self.get_reverse_foreign_keys(table_name)
        return TableDef(
            name=table_name,
            columns=columns,
            primary_keys=primary_keys,
            foreign_keys=foreign_keys,
            reverse_foreign_keys=reverse_foreign_keys,
        )

    async def list_table_names(self) -> List[str]:
        raise NotImplementedError

    async def get_columns(self, table_name: str) -> List[ColumnDef]:
        raise NotImplementedError

    async def get_primary_keys(self, table_name: str) -> List[str]:
        raise NotImplementedError

    async def get_foreign_keys(self, table_name: str) -> List[ForeignKeyDef]:
        raise NotImplementedError

    async def get_reverse_foreign_keys(self, table_name: str) -> List[ReverseForeignKeyDef]:
        raise NotImplementedError
