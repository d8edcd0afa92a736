"""Table resource operations for an HTTP layer.

Each call resolves the connection's executor, loads (or reuses) its schema
snapshot, builds one statement with a fresh ``QueryBuilder`` and runs it.
Builder and driver errors propagate unchanged so the HTTP layer can map
``DalQueryError`` subclasses to client errors.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from common.interfaces import QueryExecutor, SchemaIntrospector
from dal.connection_registry import ConnectionRegistry
from dal.errors import UnknownTableError
from dal.factory import create_schema_introspector
from dal.filters import where_to_filters
from dal.query_builder import ListOptions, QueryBuilder
from dal.query_result import WriteResult
from dal.schema_cache import SchemaCache
from schema import SchemaMap, TableDef

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class TableResourceService:
    """CRUD and relationship reads over every table of registered connections."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        schema_cache: Optional[SchemaCache] = None,
        introspector_factory: Callable[[QueryExecutor], SchemaIntrospector] = (
            create_schema_introspector
        ),
        strict_relationships: Optional[bool] = None,
    ) -> None:
        """Wire the service to a registry and a schema cache."""
        self._registry = registry
        self._schema_cache = schema_cache or SchemaCache()
        self._introspector_factory = introspector_factory
        self._strict_relationships = strict_relationships

    async def get_schema(self, connection_id: str, refresh: bool = False) -> SchemaMap:
        """Return the connection's schema snapshot, introspecting on first use."""
        executor = self._registry.get(connection_id)
        if refresh:
            self._schema_cache.clear(connection_id)
        return await self._schema_cache.get_or_introspect(
            connection_id, self._introspector_factory(executor)
        )

    def invalidate_schema(self, connection_id: Optional[str] = None) -> int:
        """Drop cached schema snapshots (one connection or all)."""
        return self._schema_cache.clear(connection_id)

    async def _resolve(
        self, connection_id: str, table_name: str
    ) -> Tuple[QueryExecutor, SchemaMap, TableDef]:
        executor = self._registry.get(connection_id)
        schema_map = await self.get_schema(connection_id)
        table = schema_map.get(table_name)
        if table is None:
            raise UnknownTableError(f"Unknown table {table_name}")
        return executor, schema_map, table

    def _builder(self, executor: QueryExecutor, table_name: str, table: TableDef) -> QueryBuilder:
        return QueryBuilder(
            table_name,
            table,
            executor.dialect,
            strict_relationships=self._strict_relationships,
        )

    async def list_rows(
        self,
        connection_id: str,
        table_name: str,
        query_params: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        """List rows filtered, sorted and paginated by raw query-string parameters."""
        executor, _, table = await self._resolve(connection_id, table_name)
        filters, options = ListOptions.from_query_params(query_params)
        query = self._builder(executor, table_name, table).build_select(
            filters,
            limit=options.limit,
            offset=options.offset,
            order_by=options.order_by,
            order_dir=options.order_dir,
        )
        return await executor.fetch(query.text, *query.values)

    async def get_row(self, connection_id: str, table_name: str, record_id: Any) -> Optional[Row]:
        """Return the row with primary key ``record_id`` or None."""
        executor, _, table = await self._resolve(connection_id, table_name)
        query = self._builder(executor, table_name, table).build_select_by_id(record_id)
        rows = await executor.fetch(query.text, *query.values)
        return rows[0] if rows else None

    async def create_row(
        self, connection_id: str, table_name: str, data: Mapping[str, Any]
    ) -> Optional[Row]:
        """Insert a row and return it as stored.

        PostgreSQL returns the row directly. On MySQL the row is re-read by
        the reported insert id; without one (no auto-increment key) None is
        returned.
        """
        executor, _, table = await self._resolve(connection_id, table_name)
        query = self._builder(executor, table_name, table).build_insert(data)
        result = await executor.execute(query.text, *query.values)
        if result.returns_rows:
            return result.first_row()
        if result.last_insert_id is not None and table.primary_keys:
            return await self.get_row(connection_id, table_name, result.last_insert_id)
        return None

    async def update_row(
        self,
        connection_id: str,
        table_name: str,
        record_id: Any,
        data: Mapping[str, Any],
    ) -> Optional[Row]:
        """Update a row by primary key and return it, or None when no row matched."""
        executor, _, table = await self._resolve(connection_id, table_name)
        query = self._builder(executor, table_name, table).build_update(record_id, data)
        result = await executor.execute(query.text, *query.values)
        if result.returns_rows:
            return result.first_row()
        return await self.get_row(connection_id, table_name, record_id)

    async def update_rows(
        self,
        connection_id: str,
        table_name: str,
        filters: Optional[Mapping[str, Any]],
        data: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
    ) -> WriteResult:
        """Update every row matching ``filters`` plus a body ``where``; never unfiltered.

        PostgreSQL results carry the updated rows; MySQL reports only the count.
        """
        executor, _, table = await self._resolve(connection_id, table_name)
        combined = {**(filters or {}), **where_to_filters(where)}
        query = self._builder(executor, table_name, table).build_update_where(combined, data)
        result = await executor.execute(query.text, *query.values)
        logger.info(
            "rows_updated connection=%s table=%s count=%d",
            connection_id,
            table_name,
            result.row_count,
        )
        return result

    async def delete_row(self, connection_id: str, table_name: str, record_id: Any) -> WriteResult:
        """Delete a row by primary key."""
        executor, _, table = await self._resolve(connection_id, table_name)
        query = self._builder(executor, table_name, table).build_delete(record_id)
        return await executor.execute(query.text, *query.values)

    async def delete_rows(
        self,
        connection_id: str,
        table_name: str,
        filters: Optional[Mapping[str, Any]],
    ) -> WriteResult:
        """Delete every row matching ``filters``; an empty filter set is refused."""
        executor, _, table = await self._resolve(connection_id, table_name)
        query = self._builder(executor, table_name, table).build_delete_where(filters)
        result = await executor.execute(query.text, *query.values)
        logger.info(
            "rows_deleted connection=%s table=%s count=%d",
            connection_id,
            table_name,
            result.row_count,
        )
        return result

    async def list_related(
        self,
        connection_id: str,
        table_name: str,
        record_id: Any,
        related_table: str,
        fk_column: Optional[str] = None,
        query_params: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        """List rows of ``related_table`` linked to ``table_name`` row ``record_id``."""
        executor, schema_map, table = await self._resolve(connection_id, table_name)
        related_def = schema_map.get(related_table)
        if related_def is None:
            raise UnknownTableError(f"Unknown table {related_table}")
        _, options = ListOptions.from_query_params(query_params)
        query = self._builder(executor, table_name, table).build_related_query(
            related_table,
            record_id,
            fk_column=fk_column,
            options=options,
            related_table_def=related_def,
        )
        return await executor.fetch(query.text, *query.values)
