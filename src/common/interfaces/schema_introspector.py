from typing import List, Protocol, runtime_checkable

from schema import SchemaMap, TableDef


@runtime_checkable
class SchemaIntrospector(Protocol):
    """Protocol for introspecting a database schema (tables, columns, constraints)."""

    async def introspect(self) -> SchemaMap:
        """Introspect every base table and publish a fresh snapshot."""
        ...

    def get_cache(self) -> SchemaMap:
        """Return the last published snapshot (empty before the first introspection)."""
        ...

    def clear_cache(self) -> None:
        """Drop the published snapshot."""
        ...

    async def list_table_names(self) -> List[str]:
        """List base table names, ordered by name."""
        ...

    async def get_table_def(self, table_name: str) -> TableDef:
        """Get the full definition of a table (columns, PKs, FKs, reverse FKs)."""
        ...
