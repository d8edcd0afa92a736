"""PostgreSQL-backed DAL components."""

from .query_target import PostgresQueryTarget
from .schema_introspector import PostgresSchemaIntrospector

__all__ = [
    "PostgresQueryTarget",
    "PostgresSchemaIntrospector",
]
