"""Interfaces shared by the DAL and its callers."""

from .query_executor import QueryExecutor
from .schema_introspector import SchemaIntrospector

__all__ = [
    "QueryExecutor",
    "SchemaIntrospector",
]
