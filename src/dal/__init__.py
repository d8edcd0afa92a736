"""Data Abstraction Layer (DAL) for generic table resources.

This package turns an introspected relational schema into safe, parameterized
statements and runs them against registered PostgreSQL or MySQL connections.
"""

from dal.dialects import MYSQL, POSTGRES, Dialect, get_dialect
from dal.identifiers import sanitize_identifier, validate_identifier
from dal.query_builder import ListOptions, QueryBuilder, QueryObject

__all__ = [
    "Dialect",
    "ListOptions",
    "MYSQL",
    "POSTGRES",
    "QueryBuilder",
    "QueryObject",
    "get_dialect",
    "sanitize_identifier",
    "validate_identifier",
]
