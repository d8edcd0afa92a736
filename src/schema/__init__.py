"""Normalized relational schema model shared by the introspectors and the query builder."""

from .column_def import ColumnDef
from .foreign_key_def import ForeignKeyDef, ReverseForeignKeyDef
from .table_def import SchemaMap, TableDef

__all__ = [
    "ColumnDef",
    "ForeignKeyDef",
    "ReverseForeignKeyDef",
    "SchemaMap",
    "TableDef",
]
