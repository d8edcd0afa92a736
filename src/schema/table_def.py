from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .column_def import ColumnDef
from .foreign_key_def import ForeignKeyDef, ReverseForeignKeyDef


class TableDef(BaseModel):
    """Canonical representation of a base table and its key relationships."""

    name: str
    columns: List[ColumnDef] = Field(default_factory=list)
    primary_keys: List[str] = Field(default_factory=list)
    foreign_keys: List[ForeignKeyDef] = Field(default_factory=list)
    reverse_foreign_keys: List[ReverseForeignKeyDef] = Field(default_factory=list)

    model_config = {"frozen": True}

    def get_column(self, name: str) -> Optional[ColumnDef]:
        """Return the column named ``name`` or None."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        """Return True when the table has a column named ``name``."""
        return self.get_column(name) is not None

    def column_type(self, name: str) -> Optional[str]:
        """Return the lower-cased type of ``name``, or None when it is not a column."""
        column = self.get_column(name)
        return column.normalized_type if column is not None else None

    @property
    def column_names(self) -> List[str]:
        """Column names in ordinal order."""
        return [column.name for column in self.columns]


SchemaMap = Dict[str, TableDef]
