from typing import Optional

from pydantic import BaseModel


class ForeignKeyDef(BaseModel):
    """Outbound foreign key: this table's column references another table's column."""

    column_name: str
    foreign_table_name: str
    foreign_column_name: str
    constraint_name: Optional[str] = None

    model_config = {"frozen": True}


class ReverseForeignKeyDef(BaseModel):
    """Inbound foreign key: another table's column references a column of this table."""

    referencing_table: str
    referencing_column: str
    referenced_column: str
    constraint_name: Optional[str] = None

    model_config = {"frozen": True}
