from typing import Any, List, Optional

from pydantic import BaseModel


class ColumnDef(BaseModel):
    """Canonical representation of an introspected column."""

    name: str
    data_type: str
    is_nullable: bool = True
    default: Optional[Any] = None
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    enum_options: Optional[List[str]] = None
    is_auto_increment: bool = False
    # Postgres udt_name (enum type name) / MySQL column_type; None on other providers.
    udt_name: Optional[str] = None
    column_type: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def normalized_type(self) -> str:
        """Return the lower-cased type name used for comparisons."""
        return (self.data_type or "").lower()
