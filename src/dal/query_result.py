from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class WriteResult:
    """Outcome of an INSERT / UPDATE / DELETE.

    PostgreSQL statements carry ``RETURNING *`` so ``rows`` holds the affected
    rows. MySQL has no RETURNING; only ``row_count`` and ``last_insert_id`` are
    known and ``returns_rows`` is False.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_insert_id: Optional[Any] = None
    returns_rows: bool = False

    def first_row(self) -> Optional[Dict[str, Any]]:
        """Return the first affected row when the dialect returned any."""
        return self.rows[0] if self.rows else None
