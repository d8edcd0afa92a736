from typing import TYPE_CHECKING, Any, Dict, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dal.dialects import Dialect
    from dal.query_result import WriteResult


@runtime_checkable
class QueryExecutor(Protocol):
    """Protocol for running generated statements against one database connection."""

    @property
    def provider(self) -> str:
        """Canonical provider id (``postgres`` or ``mysql``)."""
        ...

    @property
    def dialect(self) -> "Dialect":
        """Dialect used to build statements for this connection."""
        ...

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """Run a statement and return its rows as dicts."""
        ...

    async def execute(self, sql: str, *params: Any) -> "WriteResult":
        """Run a write statement."""
        ...

    async def close(self) -> None:
        """Release the underlying pool."""
        ...
