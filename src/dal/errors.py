"""Error taxonomy for identifier sanitization, statement building and resource lookup.

None of these are retried: they describe malformed or malicious input, or a
schema precondition that will not change within one request. Driver and
transport errors are never wrapped and propagate from the executor unchanged.
"""

from __future__ import annotations

INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
FORBIDDEN_IDENTIFIER = "FORBIDDEN_IDENTIFIER"
NO_PRIMARY_KEY = "NO_PRIMARY_KEY"
NO_VALID_COLUMNS = "NO_VALID_COLUMNS"
UNSAFE_DELETE = "UNSAFE_DELETE"
UNSAFE_UPDATE = "UNSAFE_UPDATE"
NO_RELATIONSHIP = "NO_RELATIONSHIP"
AMBIGUOUS_RELATIONSHIP = "AMBIGUOUS_RELATIONSHIP"
UNKNOWN_TABLE = "UNKNOWN_TABLE"
UNSUPPORTED_DIALECT = "UNSUPPORTED_DIALECT"


class DalQueryError(ValueError):
    """Base class for request-fatal statement building errors."""

    reason_code = "INVALID_REQUEST"

    def __init__(self, message: str, *, reason_code: str | None = None) -> None:
        """Attach a deterministic reason code to the error."""
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class InvalidIdentifierError(DalQueryError):
    """Raised when a table or column name is not a plain SQL identifier."""

    reason_code = INVALID_IDENTIFIER


class ForbiddenIdentifierError(DalQueryError):
    """Raised when an identifier targets a system catalog."""

    reason_code = FORBIDDEN_IDENTIFIER


class NoPrimaryKeyError(DalQueryError):
    """Raised when a key-based operation targets a table without a primary key."""

    reason_code = NO_PRIMARY_KEY


class NoValidColumnsError(DalQueryError):
    """Raised when an insert/update payload has no usable columns after filtering."""

    reason_code = NO_VALID_COLUMNS


class UnsafeDeleteError(DalQueryError):
    """Raised when a delete-by-filter would have no WHERE terms."""

    reason_code = UNSAFE_DELETE


class UnsafeUpdateError(DalQueryError):
    """Raised when an update-by-filter would have no WHERE terms."""

    reason_code = UNSAFE_UPDATE


class NoRelationshipError(DalQueryError):
    """Raised when no foreign key path connects two tables."""

    reason_code = NO_RELATIONSHIP


class AmbiguousRelationshipError(NoRelationshipError):
    """Raised in strict mode when several foreign keys match an unqualified traversal."""

    reason_code = AMBIGUOUS_RELATIONSHIP

    def __init__(self, message: str, *, candidates: list[str]) -> None:
        """Keep the competing column names for the caller."""
        super().__init__(message)
        self.candidates = list(candidates)


class UnknownTableError(DalQueryError):
    """Raised when a table is not part of the introspected schema."""

    reason_code = UNKNOWN_TABLE


class UnsupportedDialectError(DalQueryError):
    """Raised when a provider name does not map to a supported SQL dialect."""

    reason_code = UNSUPPORTED_DIALECT


class UnknownConnectionError(KeyError):
    """Raised when a connection id has no registered executor."""

    def __init__(self, connection_id: str) -> None:
        """Remember the missing connection id."""
        super().__init__(connection_id)
        self.connection_id = connection_id

    def __str__(self) -> str:
        """Render a readable message instead of KeyError's repr."""
        return f"No connection registered for id '{self.connection_id}'"
