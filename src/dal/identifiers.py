"""Identifier validation and quoting.

Every table and column name that reaches generated SQL text passes through
``sanitize_identifier``. Values never do: they are bound as parameters.
"""

import re
from typing import Any, Union

from dal.dialects import Dialect, get_dialect
from dal.errors import ForbiddenIdentifierError, InvalidIdentifierError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
FORBIDDEN_PREFIXES = ("pg_", "information_schema")


def validate_identifier(identifier: Any) -> str:
    """Return ``identifier`` unchanged if it is a safe, non-catalog SQL identifier.

    Raises:
        InvalidIdentifierError: Not a string, or not ``[A-Za-z_][A-Za-z0-9_]*``.
        ForbiddenIdentifierError: Starts with a reserved catalog prefix.
    """
    if not isinstance(identifier, str) or not IDENTIFIER_PATTERN.fullmatch(identifier):
        raise InvalidIdentifierError(f"Invalid identifier: {identifier!r}")

    if identifier.lower().startswith(FORBIDDEN_PREFIXES):
        raise ForbiddenIdentifierError(f"Cannot access system tables: {identifier}")

    return identifier


def sanitize_identifier(identifier: Any, dialect: Union[str, Dialect, None] = None) -> str:
    """Validate ``identifier`` and quote it for ``dialect``."""
    return get_dialect(dialect).quote_identifier(validate_identifier(identifier))
