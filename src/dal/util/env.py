"""Provider normalization and environment variable helpers.

Canonical Provider IDs (internal, lowercase):
- "postgres" - PostgreSQL wire-compatible engines
- "mysql" - MySQL wire-compatible engines

User-Facing Aliases (case-insensitive):
- PostgreSQL: "postgresql", "postgres", "pg", "cockroachdb"
- MySQL: "mysql", "mariadb"

Example:
    >>> normalize_provider("PostgreSQL")
    'postgres'
    >>> normalize_provider("MariaDB")
    'mysql'
"""

from typing import Dict, Set

# Alias mappings: user-friendly names -> canonical provider ID
PROVIDER_ALIASES: Dict[str, str] = {
    # PostgreSQL family
    "postgresql": "postgres",
    "postgres": "postgres",
    "pg": "postgres",
    "cockroachdb": "postgres",
    # MySQL family
    "mysql": "mysql",
    "mariadb": "mysql",
}

SUPPORTED_PROVIDERS: Set[str] = {"postgres", "mysql"}


def normalize_provider(value: str) -> str:
    """Normalize a provider value to its canonical form.

    Strips whitespace, lower-cases, and maps known aliases. Unknown values pass
    through unchanged; validation happens in ``get_provider_env`` or
    ``dal.dialects.get_dialect``.
    """
    cleaned = (value or "").strip().lower()
    return PROVIDER_ALIASES.get(cleaned, cleaned)


def get_provider_env(var_name: str, default: str, allowed: Set[str] = SUPPORTED_PROVIDERS) -> str:
    """Read, normalize and validate a provider environment variable.

    Raises:
        ValueError: If the normalized value is not in the allowed set.
    """
    from common.config.env import get_env_str

    raw_value = get_env_str(var_name)

    if raw_value is None:
        return default

    normalized = normalize_provider(raw_value)

    if normalized not in allowed:
        allowed_list = ", ".join(sorted(allowed))
        raise ValueError(
            f"Invalid provider for {var_name}: '{raw_value}'. " f"Allowed values: {allowed_list}"
        )

    return normalized
