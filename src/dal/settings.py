"""Environment-driven DAL settings.

Environment Variables:
    DAL_DEFAULT_PROVIDER: Dialect used when a connection does not name one (default: "postgres")
    DAL_POSTGRES_SCHEMA: Schema introspected on PostgreSQL connections (default: "public")
    DAL_STRICT_RELATIONSHIPS: Raise instead of warn on ambiguous FK traversal (default: false)
    DAL_SCHEMA_CACHE_TTL_SECONDS: Expire cached schemas after N seconds; 0 keeps them (default: 0)
    DAL_TRACE_QUERIES: Emit OTEL spans for executed statements (default: follows OTEL exporter)
"""

from dataclasses import dataclass
from typing import Optional

from common.config.env import get_env_bool, get_env_int, get_env_str
from dal.util.env import get_provider_env


@dataclass(frozen=True)
class DalSettings:
    """Resolved DAL configuration."""

    default_provider: str = "postgres"
    postgres_schema: str = "public"
    strict_relationships: bool = False
    schema_cache_ttl_seconds: Optional[int] = None

    @classmethod
    def from_env(cls) -> "DalSettings":
        """Build settings from the process environment."""
        ttl = get_env_int("DAL_SCHEMA_CACHE_TTL_SECONDS", 0)
        return cls(
            default_provider=get_provider_env("DAL_DEFAULT_PROVIDER", default="postgres"),
            postgres_schema=get_env_str("DAL_POSTGRES_SCHEMA", "public") or "public",
            strict_relationships=bool(get_env_bool("DAL_STRICT_RELATIONSHIPS", False)),
            schema_cache_ttl_seconds=ttl if ttl and ttl > 0 else None,
        )


def strict_relationships_enabled() -> bool:
    """Return True when ambiguous relationship traversal should raise."""
    return DalSettings.from_env().strict_relationships
