"""Provider-keyed construction of DAL components.

Nothing here is cached at module level: callers own the executors they
create and hand them to a ``ConnectionRegistry``.

Canonical Provider IDs:
    - "postgres": asyncpg-backed implementations
    - "mysql": aiomysql-backed implementations

Example:
    >>> config = ConnectionConfig(host="db", database="shop", user="app", provider="mariadb")
    >>> executor = await create_query_target(config)       # MysqlQueryTarget
    >>> introspector = create_schema_introspector(executor)  # MysqlSchemaIntrospector
"""

import logging
from typing import Any, Callable, Dict

from common.interfaces import QueryExecutor, SchemaIntrospector
from dal.errors import UnsupportedDialectError
from dal.mysql import MysqlQueryTarget, MysqlSchemaIntrospector
from dal.postgres import PostgresQueryTarget, PostgresSchemaIntrospector
from dal.query_target_config import ConnectionConfig
from dal.util.env import normalize_provider

logger = logging.getLogger(__name__)

SCHEMA_INTROSPECTOR_PROVIDERS: Dict[str, Callable[[QueryExecutor], SchemaIntrospector]] = {
    "postgres": PostgresSchemaIntrospector,
    "mysql": lambda executor: MysqlSchemaIntrospector(
        executor, database=getattr(executor, "database", None)
    ),
}

QUERY_TARGET_PROVIDERS: Dict[str, Any] = {
    "postgres": PostgresQueryTarget,
    "mysql": MysqlQueryTarget,
}


def _lookup(registry: Dict[str, Any], provider: str, component: str) -> Any:
    canonical = normalize_provider(provider)
    if canonical not in registry:
        available = ", ".join(sorted(registry))
        raise UnsupportedDialectError(
            f"Unknown {component} provider '{provider}'. Available: {available}"
        )
    return registry[canonical]


def create_schema_introspector(executor: QueryExecutor) -> SchemaIntrospector:
    """Build the catalog introspector matching ``executor.provider``."""
    factory = _lookup(SCHEMA_INTROSPECTOR_PROVIDERS, executor.provider, "SchemaIntrospector")
    return factory(executor)


async def create_query_target(config: ConnectionConfig) -> QueryExecutor:
    """Open and verify a pooled execution capability for ``config``."""
    target_cls = _lookup(QUERY_TARGET_PROVIDERS, config.provider, "QueryTarget")
    logger.info(
        "query_target_connect provider=%s host=%s database=%s",
        config.provider,
        config.host,
        config.database,
    )
    return await target_cls.create(config)


async def check_connection(config: ConnectionConfig) -> Any:
    """Open a throwaway pool, return the server time, and close it again."""
    target = await create_query_target(config)
    try:
        return await target.ping()
    finally:
        await target.close()
