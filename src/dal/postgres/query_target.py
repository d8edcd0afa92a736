import re
from typing import Any, Dict, List, Optional

import asyncpg

from dal.dialects import POSTGRES, Dialect
from dal.query_result import WriteResult
from dal.query_target_config import ConnectionConfig
from dal.tracing import trace_query_operation

_RETURNING_PATTERN = re.compile(r"\bRETURNING\b", re.IGNORECASE)


class PostgresQueryTarget:
    """PostgreSQL execution capability over an asyncpg pool."""

    provider = "postgres"

    def __init__(self, pool: asyncpg.Pool) -> None:
        """Wrap an already-created pool."""
        self._pool = pool

    @property
    def dialect(self) -> Dialect:
        return POSTGRES

    @classmethod
    async def create(
        cls,
        config: ConnectionConfig,
        min_size: int = 1,
        max_size: int = 20,
        command_timeout: float = 60,
    ) -> "PostgresQueryTarget":
        """Create a pool for ``config`` and verify it with a round trip."""
        pool = await asyncpg.create_pool(
            host=config.host,
            port=config.resolved_port,
            database=config.database,
            user=config.user,
            password=config.password,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            server_settings={"application_name": "tablegate"},
        )
        target = cls(pool)
        try:
            await target.ping()
        except Exception:
            await target.close()
            raise
        return target

    async def ping(self) -> Any:
        """Return the server time; raises if the connection is unusable."""
        async with self._pool.acquire() as conn:
            return await conn.fetchval("SELECT NOW()")

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """Fetch rows with tracing when enabled."""

        async def _run():
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(sql, *params)
                return [dict(row) for row in rows]

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
            param_count=len(params),
        )

    async def execute(self, sql: str, *params: Any) -> WriteResult:
        """Run a write; statements with RETURNING yield the affected rows."""
        returns_rows = bool(_RETURNING_PATTERN.search(sql))

        async def _run():
            async with self._pool.acquire() as conn:
                if returns_rows:
                    rows = [dict(row) for row in await conn.fetch(sql, *params)]
                    return WriteResult(rows=rows, row_count=len(rows), returns_rows=True)
                status = await conn.execute(sql, *params)
                return WriteResult(row_count=_row_count_from_status(status))

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
            param_count=len(params),
        )

    async def close(self) -> None:
        """Close the pool."""
        await self._pool.close()


def _row_count_from_status(status: Optional[str]) -> int:
    """Parse asyncpg command tags such as ``UPDATE 3`` or ``INSERT 0 1``."""
    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0
