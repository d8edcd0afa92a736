from typing import Any, Dict, List

import aiomysql

from dal.dialects import MYSQL, Dialect
from dal.mysql.param_translation import translate_qmark_params_to_mysql
from dal.query_result import WriteResult
from dal.query_target_config import ConnectionConfig
from dal.tracing import trace_query_operation


class MysqlQueryTarget:
    """MySQL execution capability over an aiomysql pool with ``DictCursor`` rows."""

    provider = "mysql"

    def __init__(self, pool: aiomysql.Pool, database: str) -> None:
        """Wrap an already-created pool."""
        self._pool = pool
        self.database = database

    @property
    def dialect(self) -> Dialect:
        return MYSQL

    @classmethod
    async def create(
        cls,
        config: ConnectionConfig,
        minsize: int = 1,
        maxsize: int = 10,
    ) -> "MysqlQueryTarget":
        """Create a pool for ``config`` and verify it with a round trip."""
        pool = await aiomysql.create_pool(
            host=config.host,
            port=config.resolved_port,
            user=config.user,
            password=config.password or "",
            db=config.database,
            minsize=minsize,
            maxsize=maxsize,
            autocommit=True,
            cursorclass=aiomysql.DictCursor,
        )
        target = cls(pool, database=config.database)
        try:
            await target.ping()
        except Exception:
            await target.close()
            raise
        return target

    async def ping(self) -> Any:
        """Return the server time; raises if the connection is unusable."""
        rows = await self.fetch("SELECT NOW() AS now")
        return rows[0]["now"] if rows else None

    async def fetch(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """Fetch rows with tracing when enabled."""
        mysql_sql, bound_params = translate_qmark_params_to_mysql(sql, params)

        async def _run():
            async with self._pool.acquire() as conn:
                async with conn.cursor() as cursor:
                    await cursor.execute(mysql_sql, bound_params)
                    rows = await cursor.fetchall()
                    return [dict(row) for row in rows]

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
            param_count=len(bound_params),
        )

    async def execute(self, sql: str, *params: Any) -> WriteResult:
        """Run a write; MySQL reports only the affected-row count and last insert id."""
        mysql_sql, bound_params = translate_qmark_params_to_mysql(sql, params)

        async def _run():
            async with self._pool.acquire() as conn:
                async with conn.cursor() as cursor:
                    await cursor.execute(mysql_sql, bound_params)
                    return WriteResult(
                        row_count=max(cursor.rowcount, 0),
                        last_insert_id=cursor.lastrowid or None,
                    )

        return await trace_query_operation(
            "dal.query.execute",
            provider=self.provider,
            sql=sql,
            operation=_run(),
            param_count=len(bound_params),
        )

    async def close(self) -> None:
        """Close the pool and wait for connections to finish."""
        self._pool.close()
        await self._pool.wait_closed()
