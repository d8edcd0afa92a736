import asyncio
import logging
from typing import Dict, List, Optional

from common.interfaces import QueryExecutor
from dal.errors import UnknownConnectionError
from dal.query_target_config import ConnectionConfig

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Owns the execution capabilities of registered database connections.

    Create one per application and pass it to the services that need it.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._executors: Dict[str, QueryExecutor] = {}
        self._connect_locks: Dict[str, asyncio.Lock] = {}

    def register(self, connection_id: str, executor: QueryExecutor) -> None:
        """Register ``executor`` under ``connection_id``.

        Raises:
            ValueError: If a different executor is already registered under the id.
        """
        existing = self._executors.get(connection_id)
        if existing is not None and existing is not executor:
            raise ValueError(f"Connection '{connection_id}' is already registered")
        self._executors[connection_id] = executor
        logger.info(
            "connection_registered connection=%s provider=%s", connection_id, executor.provider
        )

    async def connect(self, connection_id: str, config: ConnectionConfig) -> QueryExecutor:
        """Return the registered executor, opening and registering one on first use."""
        from dal.factory import create_query_target

        async with self._connect_locks.setdefault(connection_id, asyncio.Lock()):
            existing = self._executors.get(connection_id)
            if existing is not None:
                return existing
            executor = await create_query_target(config)
            self.register(connection_id, executor)
            return executor

    def get(self, connection_id: str) -> QueryExecutor:
        """Return the executor for ``connection_id``.

        Raises:
            UnknownConnectionError: If nothing is registered under the id.
        """
        executor = self._executors.get(connection_id)
        if executor is None:
            raise UnknownConnectionError(connection_id)
        return executor

    def find(self, connection_id: str) -> Optional[QueryExecutor]:
        """Return the executor for ``connection_id`` or None."""
        return self._executors.get(connection_id)

    async def unregister(self, connection_id: str) -> bool:
        """Remove and close the executor; returns False when the id was unknown."""
        executor = self._executors.pop(connection_id, None)
        self._drop_idle_lock(connection_id)
        if executor is None:
            return False
        logger.info("connection_closed connection=%s", connection_id)
        await executor.close()
        return True

    async def close_all(self) -> None:
        """Close every executor; the first close failure is re-raised after all were tried."""
        executors = list(self._executors.items())
        self._executors.clear()
        for lock_id in list(self._connect_locks):
            self._drop_idle_lock(lock_id)
        first_error: Optional[BaseException] = None
        for connection_id, executor in executors:
            try:
                await executor.close()
            except Exception as exc:
                logger.warning(
                    "connection_close_failed connection=%s error=%s", connection_id, exc
                )
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def _drop_idle_lock(self, connection_id: str) -> None:
        lock = self._connect_locks.get(connection_id)
        if lock is not None and not lock.locked():
            del self._connect_locks[connection_id]

    def connection_ids(self) -> List[str]:
        """Registered connection ids in registration order."""
        return list(self._executors)

    def __contains__(self, connection_id: object) -> bool:
        """Return True when ``connection_id`` is registered."""
        return connection_id in self._executors

    def __len__(self) -> int:
        """Return number of registered connections."""
        return len(self._executors)
