import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

from opentelemetry import trace

from common.interfaces.schema_introspector import SchemaIntrospector
from common.observability.metrics import dal_metrics
from dal.settings import DalSettings
from schema import SchemaMap


@dataclass
class CacheEntry:
    """Cache entry with value and expiry time (None never expires)."""

    value: SchemaMap
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        """Return True once the entry's TTL has elapsed."""
        return self.expires_at is not None and now >= self.expires_at


class SchemaCache:
    """Per-connection schema snapshots with single-flight introspection.

    Each connection id maps to one whole ``SchemaMap``; entries are replaced,
    never edited in place. Concurrent ``get_or_introspect`` calls for the same
    id wait on a per-id lock so only one catalog walk runs.
    """

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        """Initialize cache with an optional TTL (``DAL_SCHEMA_CACHE_TTL_SECONDS``; 0 = none)."""
        if ttl_seconds is None:
            ttl_seconds = DalSettings.from_env().schema_cache_ttl_seconds
        self._ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._logger = logging.getLogger(__name__)
        self._tracer = trace.get_tracer(__name__)

    def get(self, connection_id: str) -> Optional[SchemaMap]:
        """Return the cached snapshot for ``connection_id`` if it is still valid."""
        entry = self._entries.get(connection_id)
        if entry is None:
            return None
        if entry.is_expired(time.monotonic()):
            self._entries.pop(connection_id, None)
            self._logger.info("schema_cache_expired connection=%s", connection_id)
            return None
        return entry.value

    def set(self, connection_id: str, schema_map: SchemaMap) -> None:
        """Publish a snapshot for ``connection_id``, replacing any previous one."""
        expires_at = time.monotonic() + self._ttl if self._ttl else None
        self._entries[connection_id] = CacheEntry(value=dict(schema_map), expires_at=expires_at)

    def clear(self, connection_id: Optional[str] = None) -> int:
        """Invalidate one connection's snapshot (or all) and emit telemetry."""
        scope = "connection" if connection_id is not None else "global"
        with self._tracer.start_as_current_span("schema.cache.invalidate") as span:
            span.set_attribute("schema.cache.scope", scope)
            if connection_id is not None:
                span.set_attribute("schema.cache.connection_id", connection_id)

            self._logger.info(
                "schema_cache_invalidate scope=%s connection=%s", scope, connection_id
            )
            if connection_id is None:
                count = len(self._entries)
                self._entries.clear()
                for lock_id in list(self._locks):
                    self._drop_idle_lock(lock_id)
            else:
                count = 1 if self._entries.pop(connection_id, None) is not None else 0
                self._drop_idle_lock(connection_id)
            span.set_attribute("schema.cache.entries_cleared", count)
        return count

    async def get_or_introspect(
        self, connection_id: str, introspector: SchemaIntrospector
    ) -> SchemaMap:
        """Return the cached snapshot, introspecting once on a miss."""
        cached = self.get(connection_id)
        if cached is not None:
            self._record_lookup("hit")
            self._logger.info("schema_cache_hit connection=%s", connection_id)
            return cached

        lock = self._locks.setdefault(connection_id, asyncio.Lock())
        async with lock:
            cached = self.get(connection_id)
            if cached is not None:
                self._record_lookup("hit")
                self._logger.info("schema_cache_hit connection=%s", connection_id)
                return cached

            self._record_lookup("miss")
            self._logger.info("schema_cache_miss connection=%s", connection_id)
            schema_map = await introspector.introspect()
            self.set(connection_id, schema_map)
            return self._entries[connection_id].value

    def _drop_idle_lock(self, connection_id: str) -> None:
        # A held lock stays so waiters and the holder share one introspection.
        lock = self._locks.get(connection_id)
        if lock is not None and not lock.locked():
            del self._locks[connection_id]

    def _record_lookup(self, result: str) -> None:
        dal_metrics.increment("dal.schema_cache.lookups", {"result": result})

    def __contains__(self, connection_id: object) -> bool:
        """Return True when a valid snapshot is cached for ``connection_id``."""
        return isinstance(connection_id, str) and self.get(connection_id) is not None

    def __len__(self) -> int:
        """Return number of entries."""
        return len(self._entries)
