"""DAL event counters, emitted only when telemetry is switched on.

An explicit flag variable (``DAL_METRICS_ENABLED``, ``DAL_TRACE_QUERIES``)
decides when it is set. Otherwise telemetry follows whether an OTLP endpoint
is configured.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import metrics

from common.config.env import get_env_bool, get_env_str

logger = logging.getLogger(__name__)

OTLP_ENDPOINT_VARS = (
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
)

# Counter name -> description. Only these names are emitted.
DAL_COUNTERS: Dict[str, str] = {
    "dal.schema_cache.lookups": "Schema cache lookups by result",
    "dal.filters.json_fallback": "JSON filters compared as text because the value did not parse",
}


def is_metrics_enabled(enabled_env_var: str) -> bool:
    """Return the flag in ``enabled_env_var`` when set, else whether OTLP export is configured."""
    try:
        explicit = get_env_bool(enabled_env_var)
    except ValueError:
        logger.warning("invalid_telemetry_flag var=%s telemetry=disabled", enabled_env_var)
        return False
    if explicit is not None:
        return explicit
    return any((get_env_str(name) or "").strip() for name in OTLP_ENDPOINT_VARS)


class DalMetrics:
    """Lazily created OpenTelemetry counters for the names in ``DAL_COUNTERS``."""

    def __init__(
        self, meter_name: str = "tablegate-dal", enabled_env_var: str = "DAL_METRICS_ENABLED"
    ) -> None:
        self.meter_name = meter_name
        self.enabled_env_var = enabled_env_var
        self._meter: Any = None
        self._counters: Dict[str, Any] = {}

    def increment(self, name: str, attributes: Optional[Dict[str, str]] = None) -> None:
        """Add one to counter ``name`` when metrics are enabled.

        Raises:
            KeyError: If ``name`` is not a declared DAL counter.
        """
        description = DAL_COUNTERS[name]
        if not is_metrics_enabled(self.enabled_env_var):
            return
        try:
            counter = self._counters.get(name)
            if counter is None:
                if self._meter is None:
                    self._meter = metrics.get_meter(self.meter_name)
                counter = self._meter.create_counter(name=name, description=description, unit="1")
                self._counters[name] = counter
            counter.add(1, dict(attributes or {}))
        except Exception as exc:
            logger.debug("counter_emit_failed name=%s error=%s", name, exc)


dal_metrics = DalMetrics()
