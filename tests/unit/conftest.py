"""Unit test environment helpers."""

import pytest

_DAL_ENV_VARS = (
    "DAL_DEFAULT_PROVIDER",
    "DAL_POSTGRES_SCHEMA",
    "DAL_STRICT_RELATIONSHIPS",
    "DAL_SCHEMA_CACHE_TTL_SECONDS",
    "DAL_TRACE_QUERIES",
    "DAL_METRICS_ENABLED",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch):
    """Start every unit test from a clean DAL/OTEL environment."""
    for name in _DAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
