"""Shared observability helpers."""

from common.observability.metrics import dal_metrics, is_metrics_enabled

__all__ = ["dal_metrics", "is_metrics_enabled"]
