"""Observability package: in-process metrics."""

from randavatar.observability.metrics import MetricsCollector, get_metrics

__all__ = ["MetricsCollector", "get_metrics"]
