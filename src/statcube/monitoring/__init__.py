"""Monitoring infrastructure for cube build metrics.

Metrics go through the OpenTelemetry API; whichever meter provider the
host application installs receives them.
"""

from statcube.monitoring.metrics import BuildMetrics, MetricsCollector, get_metrics_collector

__all__ = [
    "BuildMetrics",
    "MetricsCollector",
    "get_metrics_collector",
]
