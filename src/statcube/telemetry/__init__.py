"""OpenTelemetry accessors used for build spans and build metrics."""

from typing import Optional

from opentelemetry import metrics, trace

from statcube.__version__ import __version__

__all__ = [
    "INSTRUMENTATION_NAME",
    "get_tracer",
    "get_meter",
]

INSTRUMENTATION_NAME = "statcube"


def get_tracer(name: str = INSTRUMENTATION_NAME, version: Optional[str] = None):
    """Return a tracer from the active OpenTelemetry provider."""
    return trace.get_tracer(name, version or __version__)


def get_meter(name: str = INSTRUMENTATION_NAME, version: Optional[str] = None):
    """Return a meter from the active OpenTelemetry provider."""
    return metrics.get_meter(name, version or __version__)
