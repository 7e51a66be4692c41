"""Observability utilities for statcube."""

from .context import BuildRequestContext, build_request_scope, merge_telemetry, sanitize_extras
from .instrumentation import stage_instrumentation

__all__ = [
    "BuildRequestContext",
    "build_request_scope",
    "merge_telemetry",
    "sanitize_extras",
    "stage_instrumentation",
]
