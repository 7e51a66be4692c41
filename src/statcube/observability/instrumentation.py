"""Context manager instrumenting one stage of a cube build."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from opentelemetry.trace import Status, StatusCode

from statcube.logging import get_logger
from statcube.monitoring.metrics import MetricsCollector
from statcube.observability.context import BuildRequestContext, merge_telemetry, sanitize_extras
from statcube.telemetry import get_tracer

logger = get_logger(__name__)


@contextmanager
def stage_instrumentation(
    ctx: BuildRequestContext,
    *,
    stage_name: str,
    metrics: MetricsCollector,
    attributes: Optional[Dict[str, str]] = None,
) -> Iterator[Dict[str, str]]:
    """Open a span for a build stage and record its duration.

    Yields the telemetry payload to pass to engine calls made inside the
    stage, so their log lines carry the stage name.
    """
    telemetry_payload = merge_telemetry(ctx, extra={"operation.stage": stage_name})
    telemetry_payload.update(sanitize_extras(attributes))
    tags = {"dataset_id": ctx.dataset_id}

    start_time = time.perf_counter()
    tracer = get_tracer()
    with tracer.start_as_current_span(f"statcube.cube.{stage_name}") as span:
        for key, value in telemetry_payload.items():
            span.set_attribute(f"statcube.{key}", value)
        try:
            yield telemetry_payload
        except Exception as exc:
            elapsed = time.perf_counter() - start_time
            metrics.record_stage(stage_name, elapsed, success=False, tags=tags)
            ctx.record_stage(stage_name, success=False)
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            logger.error(
                "Build stage failed",
                extra={**telemetry_payload, "duration.seconds": f"{elapsed:.6f}"},
            )
            raise
        else:
            elapsed = time.perf_counter() - start_time
            metrics.record_stage(stage_name, elapsed, success=True, tags=tags)
            ctx.record_stage(stage_name)
            logger.info(
                "Build stage completed",
                extra={**telemetry_payload, "duration.seconds": f"{elapsed:.6f}"},
            )
