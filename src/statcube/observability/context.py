"""Shared observability context utilities."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from opentelemetry.trace import Status, StatusCode
from pydantic import Field

from statcube.logging import get_logger
from statcube.logging.filters import clear_build_context, set_build_context
from statcube.telemetry import get_tracer
from statcube.types.base import StatCubeBaseModel


class BuildRequestContext(StatCubeBaseModel):
    """Observability context propagated across one cube build."""

    build_id: str
    dataset_id: str
    revision_id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    telemetry_base: Dict[str, str] = Field(default_factory=dict, exclude=True)
    stages_completed: List[str] = Field(default_factory=list)
    failed_stage: Optional[str] = None
    counts: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def generate(cls, dataset_id: str, revision_id: str, **kwargs: Any) -> "BuildRequestContext":
        """Generate a new context with a unique build id."""
        ctx = cls(build_id=str(uuid.uuid4()), dataset_id=dataset_id, revision_id=revision_id, **kwargs)
        ctx.telemetry_base = ctx.to_telemetry_dict()
        return ctx

    @staticmethod
    def _stringify(value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    def record_stage(self, stage: str, *, success: bool = True) -> None:
        if success:
            self.stages_completed.append(stage)
        elif self.failed_stage is None:
            self.failed_stage = stage

    def set_count(self, name: str, value: int) -> None:
        self.counts[name] = int(value)

    def build_attributes(self) -> Dict[str, Any]:
        """Span attributes summarising the progress of the build so far."""
        attributes: Dict[str, Any] = {
            "statcube.build.stages": list(self.stages_completed),
            "statcube.build.stage_count": len(self.stages_completed),
        }
        if self.failed_stage:
            attributes["statcube.build.failed_stage"] = self.failed_stage
        for name, value in self.counts.items():
            attributes[f"statcube.build.{name}"] = value
        return attributes

    def to_telemetry_dict(self) -> Dict[str, str]:
        payload: Dict[str, str] = {
            "build_id": self.build_id,
            "dataset_id": self.dataset_id,
            "revision_id": self.revision_id,
        }
        for key, value in (self.attributes or {}).items():
            sanitized = self._stringify(value)
            if sanitized is not None:
                payload[f"ctx.{key}"] = sanitized
        return payload


@contextmanager
def build_request_scope(
    ctx: BuildRequestContext,
    *,
    operation: Optional[str] = None,
) -> Iterator[None]:
    """Apply logging + tracing scope for a build."""
    ctx.telemetry_base = ctx.to_telemetry_dict()

    set_build_context(
        build_id=ctx.build_id,
        dataset_id=ctx.dataset_id,
        revision_id=ctx.revision_id,
    )

    tracer = get_tracer()
    span_name = operation or "statcube.cube.build"
    span_attributes = {f"statcube.{key}": value for key, value in ctx.telemetry_base.items()}

    with tracer.start_as_current_span(span_name) as span:
        for key, value in span_attributes.items():
            span.set_attribute(key, value)

        try:
            yield
            span.set_attribute("statcube.build.status", "succeeded")
        except Exception as exc:
            span.set_attribute("statcube.build.status", "failed")
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            get_logger(__name__).error(
                "Cube build failed",
                extra={**ctx.telemetry_base, "operation.name": span_name},
                exc_info=True,
            )
            raise
        finally:
            for key, value in ctx.build_attributes().items():
                span.set_attribute(key, value)
            clear_build_context()


def sanitize_extras(
    extra: Optional[Dict[str, Any]],
    *,
    prefix: Optional[str] = None,
) -> Dict[str, str]:
    """Sanitize arbitrary telemetry extras into a JSON-safe dict."""
    if not extra:
        return {}

    result: Dict[str, str] = {}
    for key, value in extra.items():
        sanitized = BuildRequestContext._stringify(value)
        if sanitized is None:
            continue
        name = f"{prefix}{key}" if prefix else str(key)
        result[name] = sanitized
    return result


def merge_telemetry(
    ctx: BuildRequestContext,
    *,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """Merge build context telemetry with additional key/value pairs."""
    if not ctx.telemetry_base:
        ctx.telemetry_base = ctx.to_telemetry_dict()

    payload = dict(ctx.telemetry_base)
    if extra:
        payload.update(sanitize_extras(extra))
    return payload
