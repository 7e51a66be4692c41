"""Tests for build context, stage instrumentation and build metrics."""

from unittest.mock import MagicMock, Mock, patch

import pytest

from statcube.logging.filters import build_id_var, dataset_id_var
from statcube.monitoring import BuildMetrics, MetricsCollector
from statcube.observability import (
    BuildRequestContext,
    build_request_scope,
    merge_telemetry,
    stage_instrumentation,
)


class TestBuildRequestContext:

    def test_generate_assigns_unique_build_ids(self):
        first = BuildRequestContext.generate("ds-1", "rev-1")
        second = BuildRequestContext.generate("ds-1", "rev-1")

        assert first.build_id != second.build_id
        assert first.telemetry_base == {"build_id": first.build_id, "dataset_id": "ds-1", "revision_id": "rev-1"}

    def test_attributes_prefixed_and_none_dropped(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1", attributes={"user": "u-7", "empty": None})
        payload = merge_telemetry(ctx, extra={"rows": 6})

        assert payload["ctx.user"] == "u-7"
        assert "ctx.empty" not in payload
        assert payload["rows"] == "6"


class TestBuildRequestScope:

    def test_sets_and_clears_logging_context(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")

        with build_request_scope(ctx):
            assert build_id_var.get() == ctx.build_id
            assert dataset_id_var.get() == "ds-1"

        assert build_id_var.get() is None

    def test_clears_context_on_error(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")

        with pytest.raises(RuntimeError):
            with build_request_scope(ctx):
                raise RuntimeError("boom")

        assert build_id_var.get() is None

    def _span_attributes(self, ctx, fail=False):
        tracer = MagicMock()
        span = tracer.start_as_current_span.return_value.__enter__.return_value
        with patch("statcube.observability.context.get_tracer", return_value=tracer):
            try:
                with build_request_scope(ctx):
                    if fail:
                        raise RuntimeError("boom")
            except RuntimeError:
                pass
        return {call.args[0]: call.args[1] for call in span.set_attribute.call_args_list}

    def test_span_summarises_completed_stages_and_counts(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")
        ctx.record_stage("schema")
        ctx.record_stage("reconcile")
        ctx.set_count("uploads_applied", 2)

        attributes = self._span_attributes(ctx)

        assert attributes["statcube.build.status"] == "succeeded"
        assert attributes["statcube.build.stages"] == ["schema", "reconcile"]
        assert attributes["statcube.build.stage_count"] == 2
        assert attributes["statcube.build.uploads_applied"] == 2
        assert attributes["statcube.dataset_id"] == "ds-1"
        assert "statcube.build.failed_stage" not in attributes

    def test_span_names_failed_stage(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")
        ctx.record_stage("schema")
        ctx.record_stage("reconcile", success=False)

        attributes = self._span_attributes(ctx, fail=True)

        assert attributes["statcube.build.status"] == "failed"
        assert attributes["statcube.build.stages"] == ["schema"]
        assert attributes["statcube.build.failed_stage"] == "reconcile"


class TestStageInstrumentation:

    def test_records_successful_stage(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")
        metrics = Mock(spec=MetricsCollector)

        with stage_instrumentation(ctx, stage_name="notes", metrics=metrics) as telemetry:
            assert telemetry["operation.stage"] == "notes"
            assert telemetry["build_id"] == ctx.build_id

        assert metrics.record_stage.call_args.args[0] == "notes"
        assert metrics.record_stage.call_args.kwargs["success"] is True
        assert ctx.stages_completed == ["notes"]

    def test_records_failed_stage_and_reraises(self):
        ctx = BuildRequestContext.generate("ds-1", "rev-1")
        metrics = Mock(spec=MetricsCollector)

        with pytest.raises(ValueError):
            with stage_instrumentation(ctx, stage_name="measure", metrics=metrics):
                raise ValueError("bad measure")

        assert metrics.record_stage.call_args.args[0] == "measure"
        assert metrics.record_stage.call_args.kwargs == {"success": False, "tags": {"dataset_id": "ds-1"}}
        assert ctx.failed_stage == "measure"
        assert ctx.stages_completed == []


class TestMetricsCollector:

    def _metrics(self, success: bool, duration: float) -> BuildMetrics:
        return BuildMetrics(
            build_id="b",
            dataset_id="ds-1",
            revision_id="rev-1",
            duration_seconds=duration,
            success=success,
            error_type=None if success else "UploadLoadError",
        )

    def test_empty_summary(self):
        assert MetricsCollector().get_summary() == {"total_builds": 0}

    def test_summary(self):
        collector = MetricsCollector()
        collector.record_build(self._metrics(True, 1.0))
        collector.record_build(self._metrics(False, 3.0))

        summary = collector.get_summary()

        assert summary["total_builds"] == 2
        assert summary["failed_builds"] == 1
        assert summary["success_rate"] == 0.5
        assert summary["average_duration_seconds"] == 2.0

    def test_to_dict_serializes_timestamp(self):
        data = self._metrics(True, 1.0).to_dict()
        assert isinstance(data["timestamp"], str)
        assert data["uploads_applied"] == 0
