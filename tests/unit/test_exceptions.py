"""Tests for the error kinds and helpers."""

import duckdb

from statcube.common.exceptions import (
    DimensionBuildError,
    ErrorCode,
    MaterializationError,
    PreviewError,
    StatCubeError,
    UploadLoadError,
    query_execution_error,
    resource_not_found_error,
    stage_error,
)
from statcube.cube.loader import load_failure_reason


class TestStatCubeError:

    def test_default_codes(self):
        assert UploadLoadError("x").error_code == ErrorCode.UPLOAD_LOAD_ERROR
        assert MaterializationError("x").error_code == ErrorCode.MATERIALIZATION_ERROR
        assert PreviewError("x").errors == []

    def test_str_includes_cause(self):
        error = StatCubeError("failed", cause=ValueError("bad"))
        assert str(error) == "[EXECUTION_001] failed (caused by: ValueError: bad)"

    def test_to_dict(self):
        error = resource_not_found_error("missing", resource_type="view", resource_name="default_view_fr")
        assert error.to_dict() == {
            "type": "StatCubeError",
            "message": "missing",
            "error_code": "RESOURCE_001",
            "error_name": "RESOURCE_NOT_FOUND",
            "details": {"resource_type": "view", "resource_name": "default_view_fr"},
        }


class TestStageError:

    def test_tags_stage_and_entity(self):
        error = stage_error(DimensionBuildError, "boom", stage="dimensions", dimension_id="dim-1", upload_id=None)

        assert isinstance(error, DimensionBuildError)
        assert error.details == {"stage": "dimensions", "dimension_id": "dim-1"}
        assert error.dimension_id == "dim-1"

    def test_keeps_query_of_cause(self):
        cause = query_execution_error("SELECT broken", RuntimeError("syntax"))
        error = stage_error(UploadLoadError, "load", stage="reconcile", cause=cause)

        assert error.details["query"] == "SELECT broken"
        assert error.cause is cause

    def test_long_queries_truncated(self):
        error = query_execution_error("SELECT " + "x" * 1000, RuntimeError("too long"))
        assert len(error.details["query"]) == 503


class TestLoadFailureReason:

    def test_constraint_messages(self):
        duplicate = query_execution_error("INSERT", duckdb.ConstraintException(
            'Duplicate key "AreaCode: W01" violates primary key constraint'))
        incomplete = query_execution_error("INSERT", duckdb.ConstraintException(
            "NOT NULL constraint failed: fact_table.AreaCode"))

        assert load_failure_reason(duplicate) == "duplicate_fact"
        assert load_failure_reason(incomplete) == "incomplete_fact"
        assert load_failure_reason(RuntimeError("other")) == "load_failed"
