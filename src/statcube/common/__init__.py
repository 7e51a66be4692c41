"""Common exceptions for statcube.

The exception system pairs error codes with a small set of exception
kinds, one per cube build stage. All exceptions inherit from
StatCubeError and carry structured details naming the failing stage
and entity.
"""

from statcube.common.exceptions import (
    StatCubeError,
    ErrorCode,
    SchemaError,
    UploadLoadError,
    DimensionValidationError,
    DimensionBuildError,
    MeasureConfigError,
    MaterializationError,
    PreviewError,
    # Helper functions
    query_execution_error,
    stage_error,
    resource_not_found_error,
)

__all__ = [
    "StatCubeError",
    "ErrorCode",
    "SchemaError",
    "UploadLoadError",
    "DimensionValidationError",
    "DimensionBuildError",
    "MeasureConfigError",
    "MaterializationError",
    "PreviewError",
    # Helper functions
    "query_execution_error",
    "stage_error",
    "resource_not_found_error",
]
