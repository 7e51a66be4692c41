from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """Standard error codes for statcube operations.

    Error codes categorize failures without requiring callers to know the
    concrete exception class. Each category has its own prefix.

    Attributes:
        VALIDATION_*: Fact rows failing lookup validation
        EXECUTION_*: Query execution errors inside the working store
        SCHEMA_*: Fact table definition errors
        LOAD_*: Upload and lookup file loading errors
        DIMENSION_*: Dimension resolution errors
        MEASURE_*: Measure resolution errors
        MATERIALIZE_*: Artifact persistence errors
        PREVIEW_*: Preview and export errors
        RESOURCE_*: Missing resources
    """
    # Validation errors
    DIMENSION_VALIDATION_ERROR = "VALIDATION_101"

    # Execution errors
    EXECUTION_ERROR = "EXECUTION_001"
    QUERY_EXECUTION_ERROR = "EXECUTION_002"

    # Cube build stages
    SCHEMA_ERROR = "SCHEMA_001"
    UPLOAD_LOAD_ERROR = "LOAD_001"
    DIMENSION_BUILD_ERROR = "DIMENSION_001"
    MEASURE_CONFIG_ERROR = "MEASURE_001"
    MATERIALIZATION_ERROR = "MATERIALIZE_001"

    # Consumers of a finished cube
    PREVIEW_ERROR = "PREVIEW_001"

    # Resource errors
    RESOURCE_NOT_FOUND = "RESOURCE_001"


class StatCubeError(Exception):
    """Base exception for all statcube errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details (stage, entity ids, query text)
        cause: Optional underlying exception
    """

    default_code: ErrorCode = ErrorCode.EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause

        # Lazy import to avoid circular dependency
        from statcube.logging import get_logger
        logger = get_logger(__name__)
        logger.error(
            message,
            extra={
                "error_code": self.error_code.value,
                "error_details": self.details,
            },
            exc_info=cause is not None,
        )

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
        }


class SchemaError(StatCubeError):
    """The working store rejected the fact table definition."""
    default_code = ErrorCode.SCHEMA_ERROR


class UploadLoadError(StatCubeError):
    """A fact or lookup file could not be loaded in its declared format."""
    default_code = ErrorCode.UPLOAD_LOAD_ERROR


class DimensionValidationError(StatCubeError):
    """Fact rows were found with no matching lookup row."""
    default_code = ErrorCode.DIMENSION_VALIDATION_ERROR

    @property
    def dimension_id(self) -> Optional[str]:
        return self.details.get("dimension_id")


class DimensionBuildError(StatCubeError):
    """Wraps any failure raised while resolving one dimension."""
    default_code = ErrorCode.DIMENSION_BUILD_ERROR

    @property
    def dimension_id(self) -> Optional[str]:
        return self.details.get("dimension_id")


class MeasureConfigError(StatCubeError):
    default_code = ErrorCode.MEASURE_CONFIG_ERROR


class MaterializationError(StatCubeError):
    default_code = ErrorCode.MATERIALIZATION_ERROR


class PreviewError(StatCubeError):
    """Page parameters were rejected; ``details['errors']`` lists each check."""
    default_code = ErrorCode.PREVIEW_ERROR

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return self.details.get("errors", [])


# Helper functions for common error scenarios
def _truncate_query(query: str) -> str:
    # Keep the head of the statement, which names the operation and target
    return query[:500] + "..." if len(query) > 500 else query


def query_execution_error(
    query: str,
    original_error: Exception,
    **kwargs
) -> StatCubeError:
    """Create a query execution error.

    Args:
        query: SQL query that failed
        original_error: The underlying exception
        **kwargs: Additional error details

    Returns:
        StatCubeError with QUERY_EXECUTION_ERROR code
    """
    details = kwargs.pop("details", {})
    details["query"] = _truncate_query(query)
    kwargs.pop("cause", None)
    return StatCubeError(
        message=f"Query execution failed: {str(original_error)}",
        error_code=ErrorCode.QUERY_EXECUTION_ERROR,
        details=details,
        cause=original_error,
        **kwargs
    )


def stage_error(
    error_type: type,
    message: str,
    stage: str,
    cause: Optional[BaseException] = None,
    **entity
) -> StatCubeError:
    """Create one of the cube build error kinds tagged with its stage.

    Args:
        error_type: StatCubeError subclass to instantiate
        message: Error message
        stage: Build stage that failed (schema, reconcile, dimensions, ...)
        cause: Underlying exception
        **entity: Identifiers of the failing entity (upload_id, dimension_id, ...)

    Returns:
        Instance of ``error_type``
    """
    details: Dict[str, Any] = {"stage": stage}
    details.update({k: v for k, v in entity.items() if v is not None})
    if isinstance(cause, StatCubeError) and "query" in cause.details:
        details.setdefault("query", cause.details["query"])
    return error_type(message=message, details=details, cause=cause)


def resource_not_found_error(
    message: str,
    resource_type: Optional[str] = None,
    resource_name: Optional[str] = None,
    **kwargs
) -> StatCubeError:
    """Create a resource not found error.

    Args:
        message: Error message
        resource_type: Type of resource (artifact, view, file)
        resource_name: Name of the missing resource
        **kwargs: Additional error details

    Returns:
        StatCubeError with RESOURCE_NOT_FOUND code
    """
    details = kwargs.pop("details", {})
    if resource_type:
        details["resource_type"] = resource_type
    if resource_name:
        details["resource_name"] = resource_name
    return StatCubeError(
        message=message,
        error_code=ErrorCode.RESOURCE_NOT_FOUND,
        details=details,
        **kwargs
    )
