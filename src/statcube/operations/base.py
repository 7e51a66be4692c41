"""Base operation definitions.

This module defines the base operation class that all database operations
inherit from. Operations are data structures that describe what database
action should be performed, independent of how it's executed.
"""

from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from statcube.constants.sql import QueryType
from statcube.types.base import StatCubeBaseModel


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class BaseOperation(StatCubeBaseModel):
    """Base class for all database operations.

    Operations are pure data structures that describe WHAT to do, not HOW
    to do it. They are rendered into SQL by the query builder and executed
    by the engine.

    Attributes:
        operation_type: The type of operation to perform
        object_name: Name of the table or view the operation targets.
            Names are quoted when rendered, so dataset-controlled column
            and table names are accepted as-is.
        logging_context: Extra fields attached to log lines and spans
    """
    operation_type: QueryType
    object_name: str = Field(..., min_length=1, max_length=255)
    logging_context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Optional fields for logging/tracking (stage, upload id, dimension id)"
    )

    @field_validator('object_name')
    @classmethod
    def validate_object_name(cls, v: str) -> str:
        """Reject names that cannot be quoted safely."""
        if "\x00" in v:
            raise ValueError(f"Invalid object name: {v!r}")
        return v

    def telemetry_fields(self) -> Dict[str, str]:
        """Return flattened telemetry fields describing this operation."""
        payload: Dict[str, str] = {
            "operation.type": str(self.operation_type),
            "operation.object": self.object_name,
        }
        for key, value in (self.logging_context or {}).items():
            sanitized = _stringify(value)
            if sanitized is not None:
                payload[f"operation.ctx.{key}"] = sanitized
        return payload
