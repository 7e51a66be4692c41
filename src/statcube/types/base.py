"""Base model class for all statcube models with serialization support."""

from typing import Any, Dict
from pydantic import BaseModel, ConfigDict


class StatCubeBaseModel(BaseModel):
    """Base model for all statcube models with built-in serialization.

    Provides:
    - Serialization to dictionary via to_dict()
    - Consistent configuration (enum values stored as plain strings)
    - Proper handling of nested models
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary for serialization.

        Recursively converts nested models to dictionaries.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        # model_dump in python mode keeps nested instances, enums and datetimes
        data = self.model_dump(by_alias=False, exclude_none=True)

        def convert_nested(obj):
            if isinstance(obj, StatCubeBaseModel):
                return obj.to_dict()
            elif isinstance(obj, dict):
                return {k: convert_nested(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_nested(item) for item in obj]
            elif hasattr(obj, 'isoformat'):
                return obj.isoformat()
            elif hasattr(obj, 'value'):
                return obj.value
            return obj

        return convert_nested(data)
