"""Column definitions used by table creation operations."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ColumnDefinition(BaseModel):
    """Column definition for table creation.

    ``data_type`` is an engine type name such as VARCHAR, BIGINT, DOUBLE,
    INTEGER, TIMESTAMP or DECIMAL(18,2). Column names are quoted when
    rendered, so any non-empty name is accepted.

    Examples:
        >>> ColumnDefinition(name="AreaCode", data_type="VARCHAR", primary_key=True)
        >>> ColumnDefinition(name="Data", data_type="DOUBLE")
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True
    )

    name: str = Field(..., min_length=1, max_length=255)
    data_type: str = Field(
        ...,
        min_length=1,
        description="Engine data type (e.g. 'VARCHAR', 'DOUBLE', 'DECIMAL(10,2)')"
    )
    nullable: bool = Field(default=True)
    default_value: Optional[Any] = Field(default=None)
    primary_key: bool = Field(default=False)

    @field_validator('name')
    @classmethod
    def validate_column_name(cls, v: str) -> str:
        """Reject names the engine cannot store."""
        if "\x00" in v:
            raise ValueError(f"Invalid column name: {v!r}")
        return v
