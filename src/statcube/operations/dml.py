"""Data Manipulation Language (DML) operations.

This module contains operation classes for INSERT, UPDATE and DELETE.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator

from statcube.constants.sql import QueryType
from statcube.operations.base import BaseOperation


class Insert(BaseOperation):
    """Insert data operation.

    Supports:
    - INSERT INTO ... SELECT via source_query
    - Parameterized INSERT ... VALUES via values; the rendered statement has
      one placeholder per column and ``values`` holds one parameter list
      per row
    """
    operation_type: Literal[QueryType.INSERT] = Field(
        default=QueryType.INSERT,
        frozen=True
    )

    source_query: Optional[str] = Field(default=None)
    values: Optional[List[List[Any]]] = Field(default=None)
    columns: Optional[List[str]] = Field(default=None)
    casts: Dict[str, str] = Field(
        default_factory=dict,
        description="Column -> engine type applied to the placeholder of a VALUES insert"
    )

    @model_validator(mode='after')
    def validate_data_source(self):
        """Ensure exactly one data source is provided."""
        if (self.source_query is None) == (self.values is None):
            raise ValueError("Insert requires exactly one data source: source_query or values")
        if self.values is not None and not self.columns:
            raise ValueError("Insert with values requires columns")
        return self


class Update(BaseOperation):
    """Update data operation.

    ``set_columns`` maps a target column to an already-rendered expression.
    ``from_table`` joins another table into the update.
    """
    operation_type: Literal[QueryType.UPDATE] = Field(
        default=QueryType.UPDATE,
        frozen=True
    )
    set_columns: Dict[str, str] = Field(...)
    where_clause: Optional[str] = Field(default=None)
    from_table: Optional[str] = Field(default=None)

    @field_validator('set_columns')
    @classmethod
    def validate_set_columns(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Ensure set_columns is not empty."""
        if not v:
            raise ValueError("set_columns cannot be empty")
        return v


class Delete(BaseOperation):
    """Delete data operation."""
    operation_type: Literal[QueryType.DELETE] = Field(
        default=QueryType.DELETE,
        frozen=True
    )
    where_clause: Optional[str] = Field(default=None)  # None = delete all
