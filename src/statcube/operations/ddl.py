"""Data Definition Language (DDL) operations.

This module contains operation classes for CREATE TABLE and DROP TABLE.
"""

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from statcube.constants.sql import QueryType
from statcube.protocols.operations import ColumnDefinition
from statcube.operations.base import BaseOperation


class CreateTable(BaseOperation):
    """Create table operation.

    Supports two table creation patterns:
    - Empty tables via columns definition (with an optional composite
      primary key taken from the columns flagged ``primary_key``)
    - CREATE TABLE AS SELECT (CTAS) via select_query
    """
    operation_type: Literal[QueryType.CREATE_TABLE] = Field(
        default=QueryType.CREATE_TABLE,
        frozen=True
    )

    columns: Optional[List[ColumnDefinition]] = Field(default=None)
    select_query: Optional[str] = Field(default=None)
    recreate: bool = Field(
        default=False,
        description="If True, use CREATE OR REPLACE. If False, fail when the table exists."
    )

    @model_validator(mode='after')
    def validate_table_definition(self):
        """Ensure exactly one table definition method is provided."""
        if (self.columns is None) == (self.select_query is None):
            raise ValueError("CreateTable requires exactly one of: columns, select_query")
        if self.columns is not None and len(self.columns) == 0:
            raise ValueError("CreateTable requires at least one column")
        return self

    @property
    def primary_key(self) -> List[str]:
        """Primary key columns in declaration order."""
        return [col.name for col in (self.columns or []) if col.primary_key]


class DropTable(BaseOperation):
    """Drop table operation."""
    operation_type: Literal[QueryType.DROP_TABLE] = Field(
        default=QueryType.DROP_TABLE,
        frozen=True
    )
    if_exists: bool = Field(default=True)
