"""View-related operations."""

from typing import Literal

from pydantic import Field

from statcube.constants.sql import QueryType
from statcube.operations.base import BaseOperation


class CreateView(BaseOperation):
    """Create view operation."""
    operation_type: Literal[QueryType.CREATE_VIEW] = Field(
        default=QueryType.CREATE_VIEW,
        frozen=True
    )

    select_query: str = Field(..., min_length=1)
    or_replace: bool = Field(default=False)
