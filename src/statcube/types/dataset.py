"""Dataset, revision and upload models.

These models describe the publishing history a cube is built from. They are
read-only inputs to a build: the cube pipeline never mutates them.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from statcube.constants.cube import ColumnRole, RevisionAction
from statcube.types.base import StatCubeBaseModel
from statcube.types.dimension import Dimension
from statcube.types.files import FileReference
from statcube.types.measure import Measure

# Engine type names such as VARCHAR, BIGINT, DOUBLE, DECIMAL(18,2), TIMESTAMP WITH TIME ZONE
_PHYSICAL_TYPE_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*(\(\s*\d+\s*(,\s*\d+\s*)?\))?$")


class ColumnDescriptor(StatCubeBaseModel):
    """One entry of the column catalog: name, engine type and semantic role."""

    name: str = Field(..., min_length=1, max_length=255)
    physical_type: str = Field(..., min_length=1, description="Engine type, e.g. 'VARCHAR' or 'DOUBLE'")
    role: ColumnRole

    @field_validator("physical_type")
    @classmethod
    def validate_physical_type(cls, v: str) -> str:
        """Reject anything that is not a plain type name."""
        v = v.strip()
        if not _PHYSICAL_TYPE_PATTERN.match(v):
            raise ValueError(f"Invalid physical type: '{v}'")
        return v.upper()


class FactTableUpload(FileReference):
    """One fact file contributed to a revision.

    Attributes:
        id: Upload identifier, also the reference passed to the upload fetcher
        filename: Original file name, for diagnostics
        file_type: Format the file is loaded as
        action: How the upload merges into the logical fact table
        uploaded_at: Upload time; uploads are folded in this order
        columns: Column catalog of this upload
        column_mapping: Fact table column -> column name in this file, for
            files whose headers differ from the founding schema
    """

    action: RevisionAction = RevisionAction.ADD
    uploaded_at: datetime
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    column_mapping: Dict[str, str] = Field(default_factory=dict)

    def source_column(self, fact_table_column: str) -> str:
        """Column in this upload feeding ``fact_table_column``."""
        return self.column_mapping.get(fact_table_column, fact_table_column)


class Revision(StatCubeBaseModel):
    """Immutable point in a dataset's history.

    ``revision_index`` 0 is reserved for drafts that have not been numbered yet.
    """

    id: str = Field(..., min_length=1)
    revision_index: int = Field(default=0, ge=0)
    created_at: datetime
    previous_revision_id: Optional[str] = None
    uploads: List[FactTableUpload] = Field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        return self.revision_index == 0


class Dataset(StatCubeBaseModel):
    """Root aggregate: revisions, dimensions and the optional measure."""

    id: str = Field(..., min_length=1)
    revisions: List[Revision] = Field(default_factory=list)
    dimensions: List[Dimension] = Field(default_factory=list)
    measure: Optional[Measure] = None

    @model_validator(mode="after")
    def validate_revision_indexes(self):
        """Numbered revisions must have distinct indexes."""
        numbered = [rev.revision_index for rev in self.revisions if rev.revision_index > 0]
        if len(numbered) != len(set(numbered)):
            raise ValueError(f"Dataset {self.id} has duplicate revision indexes: {sorted(numbered)}")
        return self

    @property
    def founding_revision(self) -> Optional[Revision]:
        """The revision with index 1, if the dataset has one."""
        return next((rev for rev in self.revisions if rev.revision_index == 1), None)

    def get_revision(self, revision_id: str) -> Optional[Revision]:
        return next((rev for rev in self.revisions if rev.id == revision_id), None)
