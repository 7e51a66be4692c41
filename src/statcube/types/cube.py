"""Models produced by a cube build and by readers of a finished cube."""

from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from pydantic import Field

from statcube.constants.cube import ColumnRole
from statcube.types.base import StatCubeBaseModel
from statcube.types.dataset import ColumnDescriptor


class FactTableSchema(StatCubeBaseModel):
    """Physical fact table definition derived from the founding upload.

    Attributes:
        columns: Every column in declaration order
        key_columns: Dimension, time and measure columns forming the primary key
        data_values_column: The single data value column, if any
        note_codes_column: The single note codes column, if any
        measure_column: The single measure-role column, if any
    """

    columns: List[ColumnDescriptor]
    key_columns: List[ColumnDescriptor] = Field(default_factory=list)
    data_values_column: Optional[ColumnDescriptor] = None
    note_codes_column: Optional[ColumnDescriptor] = None
    measure_column: Optional[ColumnDescriptor] = None

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    @property
    def supports_revisions(self) -> bool:
        """Revise and AddRevise need both a data value and a note codes column."""
        return self.data_values_column is not None and self.note_codes_column is not None

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        return next((col for col in self.columns if col.name == name), None)

    def dimension_position(self, name: str) -> int:
        """Declaration position of a column, -1 when absent."""
        names = self.column_names
        return names.index(name) if name in names else -1

    def columns_with_role(self, role: ColumnRole) -> List[ColumnDescriptor]:
        return [col for col in self.columns if col.role == role]


class DateLookupRow(StatCubeBaseModel):
    """One date code resolved by the date lookup builder."""

    date_code: str
    description: str
    start: datetime
    end: datetime
    type: str


class CubeArtifact(StatCubeBaseModel):
    """Handle to a materialized cube file.

    The caller owns the file: delete it with ``clean_up_cube`` once read or
    uploaded to durable storage.
    """

    path: Path
    dataset_id: str
    revision_id: str
    build_id: str
    locales: List[str]


class CubePreview(StatCubeBaseModel):
    """One page of a locale view."""

    current_page: int
    page_size: int
    total_pages: int
    total_records: int
    start_record: int
    end_record: int
    headers: List[str]
    rows: List[List[Any]]


class PeriodCovered(StatCubeBaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
