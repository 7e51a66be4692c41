"""Measure models."""

from typing import Dict, List, Optional

from pydantic import Field, model_validator

from statcube.constants.cube import DisplayType
from statcube.types.base import StatCubeBaseModel
from statcube.types.dimension import LocaleColumn, _column_for_locale
from statcube.types.files import LookupTableRef


class MeasureRow(StatCubeBaseModel):
    """One inline measure entry for one locale."""

    reference: str = Field(..., min_length=1, description="Value of the fact table measure column")
    language: str = Field(..., min_length=2)
    description: str
    notes: Optional[str] = None
    sort_order: Optional[int] = None
    display_type: DisplayType = DisplayType.TEXT


class MeasureLookupExtractor(StatCubeBaseModel):
    """How to read an external measure lookup file.

    In legacy wide files ``format_column`` is a decimal flag (true gives
    decimal, false integer). In long files it names the display type.
    Without a format column every measure displays as text.
    """

    sort_column: Optional[str] = None
    language_column: Optional[str] = None
    description_columns: List[LocaleColumn] = Field(default_factory=list)
    notes_columns: List[LocaleColumn] = Field(default_factory=list)
    format_column: Optional[str] = None
    is_legacy_wide_format: bool = False

    @model_validator(mode="after")
    def validate_columns(self):
        if not self.description_columns:
            raise ValueError("A measure lookup extractor needs at least one description column")
        if not self.is_legacy_wide_format and not self.language_column:
            raise ValueError("A long format measure lookup extractor needs a language column")
        return self

    def description_column(self, locale: str) -> Optional[str]:
        return _column_for_locale(self.description_columns, locale)

    def notes_column(self, locale: str) -> Optional[str]:
        return _column_for_locale(self.notes_columns, locale)


class Measure(StatCubeBaseModel):
    """The dataset's measure.

    Inline ``measure_info`` takes precedence over an attached lookup table
    when both are present.
    """

    id: Optional[str] = None
    fact_table_column: str = Field(..., min_length=1)
    join_column: Optional[str] = None
    names: Dict[str, str] = Field(default_factory=dict)
    measure_info: List[MeasureRow] = Field(default_factory=list)
    lookup_table: Optional[LookupTableRef] = None
    extractor: Optional[MeasureLookupExtractor] = None

    def display_name(self, locale: str) -> str:
        name = self.names.get(locale)
        if name is None:
            wanted = locale.lower()
            name = next((v for k, v in self.names.items() if k.lower() == wanted), None)
        return name or self.fact_table_column

    @property
    def has_inline_info(self) -> bool:
        return len(self.measure_info) > 0

    @property
    def has_lookup(self) -> bool:
        return self.lookup_table is not None and self.extractor is not None
