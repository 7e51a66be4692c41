"""Dimension models.

Dimensions form a tagged union discriminated on ``type``. Kinds that need
extra configuration carry it in their own variant, so a lookup-table
dimension whose table has not been attached yet is an explicit
``UnresolvedLookup`` rather than a pair of missing fields.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import ConfigDict, Field, model_validator

from statcube.constants.cube import NumberType
from statcube.types.base import StatCubeBaseModel
from statcube.types.files import LookupTableRef
from statcube.utils.identifiers import base_language


class LocaleColumn(StatCubeBaseModel):
    """A source column holding text for one locale."""

    locale: str = Field(..., min_length=2)
    name: str = Field(..., min_length=1)


def _column_for_locale(columns: List[LocaleColumn], locale: str) -> Optional[str]:
    """Exact locale match first, then the primary language subtag."""
    wanted = locale.lower()
    for col in columns:
        if col.locale.lower() == wanted:
            return col.name
    for col in columns:
        if base_language(col.locale) == base_language(locale):
            return col.name
    return None


class LookupTableExtractor(StatCubeBaseModel):
    """How to read an attached lookup file.

    Long format files hold one row per (code, language) and name their
    language, description and notes columns. Legacy wide files hold one row
    per code with a description (and optional notes) column per locale.
    """

    sort_column: Optional[str] = None
    language_column: Optional[str] = None
    description_columns: List[LocaleColumn] = Field(default_factory=list)
    notes_columns: List[LocaleColumn] = Field(default_factory=list)
    is_legacy_wide_format: bool = False

    @model_validator(mode="after")
    def validate_columns(self):
        if not self.description_columns:
            raise ValueError("A lookup table extractor needs at least one description column")
        if not self.is_legacy_wide_format and not self.language_column:
            raise ValueError("A long format lookup table extractor needs a language column")
        return self

    def description_column(self, locale: str) -> Optional[str]:
        return _column_for_locale(self.description_columns, locale)

    def notes_column(self, locale: str) -> Optional[str]:
        return _column_for_locale(self.notes_columns, locale)


class DateExtractor(StatCubeBaseModel):
    """Date-matching settings, passed through to the date lookup builder."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="default", description="Date code scheme understood by the builder")
    date_format: Optional[str] = None


class NumberExtractor(StatCubeBaseModel):
    type: NumberType = NumberType.INTEGER
    decimal_places: int = Field(default=2, ge=0, le=12)


class _DimensionBase(StatCubeBaseModel):
    """Fields shared by every dimension kind.

    Attributes:
        id: Dimension identifier
        fact_table_column: Fact table column the dimension renders
        join_column: Column of the attached lookup file matching the fact values
        names: Display name per locale
    """

    id: str = Field(..., min_length=1)
    fact_table_column: str = Field(..., min_length=1)
    join_column: Optional[str] = None
    names: Dict[str, str] = Field(default_factory=dict)

    def display_name(self, locale: str) -> str:
        """Localized column header, falling back to the fact table column."""
        name = self.names.get(locale)
        if name is None:
            wanted = locale.lower()
            name = next((v for k, v in self.names.items() if k.lower() == wanted), None)
        return name or self.fact_table_column


class PassThroughDimension(_DimensionBase):
    type: Literal["raw", "symbol"] = "raw"


class TextDimension(_DimensionBase):
    type: Literal["text"] = "text"


class NumericDimension(_DimensionBase):
    type: Literal["numeric"] = "numeric"
    extractor: Optional[NumberExtractor] = None


class DateDimension(_DimensionBase):
    type: Literal["time_period", "time_point"] = "time_period"
    extractor: Optional[DateExtractor] = None


class UnresolvedLookup(StatCubeBaseModel):
    """Lookup table or extractor not attached yet."""

    state: Literal["unresolved"] = "unresolved"


class ResolvedLookup(StatCubeBaseModel):
    state: Literal["resolved"] = "resolved"
    lookup_table: LookupTableRef
    extractor: LookupTableExtractor


LookupSource = Annotated[Union[UnresolvedLookup, ResolvedLookup], Field(discriminator="state")]


class LookupTableDimension(_DimensionBase):
    type: Literal["lookup_table"] = "lookup_table"
    source: LookupSource = Field(default_factory=UnresolvedLookup)

    @model_validator(mode="before")
    @classmethod
    def build_source(cls, data: Any) -> Any:
        """Accept flat ``lookup_table`` / ``extractor`` fields.

        Both present gives a resolved source; anything less is unresolved.
        """
        if not isinstance(data, dict) or "source" in data:
            return data
        data = dict(data)
        lookup_table = data.pop("lookup_table", None)
        extractor = data.pop("extractor", None)
        if lookup_table is not None and extractor is not None:
            data["source"] = {"state": "resolved", "lookup_table": lookup_table, "extractor": extractor}
        else:
            data["source"] = {"state": "unresolved"}
        return data

    @property
    def is_resolved(self) -> bool:
        return isinstance(self.source, ResolvedLookup)


class ReferenceDataDimension(_DimensionBase):
    type: Literal["reference_data"] = "reference_data"


class NoteCodesDimension(_DimensionBase):
    """Rendered by the note-code expander, never by the dimension resolver."""

    type: Literal["note_codes"] = "note_codes"


Dimension = Annotated[
    Union[
        PassThroughDimension,
        TextDimension,
        NumericDimension,
        DateDimension,
        LookupTableDimension,
        ReferenceDataDimension,
        NoteCodesDimension,
    ],
    Field(discriminator="type"),
]
