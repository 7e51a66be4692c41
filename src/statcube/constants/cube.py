"""Cube build constants.

Enumerations for the dataset model and the static tables shared by every
build: the note-code vocabulary and the display-type format table.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Tuple


FACT_TABLE_NAME = "fact_table"
MEASURE_TABLE_NAME = "measure"
NOTE_CODES_TABLE_NAME = "note_codes"
ALL_NOTES_TABLE_NAME = "all_notes"
METADATA_TABLE_NAME = "metadata"
FILTER_TABLE_NAME = "filter_table"
STAGING_TABLE_NAME = "staging_table"
UPDATE_TABLE_NAME = "update_table"

DEFAULT_VIEW_PREFIX = "default_view"
RAW_VIEW_PREFIX = "raw_view"

# Note codes are stored as one comma-separated string per fact row
NOTE_CODE_SEPARATOR = ","
REVISED_NOTE_CODE = "r"


class ColumnRole(str, Enum):
    """Semantic role of a fact table column."""
    DIMENSION = "dimension"
    TIME = "time"
    MEASURE = "measure"
    DATA_VALUES = "data_values"
    NOTE_CODES = "note_codes"

    @property
    def is_key(self) -> bool:
        return self in (ColumnRole.DIMENSION, ColumnRole.TIME, ColumnRole.MEASURE)


class DimensionType(str, Enum):
    RAW = "raw"
    NUMERIC = "numeric"
    TEXT = "text"
    SYMBOL = "symbol"
    TIME_PERIOD = "time_period"
    TIME_POINT = "time_point"
    LOOKUP_TABLE = "lookup_table"
    REFERENCE_DATA = "reference_data"
    NOTE_CODES = "note_codes"


class RevisionAction(str, Enum):
    """How one fact table upload merges into the logical fact table."""
    REPLACE_ALL = "replace_all"
    ADD = "add"
    REVISE = "revise"
    ADD_REVISE = "add_revise"


class FileType(str, Enum):
    CSV = "csv"
    GZIP_CSV = "csv.gz"
    PARQUET = "parquet"
    JSON = "json"
    GZIP_JSON = "json.gz"
    EXCEL = "xlsx"


class OutputFormat(str, Enum):
    CSV = "csv"
    PARQUET = "parquet"
    JSON = "json"
    EXCEL = "xlsx"
    DUCKDB = "duckdb"


class NumberType(str, Enum):
    INTEGER = "integer"
    DECIMAL = "decimal"


class DisplayType(str, Enum):
    """How a measure's data values are rendered in the default views."""
    DECIMAL = "decimal"
    FLOAT = "float"
    INTEGER = "integer"
    LONG = "long"
    PERCENTAGE = "percentage"
    STRING = "string"
    TEXT = "text"
    DATE = "date"
    DATETIME = "datetime"
    TIME = "time"


class NoteCode(NamedTuple):
    code: str
    tag: str

    @property
    def translation_key(self) -> str:
        return f"note_codes.{self.tag}"


NOTE_CODES: Tuple[NoteCode, ...] = (
    NoteCode("a", "average"),
    NoteCode("b", "break_in_series"),
    NoteCode("c", "confidential"),
    NoteCode("e", "estimated"),
    NoteCode("f", "forecast"),
    NoteCode("k", "low_figure"),
    NoteCode("p", "provisional"),
    NoteCode("r", "revised"),
    NoteCode("t", "total"),
    NoteCode("u", "low_reliability"),
    NoteCode("x", "missing_data"),
)

_GROUPED_DECIMAL = "printf('%,.2f', CAST({column} AS DOUBLE))"
_GROUPED_INTEGER = "printf('%,d', CAST({column} AS BIGINT))"
_RAW_FLOAT = "CAST(CAST({column} AS DOUBLE) AS VARCHAR)"
_VERBATIM = "CAST({column} AS VARCHAR)"

# ``{column}`` is substituted with the rendered data value column reference
DISPLAY_TYPE_FORMATS: Mapping[DisplayType, str] = MappingProxyType({
    DisplayType.DECIMAL: _GROUPED_DECIMAL,
    DisplayType.FLOAT: _GROUPED_DECIMAL,
    DisplayType.INTEGER: _GROUPED_INTEGER,
    DisplayType.LONG: _RAW_FLOAT,
    DisplayType.PERCENTAGE: _RAW_FLOAT,
    DisplayType.STRING: _VERBATIM,
    DisplayType.TEXT: _VERBATIM,
    DisplayType.DATE: _VERBATIM,
    DisplayType.DATETIME: _VERBATIM,
    DisplayType.TIME: _VERBATIM,
})
FALLBACK_DISPLAY_FORMAT = _VERBATIM


class HeaderKey(str, Enum):
    """Translation keys for fixed, non-dataset column headers."""
    START_DATE = "column_headers.start_date"
    END_DATE = "column_headers.end_date"
    NOTES = "column_headers.notes"
    DATA_VALUES = "column_headers.data_values"
    MEASURE = "column_headers.measure"


class BuildStatus(str, Enum):
    INCOMPLETE = "incomplete"
    AWAITING_MATERIALIZATION = "awaiting_materialization"
    MATERIALIZED = "materialized"
    FAILED = "failed"
