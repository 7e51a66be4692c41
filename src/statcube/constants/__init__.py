"""Constants module for statcube.

Layer 0 of the package: no dependencies on other statcube modules.

Organization:
    - sql: statement kinds understood by the query builder
    - cube: dataset model enumerations and static build tables
"""

from statcube.constants.sql import QueryType
from statcube.constants.cube import (
    FACT_TABLE_NAME,
    MEASURE_TABLE_NAME,
    NOTE_CODES_TABLE_NAME,
    ALL_NOTES_TABLE_NAME,
    METADATA_TABLE_NAME,
    FILTER_TABLE_NAME,
    STAGING_TABLE_NAME,
    UPDATE_TABLE_NAME,
    DEFAULT_VIEW_PREFIX,
    RAW_VIEW_PREFIX,
    NOTE_CODE_SEPARATOR,
    REVISED_NOTE_CODE,
    NOTE_CODES,
    DISPLAY_TYPE_FORMATS,
    FALLBACK_DISPLAY_FORMAT,
    BuildStatus,
    ColumnRole,
    DimensionType,
    DisplayType,
    FileType,
    HeaderKey,
    NoteCode,
    NumberType,
    OutputFormat,
    RevisionAction,
)

__all__ = [
    "QueryType",
    "FACT_TABLE_NAME",
    "MEASURE_TABLE_NAME",
    "NOTE_CODES_TABLE_NAME",
    "ALL_NOTES_TABLE_NAME",
    "METADATA_TABLE_NAME",
    "FILTER_TABLE_NAME",
    "STAGING_TABLE_NAME",
    "UPDATE_TABLE_NAME",
    "DEFAULT_VIEW_PREFIX",
    "RAW_VIEW_PREFIX",
    "NOTE_CODE_SEPARATOR",
    "REVISED_NOTE_CODE",
    "NOTE_CODES",
    "DISPLAY_TYPE_FORMATS",
    "FALLBACK_DISPLAY_FORMAT",
    "BuildStatus",
    "ColumnRole",
    "DimensionType",
    "DisplayType",
    "FileType",
    "HeaderKey",
    "NoteCode",
    "NumberType",
    "OutputFormat",
    "RevisionAction",
]
