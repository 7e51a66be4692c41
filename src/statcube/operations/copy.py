"""File load, export and data movement operations.

This module contains operation classes for bulk loading files into the
working store, exporting views to files and copying the whole working store
into a database file.
"""

from typing import Literal

from pydantic import Field

from statcube.constants.cube import FileType, OutputFormat
from statcube.constants.sql import QueryType
from statcube.operations.base import BaseOperation


class LoadFile(BaseOperation):
    """Create ``object_name`` from a local file.

    The table takes the file's own columns and inferred types; callers copy
    the columns they need into the target table afterwards.
    """
    operation_type: Literal[QueryType.LOAD_FILE] = Field(
        default=QueryType.LOAD_FILE,
        frozen=True
    )

    source_path: str = Field(..., min_length=1)
    file_type: FileType = Field(default=FileType.CSV)


class Export(BaseOperation):
    """Write a table or view (``object_name``) to a file."""
    operation_type: Literal[QueryType.EXPORT] = Field(
        default=QueryType.EXPORT,
        frozen=True
    )

    target_path: str = Field(..., min_length=1)
    output_format: OutputFormat = Field(default=OutputFormat.CSV)


class CopyDatabase(BaseOperation):
    """Copy every table and view of the working store into a database file.

    ``object_name`` is the alias the target file is attached under while
    the copy runs.
    """
    operation_type: Literal[QueryType.COPY_DATABASE] = Field(
        default=QueryType.COPY_DATABASE,
        frozen=True
    )

    target_path: str = Field(..., min_length=1)
    source_database: str = Field(default="memory", min_length=1)
