"""References to files held by the storage collaborator."""

from typing import Optional

from pydantic import Field

from statcube.constants.cube import FileType
from statcube.types.base import StatCubeBaseModel


class FileReference(StatCubeBaseModel):
    """A stored file the upload fetcher can materialize locally."""

    id: str = Field(..., min_length=1)
    filename: Optional[str] = None
    file_type: FileType = FileType.CSV


class LookupTableRef(FileReference):
    """A lookup file attached to a dimension or measure."""
