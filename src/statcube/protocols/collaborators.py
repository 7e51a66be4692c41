"""Collaborator protocol definitions.

A cube build depends on three services it does not implement: raw file
access, translation lookup and date matching. They are expressed as
protocols so callers can pass any object with the right methods.
"""

from pathlib import Path
from typing import TYPE_CHECKING, List, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from statcube.types import DateExtractor, DateLookupRow, FileReference


@runtime_checkable
class UploadFetcher(Protocol):
    """Materializes stored files as local temporary files."""

    def fetch_upload(self, dataset_id: str, file: "FileReference") -> Path:
        """Copy one stored fact or lookup file to a local path.

        The build deletes the returned file as soon as it has been loaded,
        on success and failure alike.

        Args:
            dataset_id: Dataset owning the file
            file: Reference to the stored file

        Returns:
            Path of a local file readable by the engine's loaders
        """
        ...


@runtime_checkable
class Translator(Protocol):
    """Translation lookup for fixed labels and note code descriptions."""

    def translate(self, key: str, locale: str) -> str:
        """Translate ``key`` (e.g. 'note_codes.revised') for ``locale``."""
        ...


@runtime_checkable
class DateLookupBuilder(Protocol):
    """Resolves date codes found in a fact column into periods."""

    def build_date_lookup(
        self,
        extractor: "DateExtractor",
        values: Sequence[str],
    ) -> List["DateLookupRow"]:
        """Return one row per distinct date code in ``values``.

        Codes the builder cannot match are left out; the dimension resolver
        reports them as unmatched fact values.
        """
        ...
