"""Protocol definitions for statcube.

Protocols describe the collaborators a cube build depends on, following
Python's structural subtyping: any object with the right methods fits.
"""

from .collaborators import DateLookupBuilder, Translator, UploadFetcher
from .operations import ColumnDefinition

__all__ = [
    "UploadFetcher",
    "Translator",
    "DateLookupBuilder",
    "ColumnDefinition",
]
