"""Utility functions and helpers for statcube."""

from statcube.utils.datetime import get_build_timestamp, get_current_timestamp
from statcube.utils.decorators import traced
from statcube.utils.identifiers import base_language, lookup_table_name, safe_identifier

__all__ = [
    "get_current_timestamp",
    "get_build_timestamp",
    "traced",
    "safe_identifier",
    "lookup_table_name",
    "base_language",
]
