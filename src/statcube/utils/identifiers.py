"""Identifier helpers shared by the query builder and the cube resolvers."""

import re

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z_]")


def safe_identifier(name: str) -> str:
    """Normalize a dataset-controlled name into a safe table name fragment.

    Lower-cases the value, turns spaces into underscores and strips every
    character outside ``[a-zA-Z_]``.

    Examples:
        >>> safe_identifier("Area Code")
        'area_code'
        >>> safe_identifier("YearCode2024")
        'yearcode'
    """
    return _UNSAFE_CHARS.sub("", name.lower().replace(" ", "_"))


def lookup_table_name(fact_table_column: str) -> str:
    """Name of the lookup table built for a fact table column."""
    return f"{safe_identifier(fact_table_column)}_lookup"


def base_language(locale: str) -> str:
    """Primary language subtag of a locale ('en-GB' -> 'en')."""
    return locale.lower().split("-")[0]
