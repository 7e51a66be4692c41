"""SQL pieces shared by the dimension and measure lookup loaders."""

from typing import Optional

from statcube.cube.context import CubeBuildContext
from statcube.utils.identifiers import base_language


def optional_cast(ctx: CubeBuildContext, column: Optional[str], cast: str) -> str:
    """``CAST("column" AS cast)``, or a typed NULL when there is no column."""
    if not column:
        return f"CAST(NULL AS {cast})"
    return f"CAST({ctx.quote(column)} AS {cast})"


def description_or_empty(ctx: CubeBuildContext, column: Optional[str]) -> str:
    """Text of ``column``; missing columns and NULLs become ''."""
    if not column:
        return "''"
    return f"COALESCE(CAST({ctx.quote(column)} AS VARCHAR), '')"


def language_case(ctx: CubeBuildContext, language_column: str) -> str:
    """Map a free-text language column onto the supported locales.

    A row belongs to a locale when its language is the locale tag, the
    primary language subtag, a regional variant of it, or the language's
    translated name in any supported locale (e.g. 'English', 'Saesneg').
    Other rows map to NULL.
    """
    value = f"lower(trim(CAST({ctx.quote(language_column)} AS VARCHAR)))"
    branches = []
    for locale in ctx.locales:
        language = base_language(locale)
        names = {locale.lower(), language, locale.lower().replace("-", "_")}
        names.update(ctx.translate(f"language.{language}", other).lower() for other in ctx.locales)
        candidates = ", ".join(ctx.literal(name) for name in sorted(names))
        branches.append(
            f"WHEN {value} IN ({candidates}) OR {value} LIKE {ctx.literal(language + '-%')} "
            f"THEN {ctx.literal(locale.lower())}"
        )
    return f"CASE {' '.join(branches)} ELSE NULL END"
