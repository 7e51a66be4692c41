"""Typed view fragments.

Every resolver in a cube build contributes part of the per-locale views:
select items, joins and ordering. Fragments are immutable values; a
resolver returns a new ``ViewFragments`` and the build merges it into the
accumulated one. Nothing here renders SQL. Identifiers and literals are
quoted by the query builder when the view is assembled.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ConfigDict, Field

from statcube.types.base import StatCubeBaseModel


class ColumnRef(StatCubeBaseModel):
    """A column of a table in the working store."""
    model_config = ConfigDict(frozen=True)

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)


class Expression(StatCubeBaseModel):
    """A SQL expression template over quoted columns and literals.

    ``template`` uses ``{c0}``, ``{c1}`` ... for columns and ``{s0}``,
    ``{s1}`` ... for string literals. Templates are fixed strings owned by
    the resolvers; dataset values only ever enter through ``columns`` and
    ``literals``.

    Example:
        >>> Expression(template="CAST({c0} AS VARCHAR)",
        ...            columns=[ColumnRef(table="fact_table", column="Year")])
    """
    model_config = ConfigDict(frozen=True)

    template: str = Field(..., min_length=1)
    columns: List[ColumnRef] = Field(default_factory=list)
    literals: List[str] = Field(default_factory=list)


class SelectItem(StatCubeBaseModel):
    """One projected column; an unaliased column keeps its own name."""
    model_config = ConfigDict(frozen=True)

    expression: Union[ColumnRef, Expression]
    alias: Optional[str] = None


class JoinCondition(StatCubeBaseModel):
    model_config = ConfigDict(frozen=True)

    left: ColumnRef
    right: ColumnRef
    cast_to_text: bool = False


class JoinClause(StatCubeBaseModel):
    """LEFT JOIN of a lookup table onto the fact table.

    When ``locale_column`` is set, rendering for a locale adds
    ``table.locale_column = '<locale in lower case>'``.
    """
    model_config = ConfigDict(frozen=True)

    table: str = Field(..., min_length=1)
    conditions: List[JoinCondition] = Field(..., min_length=1)
    locale_column: Optional[str] = None


class OrderBy(StatCubeBaseModel):
    model_config = ConfigDict(frozen=True)

    column: ColumnRef
    descending: bool = False


SelectFactory = Callable[[str], Sequence[SelectItem]]


class ViewFragments(StatCubeBaseModel):
    """Accumulated view parts, keyed by locale.

    Attributes:
        default_selects: Locale -> select items of the formatted default view
        raw_selects: Locale -> select items of the unformatted raw view
        joins: Joins shared by every locale
        order_bys: Ordering shared by every locale
        lookup_tables: Auxiliary tables created while producing these parts
    """
    model_config = ConfigDict(frozen=True)

    default_selects: Dict[str, List[SelectItem]] = Field(default_factory=dict)
    raw_selects: Dict[str, List[SelectItem]] = Field(default_factory=dict)
    joins: List[JoinClause] = Field(default_factory=list)
    order_bys: List[OrderBy] = Field(default_factory=list)
    lookup_tables: List[str] = Field(default_factory=list)

    @classmethod
    def empty(cls, locales: Iterable[str]) -> "ViewFragments":
        locales = list(locales)
        return cls(
            default_selects={locale: [] for locale in locales},
            raw_selects={locale: [] for locale in locales},
        )

    @classmethod
    def per_locale(
        cls,
        locales: Iterable[str],
        default: SelectFactory,
        raw: Optional[SelectFactory] = None,
        *,
        joins: Sequence[JoinClause] = (),
        order_bys: Sequence[OrderBy] = (),
        lookup_tables: Sequence[str] = (),
    ) -> "ViewFragments":
        """Build fragments from per-locale select factories.

        ``raw`` defaults to ``default``: most contributions render the same
        in both views.
        """
        raw = raw or default
        locales = list(locales)
        return cls(
            default_selects={locale: list(default(locale)) for locale in locales},
            raw_selects={locale: list(raw(locale)) for locale in locales},
            joins=list(joins),
            order_bys=list(order_bys),
            lookup_tables=list(lookup_tables),
        )

    @property
    def locales(self) -> List[str]:
        return list(self.default_selects.keys())

    def merge(self, other: "ViewFragments") -> "ViewFragments":
        """Return a new value with ``other`` appended after this one."""
        locales = list(dict.fromkeys(self.locales + other.locales))
        return ViewFragments(
            default_selects={
                locale: self.default_selects.get(locale, []) + other.default_selects.get(locale, [])
                for locale in locales
            },
            raw_selects={
                locale: self.raw_selects.get(locale, []) + other.raw_selects.get(locale, [])
                for locale in locales
            },
            joins=self.joins + other.joins,
            order_bys=self.order_bys + other.order_bys,
            lookup_tables=self.lookup_tables + [t for t in other.lookup_tables if t not in self.lookup_tables],
        )

    def selects_for(self, locale: str, raw: bool = False) -> List[SelectItem]:
        source = self.raw_selects if raw else self.default_selects
        return list(source.get(locale, []))
