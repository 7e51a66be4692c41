"""Dimension resolver.

Renders every declared dimension (except note codes) into view fragments.
Pass-through kinds project the fact column under its localized name;
date dimensions with an extractor and resolved lookup-table dimensions
build a lookup table, validate that every fact value has a lookup row and
join it in.
"""

from datetime import datetime
from typing import Callable, Dict, List, Tuple, Type

from statcube.common.exceptions import (
    DimensionBuildError,
    DimensionValidationError,
    StatCubeError,
    stage_error,
)
from statcube.constants.cube import FACT_TABLE_NAME, HeaderKey, NumberType
from statcube.cube.context import CubeBuildContext
from statcube.cube.loader import drop_table, load_file
from statcube.cube.lookups import description_or_empty, language_case, optional_cast
from statcube.logging import get_logger
from statcube.operations import (
    ColumnRef,
    CreateTable,
    Expression,
    Insert,
    JoinClause,
    JoinCondition,
    OrderBy,
    SelectItem,
    ViewFragments,
)
from statcube.protocols import ColumnDefinition
from statcube.types import (
    DateDimension,
    LookupTableDimension,
    LookupTableExtractor,
    NoteCodesDimension,
    NumericDimension,
    PassThroughDimension,
    PeriodCovered,
    ReferenceDataDimension,
    ResolvedLookup,
    TextDimension,
)
from statcube.types.dataset import ColumnDescriptor
from statcube.utils.identifiers import lookup_table_name

logger = get_logger(__name__)

# Unmatched fact values reported in a validation error
VALIDATION_SAMPLE_SIZE = 10
DATE_DISPLAY_FORMAT = "%d/%m/%Y"


class DimensionResolver:
    """Resolves the dataset's dimensions in fact table column order.

    Attributes:
        ctx: Build context
        lookup_tables: Lookup tables created so far
        periods: Earliest start and latest end over every date lookup
    """

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx
        self.lookup_tables: List[str] = []
        self.periods = PeriodCovered()
        self._handlers: Dict[Type, Callable] = {
            PassThroughDimension: self._pass_through,
            TextDimension: self._text,
            NumericDimension: self._numeric,
            DateDimension: self._date,
            LookupTableDimension: self._lookup_table,
            ReferenceDataDimension: self._reference_data,
        }

    def ordered_dimensions(self) -> List:
        """Declared dimensions sorted by fact table column position.

        Raises:
            DimensionBuildError: If a dimension names a column the fact table lacks
        """
        dimensions = [d for d in self.ctx.dataset.dimensions if not isinstance(d, NoteCodesDimension)]
        for dimension in dimensions:
            if self.ctx.fact_schema.dimension_position(dimension.fact_table_column) < 0:
                raise stage_error(
                    DimensionBuildError,
                    f"Dimension {dimension.id} refers to missing fact table column {dimension.fact_table_column}",
                    stage="dimensions",
                    dimension_id=dimension.id,
                )
        return sorted(dimensions, key=lambda d: self.ctx.fact_schema.dimension_position(d.fact_table_column))

    def resolve(self) -> ViewFragments:
        """Resolve every dimension and return the merged fragments."""
        fragments = ViewFragments.empty(self.ctx.locales)
        for dimension in self.ordered_dimensions():
            try:
                handler = self._handlers[type(dimension)]
                fragments = fragments.merge(handler(dimension))
            except StatCubeError as exc:
                raise stage_error(
                    DimensionBuildError,
                    f"Failed to build dimension {dimension.id} ({dimension.fact_table_column})",
                    stage="dimensions",
                    cause=exc,
                    dimension_id=dimension.id,
                )
            logger.debug(
                "Dimension resolved",
                extra={**self.ctx.telemetry, "dimension.id": dimension.id, "dimension.type": str(dimension.type)},
            )
        return fragments

    # Helpers

    def claim_table_name(self, column: str) -> str:
        """Lookup table name for ``column``, suffixed when another column already took it.

        ``Geo2011`` and ``Geo2021`` both reduce to ``geo_lookup``; the second
        becomes ``geo_lookup_2``.
        """
        base = lookup_table_name(column)
        name, suffix = base, 2
        while name in self.lookup_tables:
            name = f"{base}_{suffix}"
            suffix += 1
        return name

    def _names(self, dimension) -> Dict[str, str]:
        return {locale: dimension.display_name(locale) for locale in self.ctx.locales}

    def _fact_descriptor(self, dimension) -> ColumnDescriptor:
        return self.ctx.fact_schema.get_column(dimension.fact_table_column)

    def _project(self, dimension, expression) -> ViewFragments:
        return ViewFragments.per_locale(
            self.ctx.locales,
            lambda locale: [SelectItem(expression=expression, alias=dimension.display_name(locale))],
        )

    def _record_raw_filter(self, dimension) -> None:
        column = self.ctx.column(FACT_TABLE_NAME, dimension.fact_table_column)
        self.ctx.insert_filter_rows(
            FACT_TABLE_NAME, column, dimension.fact_table_column, self._names(dimension), column
        )

    def validate_lookup(self, dimension, table: str) -> None:
        """Anti-join the fact column against ``table``.

        Raises:
            DimensionValidationError: If any fact value has no lookup row
        """
        column = dimension.fact_table_column
        fact_value = f"CAST({self.ctx.quote('f')}.{self.ctx.quote(column)} AS VARCHAR)"
        lookup_value = f"CAST({self.ctx.quote('l')}.{self.ctx.quote(column)} AS VARCHAR)"
        query = (
            f"SELECT DISTINCT {fact_value} FROM {self.ctx.quote(FACT_TABLE_NAME)} AS {self.ctx.quote('f')} "
            f"LEFT JOIN {self.ctx.quote(table)} AS {self.ctx.quote('l')} ON {lookup_value} = {fact_value} "
            f"WHERE {self.ctx.quote('l')}.{self.ctx.quote(column)} IS NULL"
        )
        _, rows = self.ctx.fetch_rows(query)
        if rows:
            unmatched = [row[0] for row in rows]
            raise DimensionValidationError(
                f"{len(unmatched)} value(s) of {column} have no match in {table}",
                details={
                    "dimension_id": dimension.id,
                    "unmatched_rows": len(unmatched),
                    "sample": unmatched[:VALIDATION_SAMPLE_SIZE],
                },
            )

    # Kinds

    def _pass_through(self, dimension) -> ViewFragments:
        self._record_raw_filter(dimension)
        return self._project(dimension, self.ctx.fact_column(dimension.fact_table_column))

    def _text(self, dimension: TextDimension) -> ViewFragments:
        self._record_raw_filter(dimension)
        expression = Expression(
            template="CAST({c0} AS VARCHAR)",
            columns=[self.ctx.fact_column(dimension.fact_table_column)],
        )
        return self._project(dimension, expression)

    def _numeric(self, dimension: NumericDimension) -> ViewFragments:
        self._record_raw_filter(dimension)
        fact = self.ctx.fact_column(dimension.fact_table_column)
        extractor = dimension.extractor
        if extractor is None:
            return self._project(dimension, fact)
        if extractor.type == NumberType.INTEGER:
            template = "CAST({c0} AS INTEGER)"
        else:
            template = f"printf('%,.{int(extractor.decimal_places)}f', CAST({{c0}} AS DOUBLE))"
        return self._project(dimension, Expression(template=template, columns=[fact]))

    def _reference_data(self, dimension: ReferenceDataDimension) -> ViewFragments:
        logger.error(
            "Reference data dimensions are not supported; rendering the raw column",
            extra={**self.ctx.telemetry, "dimension.id": dimension.id},
        )
        return self._pass_through(dimension)

    def _date(self, dimension: DateDimension) -> ViewFragments:
        if dimension.extractor is None:
            return self._pass_through(dimension)

        column = dimension.fact_table_column
        descriptor = self._fact_descriptor(dimension)
        table = self.claim_table_name(column)

        self.ctx.execute(CreateTable(
            object_name=table,
            columns=[
                ColumnDefinition(name=column, data_type=descriptor.physical_type),
                ColumnDefinition(name="language", data_type="VARCHAR"),
                ColumnDefinition(name="description", data_type="VARCHAR"),
                ColumnDefinition(name="date_type", data_type="VARCHAR"),
                ColumnDefinition(name="start_date", data_type="TIMESTAMP"),
                ColumnDefinition(name="end_date", data_type="TIMESTAMP"),
            ],
            recreate=True,
            logging_context={"dimension_id": dimension.id},
        ))

        _, rows = self.ctx.fetch_rows(
            f"SELECT DISTINCT CAST({self.ctx.quote(column)} AS VARCHAR) FROM {self.ctx.quote(FACT_TABLE_NAME)} "
            f"WHERE {self.ctx.quote(column)} IS NOT NULL"
        )
        values = [row[0] for row in rows]
        periods = self.ctx.date_lookup.build_date_lookup(dimension.extractor, values)

        parameters = [
            [
                period.date_code,
                locale.lower(),
                period.description,
                self.ctx.translate(period.type, locale),
                _naive(period.start),
                _naive(period.end),
            ]
            for period in periods
            for locale in self.ctx.locales
        ]
        self.ctx.execute_many(Insert(
            object_name=table,
            columns=[column, "language", "description", "date_type", "start_date", "end_date"],
            values=parameters,
            casts={column: descriptor.physical_type, "start_date": "TIMESTAMP", "end_date": "TIMESTAMP"},
            logging_context={"dimension_id": dimension.id},
        ))
        self.lookup_tables.append(table)
        self._extend_periods(periods)

        self.validate_lookup(dimension, table)

        self.ctx.insert_filter_rows(
            table,
            self.ctx.column(table, column),
            column,
            self._names(dimension),
            self.ctx.column(table, "description"),
            language_column="language",
        )

        def selects(locale: str) -> List[SelectItem]:
            return [
                SelectItem(expression=ColumnRef(table=table, column="description"), alias=dimension.display_name(locale)),
                SelectItem(
                    expression=Expression(
                        template="strftime({c0}, {s0})",
                        columns=[ColumnRef(table=table, column="start_date")],
                        literals=[DATE_DISPLAY_FORMAT],
                    ),
                    alias=self.ctx.translate(HeaderKey.START_DATE.value, locale),
                ),
                SelectItem(
                    expression=Expression(
                        template="strftime({c0}, {s0})",
                        columns=[ColumnRef(table=table, column="end_date")],
                        literals=[DATE_DISPLAY_FORMAT],
                    ),
                    alias=self.ctx.translate(HeaderKey.END_DATE.value, locale),
                ),
            ]

        return ViewFragments.per_locale(
            self.ctx.locales,
            selects,
            joins=[self._locale_join(table, column)],
            order_bys=[OrderBy(column=ColumnRef(table=table, column="end_date"))],
            lookup_tables=[table],
        )

    def _lookup_table(self, dimension: LookupTableDimension) -> ViewFragments:
        if not dimension.is_resolved:
            logger.warning(
                "Lookup table dimension has no lookup table or extractor attached; rendering the raw column",
                extra={**self.ctx.telemetry, "dimension.id": dimension.id},
            )
            return self._pass_through(dimension)

        source = dimension.source
        column = dimension.fact_table_column
        extractor = source.extractor
        table = self.load_lookup(dimension, source)
        self.lookup_tables.append(table)

        self.validate_lookup(dimension, table)

        self.ctx.insert_filter_rows(
            table,
            self.ctx.column(table, column),
            column,
            self._names(dimension),
            self.ctx.column(table, "description"),
            language_column="language",
        )

        order_bys = []
        if extractor.sort_column:
            order_bys.append(OrderBy(column=ColumnRef(table=table, column="sort_order")))

        return ViewFragments.per_locale(
            self.ctx.locales,
            lambda locale: [
                SelectItem(expression=ColumnRef(table=table, column="description"), alias=dimension.display_name(locale))
            ],
            joins=[self._locale_join(table, column)],
            order_bys=order_bys,
            lookup_tables=[table],
        )

    def load_lookup(self, dimension: LookupTableDimension, source: ResolvedLookup) -> str:
        """Load the attached file and normalize it into ``<column>_lookup``.

        The normalized table holds one row per (code, language) with the
        code in a column named after the fact table column.
        """
        column = dimension.fact_table_column
        descriptor = self._fact_descriptor(dimension)
        table = self.claim_table_name(column)
        draft = f"{table}_draft"

        load_file(self.ctx, source.lookup_table, draft, stage="dimensions", entity_key="lookup_table_id")

        self.ctx.execute(CreateTable(
            object_name=table,
            columns=[
                ColumnDefinition(name=column, data_type=descriptor.physical_type, nullable=False),
                ColumnDefinition(name="language", data_type="VARCHAR"),
                ColumnDefinition(name="description", data_type="VARCHAR", nullable=False),
                ColumnDefinition(name="notes", data_type="VARCHAR"),
                ColumnDefinition(name="sort_order", data_type="INTEGER"),
            ],
            recreate=True,
            logging_context={"dimension_id": dimension.id},
        ))

        join_column = dimension.join_column or column
        extractor = source.extractor
        if extractor.is_legacy_wide_format:
            select = self._wide_lookup_select(draft, join_column, extractor)
        else:
            select = self._long_lookup_select(draft, join_column, extractor)

        self.ctx.execute(Insert(
            object_name=table,
            columns=[column, "language", "description", "notes", "sort_order"],
            source_query=select,
            logging_context={"dimension_id": dimension.id},
        ))
        drop_table(self.ctx, draft)
        return table

    def _wide_lookup_select(self, draft: str, join_column: str, extractor: LookupTableExtractor) -> str:
        """One projection per locale over the wide file, unioned into long form."""
        projections = []
        for locale in self.ctx.locales:
            description = extractor.description_column(locale)
            description_sql = description_or_empty(self.ctx, description)
            projections.append(
                f"SELECT {self.ctx.quote(join_column)}, {self.ctx.literal(locale.lower())}, {description_sql}, "
                f"{optional_cast(self.ctx, extractor.notes_column(locale), 'VARCHAR')}, "
                f"{optional_cast(self.ctx, extractor.sort_column, 'INTEGER')} FROM {self.ctx.quote(draft)}"
            )
        return " UNION ALL ".join(projections)

    def _long_lookup_select(self, draft: str, join_column: str, extractor: LookupTableExtractor) -> str:
        description = extractor.description_columns[0].name
        notes = extractor.notes_columns[0].name if extractor.notes_columns else None
        inner = (
            f"SELECT {self.ctx.quote(join_column)} AS code, {language_case(self.ctx, extractor.language_column)} AS language, "
            f"{description_or_empty(self.ctx, description)} AS description, "
            f"{optional_cast(self.ctx, notes, 'VARCHAR')} AS notes, "
            f"{optional_cast(self.ctx, extractor.sort_column, 'INTEGER')} AS sort_order FROM {self.ctx.quote(draft)}"
        )
        return f"SELECT code, language, description, notes, sort_order FROM ({inner}) WHERE language IS NOT NULL"

    def _locale_join(self, table: str, column: str) -> JoinClause:
        return JoinClause(
            table=table,
            conditions=[
                JoinCondition(
                    left=ColumnRef(table=table, column=column),
                    right=self.ctx.fact_column(column),
                )
            ],
            locale_column="language",
        )

    def _extend_periods(self, periods) -> None:
        if not periods:
            return
        start = min(_naive(p.start) for p in periods)
        end = max(_naive(p.end) for p in periods)
        current_start, current_end = self.periods.start_date, self.periods.end_date
        self.periods = PeriodCovered(
            start_date=start if current_start is None else min(start, current_start),
            end_date=end if current_end is None else max(end, current_end),
        )


def _naive(value: datetime) -> datetime:
    """TIMESTAMP columns hold wall-clock values; drop any zone."""
    return value.replace(tzinfo=None) if value.tzinfo else value


def period_metadata(periods: PeriodCovered) -> List[Tuple[str, str]]:
    """Metadata rows describing the period covered by the date dimensions."""
    rows = []
    if periods.start_date is not None:
        rows.append(("start_date", periods.start_date.isoformat()))
    if periods.end_date is not None:
        rows.append(("end_date", periods.end_date.isoformat()))
    return rows
