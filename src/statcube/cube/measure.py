"""Measure resolver.

Builds the ``measure`` table from inline rows or an attached lookup file and
formats the data value column according to the display type of each
measure row. Only the display types actually present contribute a branch
to the formatting CASE.
"""

from typing import List, Optional

from statcube.common.exceptions import MeasureConfigError, stage_error
from statcube.constants.cube import (
    DISPLAY_TYPE_FORMATS,
    FALLBACK_DISPLAY_FORMAT,
    MEASURE_TABLE_NAME,
    DisplayType,
    HeaderKey,
)
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
from statcube.types import Measure, MeasureLookupExtractor

logger = get_logger(__name__)

MEASURE_DRAFT_TABLE_NAME = f"{MEASURE_TABLE_NAME}_draft"
_MEASURE_COLUMNS = ["reference", "language", "description", "notes", "sort_order", "display_type"]


def display_format(display_type: str) -> str:
    """Format template for a display type, verbatim text when unknown."""
    try:
        return DISPLAY_TYPE_FORMATS[DisplayType(display_type)]
    except ValueError:
        return FALLBACK_DISPLAY_FORMAT


class MeasureResolver:
    """Resolves the dataset's measure into view fragments."""

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx
        self.fact_schema = ctx.fact_schema
        self.measure: Optional[Measure] = ctx.dataset.measure

    @property
    def applies(self) -> bool:
        """A measure with a join column over a fact table with a measure column."""
        return (
            self.measure is not None
            and bool(self.measure.join_column)
            and self.fact_schema.measure_column is not None
        )

    def resolve(self) -> ViewFragments:
        if not self.applies:
            return self._unformatted()

        measure = self.measure
        if not measure.has_inline_info and not measure.has_lookup:
            raise stage_error(
                MeasureConfigError,
                "Measure declares neither inline measure info nor a lookup table",
                stage="measure",
                measure_id=measure.id,
            )

        self._create_measure_table()
        if measure.has_inline_info:
            self._load_inline()
        else:
            self._load_lookup()

        self.ctx.insert_filter_rows(
            MEASURE_TABLE_NAME,
            self.ctx.column(MEASURE_TABLE_NAME, "reference"),
            self.fact_schema.measure_column.name,
            {locale: measure.display_name(locale) for locale in self.ctx.locales},
            self.ctx.column(MEASURE_TABLE_NAME, "description"),
            language_column="language",
        )

        return self._formatted()

    def _create_measure_table(self) -> None:
        self.ctx.execute(CreateTable(
            object_name=MEASURE_TABLE_NAME,
            columns=[
                ColumnDefinition(name="reference", data_type=self.fact_schema.measure_column.physical_type),
                ColumnDefinition(name="language", data_type="VARCHAR"),
                ColumnDefinition(name="description", data_type="VARCHAR"),
                ColumnDefinition(name="notes", data_type="VARCHAR"),
                ColumnDefinition(name="sort_order", data_type="INTEGER"),
                ColumnDefinition(name="display_type", data_type="VARCHAR"),
            ],
            recreate=True,
        ))

    def _load_inline(self) -> None:
        rows = [
            [row.reference, row.language.lower(), row.description, row.notes, row.sort_order, str(row.display_type)]
            for row in self.measure.measure_info
        ]
        self.ctx.execute_many(Insert(
            object_name=MEASURE_TABLE_NAME,
            columns=_MEASURE_COLUMNS,
            values=rows,
            casts={"reference": self.fact_schema.measure_column.physical_type},
        ))
        logger.debug("Loaded inline measure info", extra={**self.ctx.telemetry, "rows": str(len(rows))})

    def _load_lookup(self) -> None:
        measure = self.measure
        load_file(self.ctx, measure.lookup_table, MEASURE_DRAFT_TABLE_NAME, stage="measure", entity_key="lookup_table_id")
        if measure.extractor.is_legacy_wide_format:
            select = self._wide_select(measure.join_column, measure.extractor)
        else:
            select = self._long_select(measure.join_column, measure.extractor)
        self.ctx.execute(Insert(object_name=MEASURE_TABLE_NAME, columns=_MEASURE_COLUMNS, source_query=select))
        drop_table(self.ctx, MEASURE_DRAFT_TABLE_NAME)

    def _wide_select(self, join_column: str, extractor: MeasureLookupExtractor) -> str:
        """One projection per locale; the format column is a decimal flag."""
        if extractor.format_column:
            display_type = (
                f"CASE WHEN COALESCE(TRY_CAST({self.ctx.quote(extractor.format_column)} AS BOOLEAN), false) "
                f"THEN {self.ctx.literal(DisplayType.DECIMAL.value)} ELSE {self.ctx.literal(DisplayType.INTEGER.value)} END"
            )
        else:
            display_type = self.ctx.literal(DisplayType.TEXT.value)

        projections = []
        for locale in self.ctx.locales:
            description = extractor.description_column(locale)
            description_sql = description_or_empty(self.ctx, description)
            projections.append(
                f"SELECT {self.ctx.quote(join_column)}, {self.ctx.literal(locale.lower())}, {description_sql}, "
                f"{optional_cast(self.ctx, extractor.notes_column(locale), 'VARCHAR')}, "
                f"{optional_cast(self.ctx, extractor.sort_column, 'INTEGER')}, {display_type} "
                f"FROM {self.ctx.quote(MEASURE_DRAFT_TABLE_NAME)}"
            )
        return " UNION ALL ".join(projections)

    def _long_select(self, join_column: str, extractor: MeasureLookupExtractor) -> str:
        language = language_case(self.ctx, extractor.language_column)
        description = extractor.description_columns[0].name
        notes = extractor.notes_columns[0].name if extractor.notes_columns else None
        if extractor.format_column:
            display_type = f"COALESCE(lower(CAST({self.ctx.quote(extractor.format_column)} AS VARCHAR)), 'text')"
        else:
            display_type = self.ctx.literal(DisplayType.TEXT.value)
        inner = (
            f"SELECT {self.ctx.quote(join_column)} AS reference, {language} AS language, "
            f"{description_or_empty(self.ctx, description)} AS description, "
            f"{optional_cast(self.ctx, notes, 'VARCHAR')} AS notes, "
            f"{optional_cast(self.ctx, extractor.sort_column, 'INTEGER')} AS sort_order, "
            f"{display_type} AS display_type FROM {self.ctx.quote(MEASURE_DRAFT_TABLE_NAME)}"
        )
        return (
            "SELECT reference, language, description, notes, sort_order, display_type "
            f"FROM ({inner}) WHERE language IS NOT NULL"
        )

    def display_types(self) -> List[str]:
        _, rows = self.ctx.fetch_rows(
            f"SELECT DISTINCT display_type FROM {self.ctx.quote(MEASURE_TABLE_NAME)} "
            "WHERE display_type IS NOT NULL ORDER BY display_type"
        )
        return [row[0] for row in rows]

    def format_expression(self, data_column: str) -> Expression:
        """CASE over measure.display_type with one branch per type in use."""
        display_types = self.display_types()
        branches = []
        for index, display_type in enumerate(display_types):
            rendered = display_format(display_type).replace("{column}", "{c1}")
            branches.append(f"WHEN {{c0}} = {{s{index}}} THEN {rendered}")
        fallback = FALLBACK_DISPLAY_FORMAT.replace("{column}", "{c1}")
        template = f"CASE {' '.join(branches)} ELSE {fallback} END" if branches else fallback
        return Expression(
            template=template,
            columns=[
                ColumnRef(table=MEASURE_TABLE_NAME, column="display_type"),
                self.ctx.fact_column(data_column),
            ],
            literals=display_types,
        )

    def _formatted(self) -> ViewFragments:
        data_column = self.fact_schema.data_values_column.name if self.fact_schema.data_values_column else None
        measure_column = self.fact_schema.measure_column.name
        formatted = self.format_expression(data_column) if data_column else None

        def selects(locale: str, raw: bool) -> List[SelectItem]:
            items = []
            if data_column:
                value = self.ctx.fact_column(data_column) if raw else formatted
                items.append(SelectItem(
                    expression=value,
                    alias=self.ctx.translate(HeaderKey.DATA_VALUES.value, locale),
                ))
            items.append(SelectItem(
                expression=ColumnRef(table=MEASURE_TABLE_NAME, column="description"),
                alias=self.measure.display_name(locale),
            ))
            return items

        join = JoinClause(
            table=MEASURE_TABLE_NAME,
            conditions=[JoinCondition(
                left=ColumnRef(table=MEASURE_TABLE_NAME, column="reference"),
                right=self.ctx.fact_column(measure_column),
                cast_to_text=True,
            )],
            locale_column="language",
        )
        return ViewFragments.per_locale(
            self.ctx.locales,
            lambda locale: selects(locale, raw=False),
            lambda locale: selects(locale, raw=True),
            joins=[join],
            order_bys=[
                OrderBy(column=ColumnRef(table=MEASURE_TABLE_NAME, column="sort_order")),
                OrderBy(column=ColumnRef(table=MEASURE_TABLE_NAME, column="reference")),
            ],
            lookup_tables=[MEASURE_TABLE_NAME],
        )

    def _unformatted(self) -> ViewFragments:
        """Data values and the measure column as stored."""
        if self.measure is not None:
            logger.debug(
                "Measure has no join column or the fact table has no measure column; rendering raw values",
                extra={**self.ctx.telemetry, "measure.id": str(self.measure.id)},
            )
        data_column = self.fact_schema.data_values_column
        measure_column = self.fact_schema.measure_column

        def selects(locale: str) -> List[SelectItem]:
            items = []
            if data_column is not None:
                items.append(SelectItem(
                    expression=self.ctx.fact_column(data_column.name),
                    alias=self.ctx.translate(HeaderKey.DATA_VALUES.value, locale),
                ))
            if measure_column is not None:
                items.append(SelectItem(
                    expression=self.ctx.fact_column(measure_column.name),
                    alias=self.ctx.translate(HeaderKey.MEASURE.value, locale),
                ))
            return items

        return ViewFragments.per_locale(self.ctx.locales, selects)
