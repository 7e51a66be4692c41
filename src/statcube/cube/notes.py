"""Note-code expander.

Turns the comma-separated note codes of each fact row into the translated,
comma-joined descriptions of those codes. Codes are matched by splitting
the stored value, so "a,r" matches exactly ``a`` and ``r``.
"""

from statcube.constants.cube import (
    ALL_NOTES_TABLE_NAME,
    FACT_TABLE_NAME,
    NOTE_CODE_SEPARATOR,
    NOTE_CODES,
    NOTE_CODES_TABLE_NAME,
    HeaderKey,
)
from statcube.cube.context import CubeBuildContext
from statcube.logging import get_logger
from statcube.operations import (
    ColumnRef,
    CreateTable,
    Expression,
    Insert,
    JoinClause,
    JoinCondition,
    SelectItem,
    ViewFragments,
)
from statcube.protocols import ColumnDefinition

logger = get_logger(__name__)

DESCRIPTION_SEPARATOR = ", "


class NoteCodeExpander:
    """Builds ``note_codes`` and ``all_notes`` and joins them onto the fact table."""

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx
        self.notes_column = ctx.fact_schema.note_codes_column.name if ctx.fact_schema.note_codes_column else None

    def resolve(self) -> ViewFragments:
        if self.notes_column is None:
            return ViewFragments.empty(self.ctx.locales)

        self.create_note_codes_table()
        self.create_all_notes_table()

        join = JoinClause(
            table=ALL_NOTES_TABLE_NAME,
            conditions=[JoinCondition(
                left=ColumnRef(table=ALL_NOTES_TABLE_NAME, column="code"),
                right=self.ctx.fact_column(self.notes_column),
            )],
            locale_column="language",
        )
        return ViewFragments.per_locale(
            self.ctx.locales,
            lambda locale: [SelectItem(
                expression=Expression(
                    template="COALESCE({c0}, '')",
                    columns=[ColumnRef(table=ALL_NOTES_TABLE_NAME, column="description")],
                ),
                alias=self.ctx.translate(HeaderKey.NOTES.value, locale),
            )],
            joins=[join],
            lookup_tables=[NOTE_CODES_TABLE_NAME, ALL_NOTES_TABLE_NAME],
        )

    def create_note_codes_table(self) -> None:
        """One row per (note code, locale) with the translated description."""
        self.ctx.execute(CreateTable(
            object_name=NOTE_CODES_TABLE_NAME,
            columns=[
                ColumnDefinition(name="code", data_type="VARCHAR", nullable=False),
                ColumnDefinition(name="language", data_type="VARCHAR", nullable=False),
                ColumnDefinition(name="tag", data_type="VARCHAR", nullable=False),
                ColumnDefinition(name="description", data_type="VARCHAR"),
                ColumnDefinition(name="notes", data_type="VARCHAR"),
            ],
            recreate=True,
        ))
        rows = [
            [note.code, locale.lower(), note.tag, self.ctx.translate(note.translation_key, locale), None]
            for locale in self.ctx.locales
            for note in NOTE_CODES
        ]
        self.ctx.execute_many(Insert(
            object_name=NOTE_CODES_TABLE_NAME,
            columns=["code", "language", "tag", "description", "notes"],
            values=rows,
        ))

    def create_all_notes_table(self) -> None:
        """Descriptions of every distinct note code value, per locale, sorted."""
        codes = self.ctx.quote("codes")
        note_codes = self.ctx.quote(NOTE_CODES_TABLE_NAME)
        stored = f"{codes}.{self.ctx.quote('code')}"
        split = (
            f"string_split(replace(lower({stored}), ' ', ''), {self.ctx.literal(NOTE_CODE_SEPARATOR)})"
        )
        select = (
            f"SELECT {stored} AS code, {note_codes}.language AS language, "
            f"string_agg(DISTINCT {note_codes}.description, {self.ctx.literal(DESCRIPTION_SEPARATOR)} "
            f"ORDER BY {note_codes}.description) AS description "
            f"FROM (SELECT DISTINCT {self.ctx.quote(self.notes_column)} AS code "
            f"FROM {self.ctx.quote(FACT_TABLE_NAME)} WHERE {self.ctx.quote(self.notes_column)} IS NOT NULL) AS {codes} "
            f"JOIN {note_codes} ON list_contains({split}, {note_codes}.code) "
            f"GROUP BY {stored}, {note_codes}.language"
        )
        self.ctx.execute(CreateTable(object_name=ALL_NOTES_TABLE_NAME, select_query=select, recreate=True))
        logger.debug("Note codes expanded", extra={**self.ctx.telemetry, "notes.column": self.notes_column})
