"""Tests for the note-code expander."""

from conftest import FACT_HEADER, fact_columns, make_dataset, make_upload, write_csv
from statcube.constants.cube import NOTE_CODES, ColumnRole
from statcube.cube.notes import NoteCodeExpander
from statcube.cube.reconciler import RevisionReconciler, select_uploads


def prepared(make_context, dataset):
    ctx = make_context(dataset)
    RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))
    return ctx


def notes_by_row(ctx, fragments, locale):
    select = ctx.engine.query_builder.build_view_select(fragments, locale, "fact_table")
    select = select.replace("SELECT ", 'SELECT "fact_table"."RowRef", ', 1)
    _, rows = ctx.fetch_rows(select)
    return {row[0]: row[1] for row in rows}


class TestNoteCodeExpander:
    """Test note code tables and the notes column of the views."""

    def test_note_codes_table_has_every_code_per_locale(self, make_context, dataset):
        ctx = prepared(make_context, dataset)
        NoteCodeExpander(ctx).resolve()

        count = ctx.fetch_scalar('SELECT COUNT(*) FROM "note_codes"')
        assert count == len(NOTE_CODES) * 2

    def test_descriptions_are_joined_and_sorted(self, make_context, dataset):
        ctx = prepared(make_context, dataset)

        fragments = NoteCodeExpander(ctx).resolve()

        english = notes_by_row(ctx, fragments, "en-GB")
        welsh = notes_by_row(ctx, fragments, "cy-GB")
        assert english["5"] == "Average, Revised"
        assert welsh["5"] == "Cyfartaledd, Diwygiedig"
        assert english["3"] == "Provisional"
        assert english["1"] == ""
        assert fragments.lookup_tables == ["note_codes", "all_notes"]

    def test_codes_match_whole_tokens_only(self, make_context, files_dir):
        write_csv(files_dir / "fact.csv", FACT_HEADER, [
            ["2020", "W01", 1.0, "1", "1", "ar"],
            ["2020", "W02", 2.0, "2", "1", " a , r "],
        ])
        dataset = make_dataset([[make_upload("up-1", "fact.csv")]])
        ctx = prepared(make_context, dataset)

        fragments = NoteCodeExpander(ctx).resolve()
        english = notes_by_row(ctx, fragments, "en-GB")

        assert english["1"] == ""
        assert english["2"] == "Average, Revised"

    def test_without_notes_column_contributes_nothing(self, make_context, files_dir):
        columns = [c for c in fact_columns() if c.role != ColumnRole.NOTE_CODES]
        write_csv(files_dir / "fact.csv", [c.name for c in columns], [["2020", "W01", 1.0, "1", "1"]])
        dataset = make_dataset([[make_upload("up-1", "fact.csv", columns=columns)]], dimensions=[])
        ctx = prepared(make_context, dataset)

        fragments = NoteCodeExpander(ctx).resolve()

        assert fragments.selects_for("en-GB") == []
        assert not ctx.engine.table_exists("note_codes")
