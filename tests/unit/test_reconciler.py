"""Tests for upload selection and the revision reconciler."""

from datetime import timedelta

import pytest

from conftest import BASE_TIME, FACT_HEADER, FACT_ROWS, fact_columns, make_dataset, make_upload, write_csv
from statcube.common.exceptions import UploadLoadError
from statcube.constants.cube import ColumnRole, RevisionAction
from statcube.cube.reconciler import RevisionReconciler, select_uploads
from statcube.types import Revision


def fact_rows(ctx):
    _, rows = ctx.fetch_rows(
        'SELECT "YearCode", "AreaCode", "Data", "RowRef", "Measure", "NoteCodes" '
        'FROM "fact_table" ORDER BY "RowRef"'
    )
    return rows


def by_row_ref(ctx):
    return {row[3]: row for row in fact_rows(ctx)}


class TestSelectUploads:
    """Test which uploads make up a revision and their order."""

    def test_numbered_revision_takes_chain_in_upload_order(self):
        first = make_upload("up-1", "a.csv", minutes=0)
        second = make_upload("up-2", "b.csv", minutes=30)
        third = make_upload("up-3", "c.csv", minutes=10)
        dataset = make_dataset([[first, second], [third]])

        uploads = select_uploads(dataset, dataset.get_revision("rev-2"))

        assert [u.id for u in uploads] == ["up-1", "up-3", "up-2"]

    def test_numbered_revision_ignores_later_revisions(self):
        dataset = make_dataset([[make_upload("up-1", "a.csv")], [make_upload("up-2", "b.csv", minutes=5)]])
        uploads = select_uploads(dataset, dataset.get_revision("rev-1"))
        assert [u.id for u in uploads] == ["up-1"]

    def test_draft_includes_earlier_revisions_and_itself(self):
        dataset = make_dataset([[make_upload("up-1", "a.csv")]])
        draft = Revision(
            id="draft",
            revision_index=0,
            created_at=BASE_TIME + timedelta(days=30),
            uploads=[make_upload("up-draft", "d.csv", minutes=60)],
        )
        dataset.revisions.append(draft)

        uploads = select_uploads(dataset, draft)

        assert [u.id for u in uploads] == ["up-1", "up-draft"]

    def test_no_uploads_raises(self):
        dataset = make_dataset([[]])
        with pytest.raises(UploadLoadError) as exc_info:
            select_uploads(dataset, dataset.founding_revision)
        assert exc_info.value.details["reason"] == "no_uploads"
        assert exc_info.value.details["stage"] == "reconcile"


class TestRevisionReconciler:
    """Test folding uploads into the fact table."""

    def test_add_loads_every_row(self, make_context, dataset, fetcher):
        ctx = make_context(dataset)

        applied = RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert applied == 1
        rows = fact_rows(ctx)
        assert len(rows) == 6
        assert rows[0] == ("2020", "W01", 10.5, "1", "1", None)
        assert not ctx.engine.table_exists("staging_table")
        assert all(not path.exists() for path in fetcher.fetched)

    def test_replace_all_clears_previous_rows(self, make_context, files_dir, fact_file):
        write_csv(files_dir / "replace.csv", FACT_HEADER, [["2030", "W09", 1.0, "9", "1", ""]])
        dataset = make_dataset([
            [make_upload("up-1", fact_file.name)],
            [make_upload("up-2", "replace.csv", action=RevisionAction.REPLACE_ALL, minutes=5)],
        ])
        ctx = make_context(dataset, dataset.get_revision("rev-2"))

        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert fact_rows(ctx) == [("2030", "W09", 1.0, "9", "1", None)]

    def test_reconcile_is_deterministic(self, make_context, files_dir, fact_file):
        write_csv(files_dir / "more.csv", FACT_HEADER, [["2023", "W01", 13.0, "7", "1", ""]])
        dataset = make_dataset([[
            make_upload("up-2", "more.csv", minutes=5),
            make_upload("up-1", fact_file.name, minutes=0),
        ]])
        ctx = make_context(dataset)
        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))
        first = fact_rows(ctx)

        ctx.engine.execute_query('DELETE FROM "fact_table"')
        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert fact_rows(ctx) == first
        assert len(first) == 7

    def test_revise_updates_flagged_rows_only(self, make_context, files_dir, fact_file):
        write_csv(files_dir / "revise.csv", FACT_HEADER, [
            ["2020", "W01", 99.0, "1", "1", "r"],
            ["2020", "W02", 30.0, "2", "1", "r"],
            ["2021", "W01", 50.0, "3", "1", ""],
            ["2022", "W01", 55.0, "5", "2", "R"],
        ])
        dataset = make_dataset([
            [make_upload("up-1", fact_file.name)],
            [make_upload("up-2", "revise.csv", action=RevisionAction.REVISE, minutes=5)],
        ])
        ctx = make_context(dataset, dataset.get_revision("rev-2"))

        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        rows = by_row_ref(ctx)
        assert len(rows) == 6
        assert rows["1"][2] == 99.0 and rows["1"][5] == "r"
        assert rows["2"][2] == 30.0 and rows["2"][5] == "a,r"
        assert rows["3"][2] == 11.0 and rows["3"][5] == "p"
        assert rows["5"][2] == 55.0 and rows["5"][5] == "a,r"
        assert not ctx.engine.table_exists("update_table")

    def test_add_revise_revises_and_appends(self, make_context, files_dir, fact_file):
        write_csv(files_dir / "add_revise.csv", FACT_HEADER, [
            ["2021", "W01", 77.0, "3", "1", "r"],
            ["2023", "W01", 13.0, "7", "1", ""],
        ])
        dataset = make_dataset([
            [make_upload("up-1", fact_file.name)],
            [make_upload("up-2", "add_revise.csv", action=RevisionAction.ADD_REVISE, minutes=5)],
        ])
        ctx = make_context(dataset, dataset.get_revision("rev-2"))

        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        rows = by_row_ref(ctx)
        assert len(rows) == 7
        assert rows["3"][2] == 77.0 and rows["3"][5] == "p,r"
        assert rows["7"] == ("2023", "W01", 13.0, "7", "1", None)

    def test_add_revise_skips_rows_already_in_fact_table(self, make_context, files_dir, fact_file):
        write_csv(files_dir / "add_revise.csv", FACT_HEADER, [
            ["2020", "W01", 10.5, "1", "1", ""],
            ["2021", "W01", 77.0, "3", "1", "r"],
            ["2023", "W01", 13.0, "7", "1", ""],
        ])
        dataset = make_dataset([
            [make_upload("up-1", fact_file.name)],
            [make_upload("up-2", "add_revise.csv", action=RevisionAction.ADD_REVISE, minutes=5)],
        ])
        ctx = make_context(dataset, dataset.get_revision("rev-2"))

        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        rows = by_row_ref(ctx)
        assert len(rows) == 7
        assert rows["1"] == ("2020", "W01", 10.5, "1", "1", None)
        assert rows["3"][2] == 77.0 and rows["3"][5] == "p,r"
        assert rows["7"][2] == 13.0
        assert not ctx.engine.table_exists("update_table")

    def test_revise_without_note_codes_is_skipped(self, make_context, files_dir):
        columns = [c for c in fact_columns() if c.role != ColumnRole.NOTE_CODES]
        header = [c.name for c in columns]
        write_csv(files_dir / "base.csv", header, [[r[0], r[1], r[2], r[3], r[4]] for r in FACT_ROWS])
        write_csv(files_dir / "revise.csv", header, [["2020", "W01", 99.0, "1", "1"]])
        dataset = make_dataset([
            [make_upload("up-1", "base.csv", columns=columns)],
            [make_upload("up-2", "revise.csv", action=RevisionAction.REVISE, minutes=5, columns=columns)],
        ])
        ctx = make_context(dataset, dataset.get_revision("rev-2"))

        applied = RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert applied == 1
        value = ctx.fetch_scalar('SELECT "Data" FROM "fact_table" WHERE "RowRef" = \'1\'')
        assert value == 10.5

    def test_duplicate_rows_raise_upload_load_error(self, make_context, fact_file):
        dataset = make_dataset([[
            make_upload("up-1", fact_file.name, minutes=0),
            make_upload("up-2", fact_file.name, minutes=5),
        ]])
        ctx = make_context(dataset)

        with pytest.raises(UploadLoadError) as exc_info:
            RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert exc_info.value.details["reason"] == "duplicate_fact"
        assert exc_info.value.details["upload_id"] == "up-2"

    def test_column_mapping_renames_upload_columns(self, make_context, files_dir):
        header = ["Year", "Area", "Value", "Ref", "Measure", "Notes"]
        write_csv(files_dir / "renamed.csv", header, FACT_ROWS)
        upload = make_upload("up-1", "renamed.csv")
        upload = upload.model_copy(update={"column_mapping": {
            "YearCode": "Year", "AreaCode": "Area", "Data": "Value", "RowRef": "Ref", "NoteCodes": "Notes",
        }})
        dataset = make_dataset([[upload]])
        ctx = make_context(dataset)

        RevisionReconciler(ctx).reconcile(select_uploads(dataset, ctx.revision))

        assert len(fact_rows(ctx)) == 6
