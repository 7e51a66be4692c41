"""End-to-end tests for the cube build pipeline."""

import json
from unittest.mock import Mock, patch

import duckdb
import pytest

from conftest import default_dimensions, make_dataset, make_upload, write_csv
from statcube.common.exceptions import DimensionBuildError, MaterializationError, StatCubeError, UploadLoadError
from statcube.cube import CubeBuilder, build_cube, read_locale_view
from statcube.monitoring import MetricsCollector


def metadata(path):
    conn = duckdb.connect(str(path), read_only=True)
    try:
        return dict(conn.execute('SELECT "key", "value" FROM "metadata"').fetchall())
    finally:
        conn.close()


class TestBuildCube:
    """Test whole builds against real DuckDB stores."""

    def test_six_row_dataset_without_lookups(self, dataset, fetcher, translator, date_lookup, settings):
        artifact = build_cube(dataset, dataset.founding_revision, fetcher, translator, date_lookup, settings)

        assert artifact.path.exists()
        assert str(artifact.path.parent) == settings.processing.output_directory
        assert artifact.locales == ["en-GB", "cy-GB"]
        english = read_locale_view(artifact, "en-GB")
        welsh = read_locale_view(artifact, "cy-GB")
        assert len(english) == 6
        assert len(welsh) == 6
        assert list(english.columns) == ["Year", "Area", "Row", "Data values", "Measure", "Notes"]
        assert sorted(english["Data values"].tolist()) == [10.5, 11.0, 12.0, 20.25, 21.75, 22.5]
        notes = dict(zip(english["Row"], english["Notes"]))
        assert notes["1"] == ""
        assert notes["2"] == "Average"
        assert notes["5"] == "Average, Revised"

    def test_metadata_records_build(self, dataset, fetcher, translator, date_lookup, settings):
        artifact = build_cube(dataset, "rev-1", fetcher, translator, date_lookup, settings)

        entries = metadata(artifact.path)
        assert entries["build_status"] == "materialized"
        assert entries["revision_id"] == "rev-1"
        assert entries["dataset_id"] == "ds-1"
        assert entries["build_id"] == artifact.build_id
        assert "default_view_en" in entries and "raw_view_cy" in entries
        assert "note_codes" in json.loads(entries["lookup_tables"])

    def test_views_exist_for_every_locale(self, dataset, fetcher, translator, date_lookup, settings):
        artifact = build_cube(dataset, "rev-1", fetcher, translator, date_lookup, settings)

        conn = duckdb.connect(str(artifact.path), read_only=True)
        try:
            views = {row[0] for row in conn.execute("SELECT view_name FROM duckdb_views() WHERE NOT internal").fetchall()}
            counts = {
                name: conn.execute(f'SELECT COUNT(*) FROM "{name}"').fetchone()[0]
                for name in ("default_view_en", "default_view_cy", "raw_view_en", "raw_view_cy")
            }
            tables = {row[0] for row in conn.execute("SELECT table_name FROM duckdb_tables()").fetchall()}
        finally:
            conn.close()

        assert {"default_view_en", "default_view_cy", "raw_view_en", "raw_view_cy"} <= views
        assert set(counts.values()) == {6}
        assert "staging_table" not in tables
        assert {"fact_table", "metadata", "filter_table", "note_codes", "all_notes"} <= tables

    def test_unresolved_lookup_dimension_does_not_fail(self, fact_file, fetcher, translator, date_lookup, settings):
        dimensions = [d for d in default_dimensions() if d["fact_table_column"] != "AreaCode"]
        dimensions.append({"id": "dim-area", "type": "lookup_table", "fact_table_column": "AreaCode",
                           "names": {"en-GB": "Area", "cy-GB": "Ardal"}})
        dataset = make_dataset([[make_upload("up-1", fact_file.name)]], dimensions=dimensions)

        artifact = build_cube(dataset, "rev-1", fetcher, translator, date_lookup, settings)

        english = read_locale_view(artifact, "en-GB")
        assert sorted(set(english["Area"])) == ["W01", "W02"]

    def test_failed_build_leaves_no_cube_file(self, files_dir, fact_file, fetcher, translator, date_lookup,
                                              settings, tmp_path):
        write_csv(files_dir / "area.csv", ["AreaCode", "Description_en"], [["W01", "Cardiff"]])
        dimensions = [d for d in default_dimensions() if d["fact_table_column"] != "AreaCode"]
        dimensions.append({
            "id": "dim-area", "type": "lookup_table", "fact_table_column": "AreaCode",
            "lookup_table": {"id": "lk-area", "filename": "area.csv"},
            "extractor": {"is_legacy_wide_format": True,
                          "description_columns": [{"locale": "en-GB", "name": "Description_en"}]},
        })
        dataset = make_dataset([[make_upload("up-1", fact_file.name)]], dimensions=dimensions)
        metrics = Mock(spec=MetricsCollector)

        with pytest.raises(DimensionBuildError) as exc_info:
            CubeBuilder(fetcher, translator, date_lookup, settings=settings, metrics=metrics).build(dataset, "rev-1")

        assert exc_info.value.dimension_id == "dim-area"
        output = tmp_path / "cubes"
        assert not output.exists() or list(output.iterdir()) == []
        recorded = metrics.record_build.call_args[0][0]
        assert recorded.success is False
        assert recorded.error_type == "DimensionBuildError"
        assert all(not path.exists() for path in fetcher.fetched)

    def test_failed_move_marks_build_failed_and_removes_partial(self, dataset, fetcher, translator, date_lookup,
                                                                settings, tmp_path):
        builder = CubeBuilder(fetcher, translator, date_lookup, settings=settings, metrics=Mock(spec=MetricsCollector))
        statuses = []
        mark_failed = builder._mark_failed

        def record_status(engine):
            mark_failed(engine)
            statuses.append(engine.fetch_scalar('SELECT "value" FROM "metadata" WHERE "key" = \'build_status\''))

        with patch.object(builder, "_mark_failed", side_effect=record_status), \
                patch("statcube.cube.materializer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(MaterializationError) as exc_info:
                builder.build(dataset, "rev-1")

        assert exc_info.value.details["stage"] == "materialize"
        assert isinstance(exc_info.value.cause, OSError)
        output = tmp_path / "cubes"
        assert list(output.iterdir()) == []
        assert statuses == ["failed"]

    def test_incompatible_upload_fails_reconcile(self, fetcher, translator, date_lookup, settings, files_dir):
        write_csv(files_dir / "broken.csv", ["Unrelated"], [["x"]])
        dataset = make_dataset([[make_upload("up-1", "broken.csv")]])

        with pytest.raises(UploadLoadError) as exc_info:
            build_cube(dataset, "rev-1", fetcher, translator, date_lookup, settings)

        assert exc_info.value.details["stage"] == "reconcile"
        assert exc_info.value.details["upload_id"] == "up-1"

    def test_unknown_revision_id_raises(self, dataset, fetcher, translator, date_lookup, settings):
        with pytest.raises(StatCubeError) as exc_info:
            build_cube(dataset, "rev-404", fetcher, translator, date_lookup, settings)
        assert exc_info.value.details["resource_name"] == "rev-404"

    def test_builds_get_distinct_files(self, dataset, fetcher, translator, date_lookup, settings):
        builder = CubeBuilder(fetcher, translator, date_lookup, settings=settings, metrics=Mock(spec=MetricsCollector))

        first = builder.build(dataset, "rev-1")
        second = builder.build(dataset, "rev-1")

        assert first.path != second.path
        assert first.path.exists() and second.path.exists()

    def test_success_is_recorded(self, dataset, fetcher, translator, date_lookup, settings):
        metrics = Mock(spec=MetricsCollector)

        CubeBuilder(fetcher, translator, date_lookup, settings=settings, metrics=metrics).build(dataset, "rev-1")

        recorded = metrics.record_build.call_args[0][0]
        assert recorded.success is True
        assert recorded.uploads_applied == 1
        assert recorded.dimensions_resolved == 3
        stages = [call.args[0] for call in metrics.record_stage.call_args_list]
        assert stages == ["schema", "reconcile", "dimensions", "measure", "notes", "views", "materialize"]
