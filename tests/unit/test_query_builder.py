"""Tests for operation rendering in the DuckDB query builder."""

import pytest

from statcube.constants.cube import FileType, OutputFormat
from statcube.operations import (
    ColumnRef,
    CopyDatabase,
    CreateTable,
    CreateView,
    Delete,
    DropTable,
    Export,
    Expression,
    Insert,
    JoinClause,
    JoinCondition,
    LoadFile,
    OrderBy,
    SelectItem,
    Update,
    ViewFragments,
)
from statcube.protocols import ColumnDefinition
from statcube.query_builder import QueryBuilderFactory, get_query_builder


@pytest.fixture
def builder():
    return get_query_builder("duckdb")


class TestQuoting:
    """Test identifier and literal quoting."""

    def test_identifier_with_quote_is_escaped(self, builder):
        assert builder.quote_identifier('Area "Code"') == '"Area ""Code"""'

    def test_string_with_quote_is_escaped(self, builder):
        assert builder.quote_string("Bro Morgannwg's") == "'Bro Morgannwg''s'"

    def test_empty_identifier_rejected(self, builder):
        with pytest.raises(ValueError):
            builder.quote_identifier("")


class TestFactory:
    """Test builder lookup."""

    def test_builders_are_cached(self):
        assert QueryBuilderFactory.create("duckdb") is get_query_builder()

    def test_unknown_dialect(self):
        with pytest.raises(ValueError):
            QueryBuilderFactory.create("oracle")


class TestOperations:
    """Test rendering of each operation type."""

    def test_create_table_with_composite_key(self, builder):
        operation = CreateTable(object_name="fact_table", columns=[
            ColumnDefinition(name="AreaCode", data_type="VARCHAR", nullable=False, primary_key=True),
            ColumnDefinition(name="YearCode", data_type="VARCHAR", nullable=False, primary_key=True),
            ColumnDefinition(name="Data", data_type="DOUBLE"),
        ])

        sql = builder.build_query(operation)

        assert sql == (
            'CREATE TABLE "fact_table" ("AreaCode" VARCHAR NOT NULL, "YearCode" VARCHAR NOT NULL, '
            '"Data" DOUBLE, PRIMARY KEY ("AreaCode", "YearCode"))'
        )

    def test_create_table_as_select_with_replace(self, builder):
        sql = builder.build_query(CreateTable(object_name="all_notes", select_query="SELECT 1", recreate=True))
        assert sql == 'CREATE OR REPLACE TABLE "all_notes" AS SELECT 1'

    def test_create_table_needs_one_definition(self):
        with pytest.raises(ValueError):
            CreateTable(object_name="t")

    def test_drop_table(self, builder):
        assert builder.build_query(DropTable(object_name="staging_table")) == 'DROP TABLE IF EXISTS "staging_table"'

    def test_insert_values_with_casts(self, builder):
        operation = Insert(
            object_name="measure",
            columns=["reference", "language"],
            values=[["1", "en-gb"]],
            casts={"reference": "BIGINT"},
        )
        assert builder.build_query(operation) == (
            'INSERT INTO "measure" ("reference", "language") VALUES (CAST(? AS BIGINT), ?)'
        )

    def test_insert_select(self, builder):
        operation = Insert(object_name="t", columns=["a"], source_query='SELECT "a" FROM "s"')
        assert builder.build_query(operation) == 'INSERT INTO "t" ("a") SELECT "a" FROM "s"'

    def test_update_from(self, builder):
        operation = Update(
            object_name="fact_table",
            set_columns={"Data": '"update_table"."Data"'},
            from_table="update_table",
            where_clause="1 = 1",
        )
        assert builder.build_query(operation) == (
            'UPDATE "fact_table" SET "Data" = "update_table"."Data" FROM "update_table" WHERE 1 = 1'
        )

    def test_delete_all(self, builder):
        assert builder.build_query(Delete(object_name="fact_table")) == 'DELETE FROM "fact_table"'

    def test_create_view(self, builder):
        sql = builder.build_query(CreateView(object_name="default_view_en", select_query="SELECT 1", or_replace=True))
        assert sql == 'CREATE OR REPLACE VIEW "default_view_en" AS SELECT 1'

    @pytest.mark.parametrize("file_type,reader", [
        (FileType.CSV, "read_csv("),
        (FileType.GZIP_CSV, "read_csv("),
        (FileType.PARQUET, "read_parquet("),
        (FileType.JSON, "read_json_auto("),
        (FileType.EXCEL, "st_read("),
    ])
    def test_load_file_readers(self, builder, file_type, reader):
        sql = builder.build_query(LoadFile(object_name="staging_table", source_path="/tmp/x", file_type=file_type))
        assert sql.startswith('CREATE OR REPLACE TABLE "staging_table" AS SELECT * FROM ')
        assert reader in sql

    def test_csv_reader_type_candidates(self, builder):
        sql = builder.file_reader("/tmp/x.csv", FileType.CSV)
        assert "auto_type_candidates = ['BIGINT', 'DOUBLE', 'VARCHAR']" in sql

    def test_export_csv(self, builder):
        sql = builder.build_query(Export(object_name="default_view_en", target_path="/tmp/out.csv"))
        assert sql == """COPY (SELECT * FROM "default_view_en") TO '/tmp/out.csv' (HEADER, DELIMITER ',')"""

    def test_export_duckdb_is_not_a_copy(self, builder):
        with pytest.raises(ValueError):
            builder.build_query(Export(
                object_name="default_view_en",
                target_path="/tmp/out.duckdb",
                output_format=OutputFormat.DUCKDB,
            ))

    def test_copy_database(self, builder):
        sql = builder.build_query(CopyDatabase(object_name="cube_out", target_path="/tmp/cube.duckdb"))
        assert sql == (
            """ATTACH '/tmp/cube.duckdb' AS "cube_out"; """
            """COPY FROM DATABASE "memory" TO "cube_out"; DETACH "cube_out\""""
        )


class TestViewSelect:
    """Test assembly of locale views from fragments."""

    def fragments(self):
        lookup = "areacode_lookup"
        return ViewFragments.per_locale(
            ["en-GB", "cy-GB"],
            lambda locale: [SelectItem(
                expression=ColumnRef(table=lookup, column="description"),
                alias="Area" if locale == "en-GB" else "Ardal",
            )],
            joins=[JoinClause(
                table=lookup,
                conditions=[JoinCondition(
                    left=ColumnRef(table=lookup, column="AreaCode"),
                    right=ColumnRef(table="fact_table", column="AreaCode"),
                )],
                locale_column="language",
            )],
            order_bys=[OrderBy(column=ColumnRef(table=lookup, column="sort_order"))],
            lookup_tables=[lookup],
        )

    def test_locale_bound_join(self, builder):
        sql = builder.build_view_select(self.fragments(), "cy-GB", "fact_table")

        assert sql.splitlines() == [
            'SELECT "areacode_lookup"."description" AS "Ardal"',
            'FROM "fact_table"',
            'LEFT JOIN "areacode_lookup" ON "areacode_lookup"."AreaCode" = "fact_table"."AreaCode" '
            """AND "areacode_lookup"."language" = 'cy-gb'""",
            'ORDER BY "areacode_lookup"."sort_order"',
        ]
        assert builder.validate_sql(sql) is None

    def test_empty_fragments_select_everything(self, builder):
        sql = builder.build_view_select(ViewFragments.empty(["en-GB"]), "en-GB", "fact_table")
        assert sql == 'SELECT *\nFROM "fact_table"'

    def test_expression_literals_are_quoted(self, builder):
        item = SelectItem(
            expression=Expression(
                template="strftime({c0}, {s0})",
                columns=[ColumnRef(table="t", column="start_date")],
                literals=["%d/%m/%Y"],
            ),
            alias="Start",
        )
        assert builder.render_select_item(item) == """strftime("t"."start_date", '%d/%m/%Y') AS "Start\""""

    def test_merge_keeps_order_and_dedupes_lookup_tables(self):
        first = self.fragments()
        merged = first.merge(self.fragments())

        assert [item.alias for item in merged.selects_for("en-GB")] == ["Area", "Area"]
        assert merged.lookup_tables == ["areacode_lookup"]
        assert len(merged.joins) == 2
        assert first.selects_for("en-GB") != merged.selects_for("en-GB")
