"""DuckDB query builder.

Renders operations for the embedded DuckDB working store a cube is built
in: file readers for every supported upload format, COPY-based exports and
the ATTACH / COPY FROM DATABASE sequence used to materialize the cube.
"""

from statcube.constants.cube import FileType, OutputFormat
from statcube.operations import (
    CopyDatabase,
    CreateTable,
    CreateView,
    Delete,
    DropTable,
    Export,
    Insert,
    LoadFile,
    Update,
)
from statcube.query_builder.base import BaseQueryBuilder

# Type candidates tried when sniffing CSV columns, narrowest first
CSV_TYPE_CANDIDATES = ("BIGINT", "DOUBLE", "VARCHAR")


class DuckDBQueryBuilder(BaseQueryBuilder):
    """Query builder for the DuckDB dialect."""

    dialect = "duckdb"

    def _build_create_table(self, operation: CreateTable) -> str:
        create = "CREATE OR REPLACE TABLE" if operation.recreate else "CREATE TABLE"
        table = self.quote_identifier(operation.object_name)
        if operation.select_query is not None:
            return f"{create} {table} AS {operation.select_query}"
        return f"{create} {table} ({self.format_column_definitions(operation.columns)})"

    def _build_drop_table(self, operation: DropTable) -> str:
        if_exists = " IF EXISTS" if operation.if_exists else ""
        return f"DROP TABLE{if_exists} {self.quote_identifier(operation.object_name)}"

    def _build_insert(self, operation: Insert) -> str:
        table = self.quote_identifier(operation.object_name)
        column_list = f" ({self.format_column_list(operation.columns)})" if operation.columns else ""
        if operation.source_query is not None:
            return f"INSERT INTO {table}{column_list} {operation.source_query}"
        placeholders = self.format_values_placeholders(operation.columns, operation.casts)
        return f"INSERT INTO {table}{column_list} VALUES {placeholders}"

    def _build_update(self, operation: Update) -> str:
        sql = f"UPDATE {self.quote_identifier(operation.object_name)} SET {self.format_set_clause(operation.set_columns)}"
        if operation.from_table:
            sql += f" FROM {self.quote_identifier(operation.from_table)}"
        if operation.where_clause:
            sql += f" WHERE {operation.where_clause}"
        return sql

    def _build_delete(self, operation: Delete) -> str:
        sql = f"DELETE FROM {self.quote_identifier(operation.object_name)}"
        if operation.where_clause:
            sql += f" WHERE {operation.where_clause}"
        return sql

    def _build_create_view(self, operation: CreateView) -> str:
        create = "CREATE OR REPLACE VIEW" if operation.or_replace else "CREATE VIEW"
        return f"{create} {self.quote_identifier(operation.object_name)} AS {operation.select_query}"

    def file_reader(self, path: str, file_type: str) -> str:
        """Table function (or file scan) reading ``path`` in its declared format.

        Spreadsheets go through the spatial extension's ``st_read``; the
        caller loads the extension first.
        """
        source = self.quote_string(path)
        if file_type in (FileType.CSV, FileType.GZIP_CSV):
            candidates = ", ".join(self.quote_string(t) for t in CSV_TYPE_CANDIDATES)
            return f"read_csv({source}, auto_type_candidates = [{candidates}], sample_size = -1)"
        if file_type == FileType.PARQUET:
            return f"read_parquet({source})"
        if file_type in (FileType.JSON, FileType.GZIP_JSON):
            return f"read_json_auto({source})"
        if file_type == FileType.EXCEL:
            return f"st_read({source})"
        raise ValueError(f"Unsupported file type: {file_type}")

    def _build_load_file(self, operation: LoadFile) -> str:
        reader = self.file_reader(operation.source_path, operation.file_type)
        return f"CREATE OR REPLACE TABLE {self.quote_identifier(operation.object_name)} AS SELECT * FROM {reader}"

    def _build_export(self, operation: Export) -> str:
        options = {
            OutputFormat.CSV: "(HEADER, DELIMITER ',')",
            OutputFormat.PARQUET: "(FORMAT PARQUET)",
            OutputFormat.JSON: "(FORMAT JSON)",
            OutputFormat.EXCEL: "(FORMAT GDAL, DRIVER 'xlsx')",
        }.get(operation.output_format)
        if options is None:
            raise ValueError(f"Cannot export to {operation.output_format}")
        return (
            f"COPY (SELECT * FROM {self.quote_identifier(operation.object_name)}) "
            f"TO {self.quote_string(operation.target_path)} {options}"
        )

    def _build_copy_database(self, operation: CopyDatabase) -> str:
        alias = self.quote_identifier(operation.object_name)
        return "; ".join([
            f"ATTACH {self.quote_string(operation.target_path)} AS {alias}",
            f"COPY FROM DATABASE {self.quote_identifier(operation.source_database)} TO {alias}",
            f"DETACH {alias}",
        ])
