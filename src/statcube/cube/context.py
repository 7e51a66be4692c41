"""State shared by the stages of one cube build."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from statcube.compute import DuckDBEngine
from statcube.constants.cube import FACT_TABLE_NAME, FILTER_TABLE_NAME
from statcube.observability import BuildRequestContext
from statcube.operations import BaseOperation, ColumnRef, Insert
from statcube.protocols import DateLookupBuilder, Translator, UploadFetcher
from statcube.settings import _Settings
from statcube.types import Dataset, FactTableSchema, Revision
from statcube.types.base import StatCubeBaseModel


class CubeBuildContext(StatCubeBaseModel):
    """Everything a build stage needs, passed explicitly to each resolver.

    Attributes:
        engine: The build's private working store
        dataset: Dataset being built
        revision: Target revision
        fact_schema: Fact table schema derived from the founding upload
        locales: Supported locales, one view each
        fetcher: Materializes stored uploads and lookup files locally
        translator: Fixed label and note code translations
        date_lookup: Resolves date codes into periods
        settings: Active settings
        request: Build identifiers for logs and spans
        telemetry: Payload of the running stage, attached to engine calls
    """

    engine: DuckDBEngine
    dataset: Dataset
    revision: Revision
    fact_schema: FactTableSchema
    locales: List[str]
    fetcher: UploadFetcher
    translator: Translator
    date_lookup: DateLookupBuilder
    settings: _Settings
    request: BuildRequestContext
    telemetry: Dict[str, str] = Field(default_factory=dict)

    def quote(self, identifier: str) -> str:
        return self.engine.query_builder.quote_identifier(identifier)

    def literal(self, value: str) -> str:
        return self.engine.query_builder.quote_string(value)

    def column(self, table: str, column: str) -> str:
        """Rendered ``"table"."column"`` reference."""
        return self.engine.query_builder.render_column(ColumnRef(table=table, column=column))

    def fact_column(self, column: str) -> ColumnRef:
        return ColumnRef(table=FACT_TABLE_NAME, column=column)

    def translate(self, key: str, locale: str) -> str:
        return self.translator.translate(key, locale)

    def execute(self, operation: BaseOperation, parameters: Optional[List[Any]] = None) -> str:
        return self.engine.execute_operation(operation, parameters, telemetry=self.telemetry)

    def execute_many(self, operation: Insert) -> str:
        """Run a VALUES insert once per row of ``operation.values``."""
        return self.engine.execute_operation_many(operation, operation.values or [], telemetry=self.telemetry)

    def fetch_scalar(self, query: str, parameters: Optional[List[Any]] = None) -> Any:
        return self.engine.fetch_scalar(query, parameters, telemetry=self.telemetry)

    def fetch_rows(self, query: str, parameters: Optional[List[Any]] = None):
        return self.engine.fetch_rows(query, parameters, telemetry=self.telemetry)

    def insert_filter_rows(self, source_table: str, reference_sql: str, fact_table_column: str, names: Dict[str, str],
                           description_sql: str, language_column: Optional[str] = None) -> None:
        """Record the distinct values of one rendered column in the filter table.

        Args:
            source_table: Table the values are read from
            reference_sql: Rendered expression of the raw value
            fact_table_column: Fact table column the values belong to
            names: Locale -> display name of the column
            description_sql: Rendered expression of the readable value
            language_column: Column of ``source_table`` holding the locale;
                when absent the same rows are recorded for every locale
        """
        for locale in self.locales:
            where = ""
            if language_column:
                where = f" WHERE {self.column(source_table, language_column)} = {self.literal(locale.lower())}"
            select = (
                f"SELECT DISTINCT CAST({reference_sql} AS VARCHAR), {self.literal(locale.lower())}, "
                f"{self.literal(fact_table_column)}, {self.literal(names[locale])}, "
                f"CAST({description_sql} AS VARCHAR) FROM {self.quote(source_table)}{where}"
            )
            self.execute(Insert(
                object_name=FILTER_TABLE_NAME,
                columns=["reference", "language", "fact_table_column", "dimension_name", "description"],
                source_query=select,
                logging_context={"fact_table_column": fact_table_column, "locale": locale},
            ))
