"""View assembly and the cube metadata table."""

import json
from typing import Dict, List

from statcube.common.exceptions import MaterializationError, StatCubeError, stage_error
from statcube.compute import DuckDBEngine
from statcube.constants.cube import (
    DEFAULT_VIEW_PREFIX,
    FACT_TABLE_NAME,
    FILTER_TABLE_NAME,
    METADATA_TABLE_NAME,
    RAW_VIEW_PREFIX,
    BuildStatus,
)
from statcube.cube.context import CubeBuildContext
from statcube.logging import get_logger
from statcube.operations import CreateTable, CreateView, Delete, Insert, ViewFragments
from statcube.protocols import ColumnDefinition
from statcube.utils.identifiers import base_language

logger = get_logger(__name__)


def default_view_name(locale: str) -> str:
    """``default_view_en`` for ``en-GB``."""
    return f"{DEFAULT_VIEW_PREFIX}_{base_language(locale)}"


def raw_view_name(locale: str) -> str:
    return f"{RAW_VIEW_PREFIX}_{base_language(locale)}"


# Metadata

def create_metadata_table(engine: DuckDBEngine, entries: Dict[str, str]) -> None:
    engine.execute_operation(CreateTable(
        object_name=METADATA_TABLE_NAME,
        columns=[
            ColumnDefinition(name="key", data_type="VARCHAR", nullable=False),
            ColumnDefinition(name="value", data_type="VARCHAR"),
        ],
    ))
    for key, value in entries.items():
        set_metadata(engine, key, value)


def set_metadata(engine: DuckDBEngine, key: str, value: str) -> None:
    """Insert or replace one metadata entry."""
    builder = engine.query_builder
    engine.execute_operation(Delete(
        object_name=METADATA_TABLE_NAME,
        where_clause=f"{builder.quote_identifier('key')} = {builder.quote_string(key)}",
    ))
    engine.execute_operation(Insert(
        object_name=METADATA_TABLE_NAME,
        columns=["key", "value"],
        values=[[key, value]],
    ), [key, value])


def set_build_status(engine: DuckDBEngine, status: BuildStatus) -> None:
    set_metadata(engine, "build_status", BuildStatus(status).value)


def create_filter_table(engine: DuckDBEngine) -> None:
    engine.execute_operation(CreateTable(
        object_name=FILTER_TABLE_NAME,
        columns=[
            ColumnDefinition(name="reference", data_type="VARCHAR"),
            ColumnDefinition(name="language", data_type="VARCHAR"),
            ColumnDefinition(name="fact_table_column", data_type="VARCHAR"),
            ColumnDefinition(name="dimension_name", data_type="VARCHAR"),
            ColumnDefinition(name="description", data_type="VARCHAR"),
        ],
    ))


class ViewAssembler:
    """Creates one default and one raw view per locale."""

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx

    def assemble(self, fragments: ViewFragments) -> List[str]:
        """Create the views and record their SQL in the metadata table.

        Returns:
            Names of the created views

        Raises:
            MaterializationError: If the store rejects a view
        """
        builder = self.ctx.engine.query_builder
        created: List[str] = []
        for locale in self.ctx.locales:
            for name, raw in ((default_view_name(locale), False), (raw_view_name(locale), True)):
                select = builder.build_view_select(fragments, locale, FACT_TABLE_NAME, raw=raw)
                builder.validate_sql(select)
                try:
                    self.ctx.execute(CreateView(
                        object_name=name,
                        select_query=select,
                        or_replace=True,
                        logging_context={"locale": locale},
                    ))
                except StatCubeError as exc:
                    raise stage_error(
                        MaterializationError,
                        f"Failed to create view {name}",
                        stage="views",
                        cause=exc,
                        view=name,
                        locale=locale,
                    )
                set_metadata(self.ctx.engine, name, select)
                created.append(name)

        set_metadata(self.ctx.engine, "lookup_tables", json.dumps(fragments.lookup_tables))
        logger.info(
            "Views created",
            extra={**self.ctx.telemetry, "views": ",".join(created)},
        )
        return created
