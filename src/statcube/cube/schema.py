"""Fact table schema derivation.

The physical fact table is derived once, from the column catalog of the
first upload of the founding revision. Later uploads must be column
compatible but never change the schema.
"""

from typing import List

from statcube.common.exceptions import SchemaError, StatCubeError, stage_error
from statcube.compute import DuckDBEngine
from statcube.constants.cube import FACT_TABLE_NAME, ColumnRole
from statcube.logging import get_logger
from statcube.operations import CreateTable
from statcube.protocols import ColumnDefinition
from statcube.types import ColumnDescriptor, Dataset, FactTableSchema

logger = get_logger(__name__)


def _single(columns: List[ColumnDescriptor], role: ColumnRole, dataset_id: str):
    if len(columns) > 1:
        raise stage_error(
            SchemaError,
            f"At most one {role.value} column is allowed, found {[c.name for c in columns]}",
            stage="schema",
            dataset_id=dataset_id,
        )
    return columns[0] if columns else None


def derive_fact_table_schema(dataset: Dataset) -> FactTableSchema:
    """Derive the fact table definition from the founding upload.

    Key columns are the Dimension, Time and Measure role columns in
    declaration order.

    Raises:
        SchemaError: If the dataset has no founding upload, the upload has no
            columns, or a single-valued role is declared twice
    """
    founding = dataset.founding_revision
    if founding is None or not founding.uploads:
        raise stage_error(
            SchemaError,
            f"Dataset {dataset.id} has no founding fact table upload",
            stage="schema",
            dataset_id=dataset.id,
        )

    upload = min(founding.uploads, key=lambda u: u.uploaded_at)
    columns = list(upload.columns)
    if not columns:
        raise stage_error(
            SchemaError,
            f"Founding upload {upload.id} declares no columns",
            stage="schema",
            dataset_id=dataset.id,
            upload_id=upload.id,
        )

    schema = FactTableSchema(
        columns=columns,
        key_columns=[col for col in columns if ColumnRole(col.role).is_key],
        data_values_column=_single(
            [c for c in columns if c.role == ColumnRole.DATA_VALUES], ColumnRole.DATA_VALUES, dataset.id
        ),
        note_codes_column=_single(
            [c for c in columns if c.role == ColumnRole.NOTE_CODES], ColumnRole.NOTE_CODES, dataset.id
        ),
        measure_column=_single(
            [c for c in columns if c.role == ColumnRole.MEASURE], ColumnRole.MEASURE, dataset.id
        ),
    )
    logger.debug(
        "Derived fact table schema",
        extra={
            "dataset.id": dataset.id,
            "upload.id": upload.id,
            "columns": ",".join(schema.column_names),
            "key_columns": ",".join(col.name for col in schema.key_columns),
        },
    )
    return schema


def fact_table_definition(schema: FactTableSchema) -> CreateTable:
    """CreateTable operation for the logical fact table."""
    definitions = [
        ColumnDefinition(
            name=col.name,
            data_type=col.physical_type,
            nullable=not ColumnRole(col.role).is_key,
            primary_key=ColumnRole(col.role).is_key,
        )
        for col in schema.columns
    ]
    return CreateTable(
        object_name=FACT_TABLE_NAME,
        columns=definitions,
        logging_context={"stage": "schema"},
    )


def create_fact_table(engine: DuckDBEngine, schema: FactTableSchema, dataset_id: str) -> None:
    """Create the fact table; the store is the authority on the definition.

    Raises:
        SchemaError: If the store rejects the table definition
    """
    try:
        engine.execute_operation(fact_table_definition(schema))
    except (StatCubeError, ValueError) as exc:
        raise stage_error(
            SchemaError,
            f"Fact table definition rejected for dataset {dataset_id}",
            stage="schema",
            cause=exc,
            dataset_id=dataset_id,
        )
