"""Loading stored files into the working store.

Every file passes through a table created from the file itself, so the
engine infers the file's own columns and types. Callers then copy the
columns they need into the real target with an explicit-column INSERT.
The local copy handed over by the upload fetcher is deleted as soon as the
load finishes, whether it succeeded or not.
"""

from pathlib import Path
from typing import Optional, Sequence

from statcube.common.exceptions import StatCubeError, UploadLoadError, stage_error
from statcube.constants.cube import FileType
from statcube.cube.context import CubeBuildContext
from statcube.logging import get_logger
from statcube.operations import DropTable, LoadFile
from statcube.types import FileReference

logger = get_logger(__name__)

_DUPLICATE_MARKERS = ("PRIMARY KEY or UNIQUE", "Duplicate key")
_INCOMPLETE_MARKERS = ("NOT NULL",)


def load_failure_reason(error: BaseException) -> str:
    """Classify a failed load from the engine's error text."""
    text = str(error.cause if isinstance(error, StatCubeError) and error.cause else error)
    if any(marker in text for marker in _DUPLICATE_MARKERS):
        return "duplicate_fact"
    if any(marker in text for marker in _INCOMPLETE_MARKERS):
        return "incomplete_fact"
    return "load_failed"


def _remove_local_copy(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete local upload copy", extra={"path": str(path), "error": str(exc)})


def load_file(
    ctx: CubeBuildContext,
    file: FileReference,
    table_name: str,
    *,
    stage: str,
    entity_key: str = "upload_id",
) -> None:
    """Fetch ``file`` and create ``table_name`` from its contents.

    Args:
        ctx: Build context
        file: Stored fact or lookup file
        table_name: Table to (re)create from the file
        stage: Build stage, recorded on failure
        entity_key: Detail key the file id is reported under

    Raises:
        UploadLoadError: If the file cannot be read in its declared format
    """
    entity = {entity_key: file.id, "file_type": str(file.file_type)}

    if file.file_type == FileType.EXCEL:
        if not ctx.settings.engine.enable_spatial:
            raise stage_error(
                UploadLoadError,
                f"Spreadsheet uploads need the spatial extension, which is disabled ({file.id})",
                stage=stage,
                reason="unknown_file_type",
                **entity,
            )
        ctx.engine.load_extension("spatial")

    path = Path(ctx.fetcher.fetch_upload(ctx.dataset.id, file))
    try:
        ctx.execute(LoadFile(
            object_name=table_name,
            source_path=str(path),
            file_type=file.file_type,
            logging_context={"stage": stage, **entity},
        ))
    except ValueError as exc:
        raise stage_error(
            UploadLoadError,
            f"Unsupported file type {file.file_type} for {file.id}",
            stage=stage,
            cause=exc,
            reason="unknown_file_type",
            **entity,
        )
    except StatCubeError as exc:
        raise stage_error(
            UploadLoadError,
            f"Failed to load {file.filename or file.id} as {file.file_type}",
            stage=stage,
            cause=exc,
            reason="load_failed",
            **entity,
        )
    finally:
        _remove_local_copy(path)

    logger.debug("Loaded file into working store", extra={"table": table_name, **entity})


def copy_into(
    ctx: CubeBuildContext,
    source_table: str,
    target_table: str,
    target_columns,
    source_columns,
    *,
    stage: str,
    upload_id: Optional[str] = None,
    target_types: Optional[Sequence[str]] = None,
) -> None:
    """INSERT the named source columns into the target columns.

    With ``target_types`` every source column is cast to its target type.

    Raises:
        UploadLoadError: With ``reason`` duplicate_fact, incomplete_fact or
            load_failed
    """
    selects = [ctx.quote(col) for col in source_columns]
    if target_types:
        selects = [f"CAST({col} AS {cast})" for col, cast in zip(selects, target_types)]
    selects = ", ".join(selects)
    columns = ", ".join(ctx.quote(col) for col in target_columns)
    query = f"INSERT INTO {ctx.quote(target_table)} ({columns}) SELECT {selects} FROM {ctx.quote(source_table)}"
    try:
        ctx.engine.execute_query(query, telemetry=ctx.telemetry)
    except StatCubeError as exc:
        reason = load_failure_reason(exc)
        raise stage_error(
            UploadLoadError,
            f"Could not add rows from {source_table} to {target_table}: {reason}",
            stage=stage,
            cause=exc,
            reason=reason,
            upload_id=upload_id,
        )


def drop_table(ctx: CubeBuildContext, table_name: str) -> None:
    ctx.execute(DropTable(object_name=table_name))
