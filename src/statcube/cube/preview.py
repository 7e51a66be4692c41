"""Readers of a finished cube: paged preview, full view, export and period coverage.

Every reader opens the cube file read-only with its own engine and closes
it before returning.
"""

import math
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from statcube.common.exceptions import PreviewError, StatCubeError, resource_not_found_error
from statcube.compute import DuckDBEngine
from statcube.constants.cube import METADATA_TABLE_NAME, OutputFormat
from statcube.cube.materializer import remove_database_file
from statcube.cube.views import default_view_name, raw_view_name
from statcube.logging import get_logger
from statcube.operations import Export
from statcube.settings import _Settings, get_settings
from statcube.types import CubeArtifact, CubePreview, PeriodCovered

logger = get_logger(__name__)

CubeHandle = Union[CubeArtifact, Path, str]


def cube_path(handle: CubeHandle) -> Path:
    path = handle.path if isinstance(handle, CubeArtifact) else Path(handle)
    if not path.exists():
        raise resource_not_found_error(
            f"Cube file {path} does not exist",
            resource_type="cube",
            resource_name=str(path),
        )
    return path


def open_cube(handle: CubeHandle) -> DuckDBEngine:
    return DuckDBEngine(database=str(cube_path(handle)), read_only=True)


def _view_for(engine: DuckDBEngine, locale: str, raw: bool = False) -> str:
    name = raw_view_name(locale) if raw else default_view_name(locale)
    if not engine.table_exists(name):
        raise resource_not_found_error(
            f"Cube has no view for locale {locale}",
            resource_type="view",
            resource_name=name,
        )
    return name


def validate_page(page_number: int, page_size: int, total_pages: int, settings: _Settings) -> List[Dict[str, Any]]:
    """Every failed paging check as ``{field, tag, params}``."""
    limits = settings.preview
    errors: List[Dict[str, Any]] = []
    if not limits.min_page_size <= page_size <= limits.max_page_size:
        errors.append({
            "field": "page_size",
            "tag": "errors.page_size",
            "params": {"min_page_size": limits.min_page_size, "max_page_size": limits.max_page_size},
        })
    if page_number > total_pages:
        errors.append({
            "field": "page_number",
            "tag": "errors.page_number_to_high",
            "params": {"page_number": total_pages},
        })
    if page_number < 1:
        errors.append({"field": "page_number", "tag": "errors.page_number_to_low", "params": {}})
    return errors


def get_cube_preview(
    handle: CubeHandle,
    locale: str,
    page_number: int,
    page_size: Optional[int] = None,
    settings: Optional[_Settings] = None,
) -> CubePreview:
    """Return one page of the default view of ``locale``.

    An empty view still has one (empty) page.

    Raises:
        PreviewError: With every failed paging check in ``errors``
        StatCubeError: If the cube or the locale view does not exist
    """
    settings = settings or get_settings()
    page_size = page_size if page_size is not None else settings.preview.default_page_size

    with open_cube(handle) as engine:
        view = engine.query_builder.quote_identifier(_view_for(engine, locale))
        total_records = int(engine.fetch_scalar(f"SELECT COUNT(*) FROM {view}") or 0)
        total_pages = max(1, math.ceil(total_records / page_size)) if page_size > 0 else 1

        errors = validate_page(page_number, page_size, total_pages, settings)
        if errors:
            raise PreviewError(
                message=f"Invalid preview page {page_number} of size {page_size}",
                details={"errors": errors},
            )

        offset = (page_number - 1) * page_size
        headers, rows = engine.fetch_rows(f"SELECT * FROM {view} LIMIT {page_size} OFFSET {offset}")

    return CubePreview(
        current_page=page_number,
        page_size=page_size,
        total_pages=total_pages,
        total_records=total_records,
        start_record=offset + 1 if rows else 0,
        end_record=offset + len(rows),
        headers=headers,
        rows=[list(row) for row in rows],
    )


def read_locale_view(handle: CubeHandle, locale: str, raw: bool = False) -> pd.DataFrame:
    """The whole default (or raw) view of ``locale``."""
    with open_cube(handle) as engine:
        view = engine.query_builder.quote_identifier(_view_for(engine, locale, raw=raw))
        return engine.fetch_dataframe(f"SELECT * FROM {view}")


def output_cube(handle: CubeHandle, locale: str, fmt: Union[OutputFormat, str]) -> Path:
    """Write the default view of ``locale`` to a temporary file in ``fmt``.

    ``fmt=duckdb`` returns the cube file itself. Other formats return a new
    file owned by the caller; remove it with ``clean_up_cube``.
    """
    fmt = OutputFormat(fmt)
    path = cube_path(handle)
    if fmt == OutputFormat.DUCKDB:
        return path

    fd, name = tempfile.mkstemp(suffix=f".{fmt.value}")
    os.close(fd)
    target = Path(name)
    # COPY ... TO refuses to overwrite for some writers
    target.unlink()

    try:
        with open_cube(path) as engine:
            if fmt == OutputFormat.EXCEL:
                engine.load_extension("spatial")
            engine.execute_operation(Export(
                object_name=_view_for(engine, locale),
                target_path=str(target),
                output_format=fmt,
                logging_context={"locale": locale},
            ))
    except StatCubeError:
        target.unlink(missing_ok=True)
        raise

    logger.info("Cube exported", extra={"cube.path": str(path), "export.path": str(target), "format": fmt.value})
    return target


def clean_up_cube(path: Union[CubeArtifact, Path, str]) -> None:
    """Delete a cube file or an export produced by ``output_cube``."""
    path = path.path if isinstance(path, CubeArtifact) else Path(path)
    remove_database_file(path)
    logger.debug("Cube file removed", extra={"path": str(path)})


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def get_cube_time_periods(handle: CubeHandle) -> PeriodCovered:
    """Earliest start and latest end across the cube's date dimensions."""
    with open_cube(handle) as engine:
        builder = engine.query_builder
        rows = engine.fetch_all(
            f"SELECT {builder.quote_identifier('key')} AS key, {builder.quote_identifier('value')} AS value "
            f"FROM {builder.quote_identifier(METADATA_TABLE_NAME)} "
            f"WHERE {builder.quote_identifier('key')} IN ('start_date', 'end_date')"
        )
    values = {row["key"]: row["value"] for row in rows}
    return PeriodCovered(
        start_date=_parse_timestamp(values.get("start_date")),
        end_date=_parse_timestamp(values.get("end_date")),
    )
