"""Cube build engine.

Builds a self-contained DuckDB cube from a dataset's revision history and
reads finished cubes back for preview and export.
"""

from statcube.cube.builder import CubeBuilder, build_cube
from statcube.cube.dimensions import DimensionResolver
from statcube.cube.materializer import CubeMaterializer
from statcube.cube.measure import MeasureResolver
from statcube.cube.notes import NoteCodeExpander
from statcube.cube.preview import (
    clean_up_cube,
    get_cube_preview,
    get_cube_time_periods,
    output_cube,
    read_locale_view,
)
from statcube.cube.reconciler import RevisionReconciler, select_uploads
from statcube.cube.schema import derive_fact_table_schema
from statcube.cube.views import ViewAssembler, default_view_name, raw_view_name

__all__ = [
    "build_cube",
    "CubeBuilder",
    "derive_fact_table_schema",
    "select_uploads",
    "RevisionReconciler",
    "DimensionResolver",
    "MeasureResolver",
    "NoteCodeExpander",
    "ViewAssembler",
    "CubeMaterializer",
    "default_view_name",
    "raw_view_name",
    "get_cube_preview",
    "read_locale_view",
    "output_cube",
    "clean_up_cube",
    "get_cube_time_periods",
]
