"""Cube materializer.

Copies the whole working store (tables, lookup tables and views) into a
DuckDB database file. The copy is written under a temporary name and moved
into place only once complete, so a failed copy never leaves a file at the
returned path.
"""

import os
import tempfile
from pathlib import Path

from statcube.common.exceptions import MaterializationError, StatCubeError, stage_error
from statcube.constants.cube import BuildStatus
from statcube.cube.context import CubeBuildContext
from statcube.cube.views import set_build_status
from statcube.logging import get_logger
from statcube.operations import CopyDatabase
from statcube.types import CubeArtifact

logger = get_logger(__name__)

ATTACH_ALIAS = "cube_out"
CUBE_FILE_SUFFIX = ".duckdb"


def artifact_directory(ctx: CubeBuildContext) -> Path:
    directory = ctx.settings.processing.output_directory or tempfile.gettempdir()
    return Path(directory)


def remove_database_file(path: Path) -> None:
    """Delete a database file and its write-ahead log, if present."""
    for candidate in (path, Path(f"{path}.wal")):
        try:
            candidate.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete database file", extra={"path": str(candidate), "error": str(exc)})


class CubeMaterializer:
    """Persists the working store of one build to a cube file."""

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx

    def target_path(self) -> Path:
        name = f"{self.ctx.revision.id}_{self.ctx.request.build_id}{CUBE_FILE_SUFFIX}"
        return artifact_directory(self.ctx) / name

    def materialize(self) -> CubeArtifact:
        """Write the cube file and return its handle.

        Raises:
            MaterializationError: If the copy or the final move fails
        """
        target = self.target_path()
        partial = target.with_name(f".{target.name}.partial")
        remove_database_file(partial)

        set_build_status(self.ctx.engine, BuildStatus.MATERIALIZED)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self.ctx.execute(CopyDatabase(
                object_name=ATTACH_ALIAS,
                target_path=str(partial),
                logging_context={"target": str(target)},
            ))
            os.replace(partial, target)
        except (StatCubeError, OSError) as exc:
            remove_database_file(partial)
            raise stage_error(
                MaterializationError,
                f"Failed to write cube file {target}",
                stage="materialize",
                cause=exc,
                target=str(target),
            )

        logger.info(
            "Cube materialized",
            extra={**self.ctx.telemetry, "cube.path": str(target)},
        )
        return CubeArtifact(
            path=target,
            dataset_id=self.ctx.dataset.id,
            revision_id=self.ctx.revision.id,
            build_id=self.ctx.request.build_id,
            locales=list(self.ctx.locales),
        )
