from statcube.__version__ import __version__

from statcube.cube import (
    CubeBuilder,
    build_cube,
    clean_up_cube,
    get_cube_preview,
    get_cube_time_periods,
    output_cube,
    read_locale_view,
)

from statcube.common.exceptions import (
    DimensionBuildError,
    DimensionValidationError,
    ErrorCode,
    MaterializationError,
    MeasureConfigError,
    PreviewError,
    SchemaError,
    StatCubeError,
    UploadLoadError,
)

from statcube.types import (
    CubeArtifact,
    CubePreview,
    Dataset,
    FactTableUpload,
    PeriodCovered,
    Revision,
)

from statcube.utils import get_current_timestamp


__all__ = [
    "__version__",

    "build_cube",
    "CubeBuilder",
    "get_cube_preview",
    "read_locale_view",
    "output_cube",
    "clean_up_cube",
    "get_cube_time_periods",

    # Models
    "Dataset",
    "Revision",
    "FactTableUpload",
    "CubeArtifact",
    "CubePreview",
    "PeriodCovered",

    # Exceptions (public API)
    "StatCubeError",
    "ErrorCode",
    "SchemaError",
    "UploadLoadError",
    "DimensionValidationError",
    "DimensionBuildError",
    "MeasureConfigError",
    "MaterializationError",
    "PreviewError",

    # Utilities (public API)
    "get_current_timestamp",
]
