"""Type definitions for statcube.

Pydantic models describing the publishing history a cube is built from
(datasets, revisions, uploads, dimensions, measures) and the values a build
produces (schema, artifact handle, previews).
"""

from .base import StatCubeBaseModel
from .files import FileReference, LookupTableRef
from .dimension import (
    DateDimension,
    DateExtractor,
    Dimension,
    LocaleColumn,
    LookupTableDimension,
    LookupTableExtractor,
    NoteCodesDimension,
    NumberExtractor,
    NumericDimension,
    PassThroughDimension,
    ReferenceDataDimension,
    ResolvedLookup,
    TextDimension,
    UnresolvedLookup,
)
from .measure import Measure, MeasureLookupExtractor, MeasureRow
from .dataset import ColumnDescriptor, Dataset, FactTableUpload, Revision
from .cube import (
    CubeArtifact,
    CubePreview,
    DateLookupRow,
    FactTableSchema,
    PeriodCovered,
)

__all__ = [
    # Base model
    'StatCubeBaseModel',
    # Files
    'FileReference',
    'LookupTableRef',
    # Dimensions
    'Dimension',
    'PassThroughDimension',
    'TextDimension',
    'NumericDimension',
    'DateDimension',
    'LookupTableDimension',
    'ReferenceDataDimension',
    'NoteCodesDimension',
    'UnresolvedLookup',
    'ResolvedLookup',
    'LocaleColumn',
    'LookupTableExtractor',
    'DateExtractor',
    'NumberExtractor',
    # Measure
    'Measure',
    'MeasureRow',
    'MeasureLookupExtractor',
    # Dataset
    'ColumnDescriptor',
    'FactTableUpload',
    'Revision',
    'Dataset',
    # Build outputs
    'FactTableSchema',
    'DateLookupRow',
    'CubeArtifact',
    'CubePreview',
    'PeriodCovered',
]
