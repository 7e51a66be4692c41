"""Shared fixtures: collaborator fakes, settings and a small dataset."""

import csv
import os
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from statcube.compute import DuckDBEngine
from statcube.constants.cube import ColumnRole, RevisionAction
from statcube.cube.context import CubeBuildContext
from statcube.cube.schema import create_fact_table, derive_fact_table_schema
from statcube.cube.views import create_filter_table, create_metadata_table
from statcube.observability import BuildRequestContext
from statcube.settings import _Settings
from statcube.settings.locale import LocaleSettings
from statcube.settings.processing import ProcessingSettings
from statcube.types import (
    ColumnDescriptor,
    Dataset,
    DateLookupRow,
    FactTableUpload,
    Revision,
)

BASE_TIME = datetime(2024, 1, 1, 9, 0, 0)

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "column_headers.start_date": "Start date",
        "column_headers.end_date": "End date",
        "column_headers.notes": "Notes",
        "column_headers.data_values": "Data values",
        "column_headers.measure": "Measure",
        "note_codes.average": "Average",
        "note_codes.revised": "Revised",
        "note_codes.provisional": "Provisional",
        "language.en": "English",
        "language.cy": "Welsh",
        "year": "Year",
    },
    "cy": {
        "column_headers.start_date": "Dyddiad dechrau",
        "column_headers.end_date": "Dyddiad gorffen",
        "column_headers.notes": "Nodiadau",
        "column_headers.data_values": "Gwerthoedd data",
        "column_headers.measure": "Mesur",
        "note_codes.average": "Cyfartaledd",
        "note_codes.revised": "Diwygiedig",
        "note_codes.provisional": "Dros dro",
        "language.en": "Saesneg",
        "language.cy": "Cymraeg",
        "year": "Blwyddyn",
    },
}


class DictTranslator:
    """Translations keyed by primary language; unknown keys come back as is."""

    def __init__(self, translations: Optional[Dict[str, Dict[str, str]]] = None):
        self.translations = translations or TRANSLATIONS

    def translate(self, key: str, locale: str) -> str:
        return self.translations.get(locale.split("-")[0].lower(), {}).get(key, key)


class DirectoryFetcher:
    """Serves stored files from a directory, copying each to a temp file."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.fetched: List[Path] = []

    def fetch_upload(self, dataset_id: str, file) -> Path:
        source = self.root / (file.filename or file.id)
        fd, name = tempfile.mkstemp(suffix=source.suffix or ".csv")
        os.close(fd)
        shutil.copyfile(source, name)
        self.fetched.append(Path(name))
        return Path(name)


class TableDateLookup:
    """Resolves date codes from a fixed table of (description, start, end, type)."""

    def __init__(self, table: Dict[str, Tuple[str, datetime, datetime, str]]):
        self.table = table

    def build_date_lookup(self, extractor, values: Sequence[str]) -> List[DateLookupRow]:
        return [
            DateLookupRow(date_code=value, description=desc, start=start, end=end, type=kind)
            for value in sorted(set(values))
            if value in self.table
            for desc, start, end, kind in [self.table[value]]
        ]


def write_csv(path: Path, header: Sequence[str], rows: Sequence[Sequence]) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        for row in rows:
            writer.writerow(["" if value is None else value for value in row])
    return path


FACT_HEADER = ["YearCode", "AreaCode", "Data", "RowRef", "Measure", "NoteCodes"]

FACT_ROWS = [
    ["2020", "W01", 10.5, "1", "1", ""],
    ["2020", "W02", 20.25, "2", "1", "a"],
    ["2021", "W01", 11.0, "3", "1", "p"],
    ["2021", "W02", 21.75, "4", "2", ""],
    ["2022", "W01", 12.0, "5", "2", "a,r"],
    ["2022", "W02", 22.5, "6", "2", ""],
]


def fact_columns() -> List[ColumnDescriptor]:
    return [
        ColumnDescriptor(name="YearCode", physical_type="VARCHAR", role=ColumnRole.TIME),
        ColumnDescriptor(name="AreaCode", physical_type="VARCHAR", role=ColumnRole.DIMENSION),
        ColumnDescriptor(name="Data", physical_type="DOUBLE", role=ColumnRole.DATA_VALUES),
        ColumnDescriptor(name="RowRef", physical_type="VARCHAR", role=ColumnRole.DIMENSION),
        ColumnDescriptor(name="Measure", physical_type="VARCHAR", role=ColumnRole.MEASURE),
        ColumnDescriptor(name="NoteCodes", physical_type="VARCHAR", role=ColumnRole.NOTE_CODES),
    ]


def make_upload(upload_id: str, filename: str, action=RevisionAction.ADD, minutes: int = 0,
                columns: Optional[List[ColumnDescriptor]] = None) -> FactTableUpload:
    return FactTableUpload(
        id=upload_id,
        filename=filename,
        action=action,
        uploaded_at=BASE_TIME + timedelta(minutes=minutes),
        columns=columns if columns is not None else fact_columns(),
    )


def default_dimensions() -> List[dict]:
    return [
        {"id": "dim-year", "type": "raw", "fact_table_column": "YearCode",
         "names": {"en-GB": "Year", "cy-GB": "Blwyddyn"}},
        {"id": "dim-area", "type": "raw", "fact_table_column": "AreaCode",
         "names": {"en-GB": "Area", "cy-GB": "Ardal"}},
        {"id": "dim-row", "type": "raw", "fact_table_column": "RowRef",
         "names": {"en-GB": "Row", "cy-GB": "Rhes"}},
        {"id": "dim-notes", "type": "note_codes", "fact_table_column": "NoteCodes"},
    ]


def make_dataset(uploads_by_revision: List[List[FactTableUpload]], dimensions=None, measure=None) -> Dataset:
    revisions = [
        Revision(
            id=f"rev-{index}",
            revision_index=index,
            created_at=BASE_TIME + timedelta(days=index),
            uploads=uploads,
        )
        for index, uploads in enumerate(uploads_by_revision, start=1)
    ]
    return Dataset(
        id="ds-1",
        revisions=revisions,
        dimensions=default_dimensions() if dimensions is None else dimensions,
        measure=measure,
    )


@pytest.fixture
def files_dir(tmp_path) -> Path:
    directory = tmp_path / "store"
    directory.mkdir()
    return directory


@pytest.fixture
def fact_file(files_dir) -> Path:
    return write_csv(files_dir / "fact.csv", FACT_HEADER, FACT_ROWS)


@pytest.fixture
def settings(tmp_path) -> _Settings:
    output = tmp_path / "cubes"
    return _Settings(
        locale=LocaleSettings(supported_locales="en-GB,cy-GB"),
        processing=ProcessingSettings(output_directory=str(output)),
    )


@pytest.fixture
def translator() -> DictTranslator:
    return DictTranslator()


@pytest.fixture
def fetcher(files_dir) -> DirectoryFetcher:
    return DirectoryFetcher(files_dir)


@pytest.fixture
def date_lookup() -> TableDateLookup:
    return TableDateLookup({
        "2020": ("2020", datetime(2020, 1, 1), datetime(2020, 12, 31), "year"),
        "2021": ("2021", datetime(2021, 1, 1), datetime(2021, 12, 31), "year"),
        "2022": ("2022", datetime(2022, 1, 1), datetime(2022, 12, 31), "year"),
    })


@pytest.fixture
def dataset(fact_file) -> Dataset:
    return make_dataset([[make_upload("up-1", fact_file.name)]])


@pytest.fixture
def engine():
    engine = DuckDBEngine()
    yield engine
    engine.close()


@pytest.fixture
def make_context(engine, settings, fetcher, translator, date_lookup):
    """Build context over a prepared working store, as the builder sets it up."""

    def factory(dataset: Dataset, revision: Optional[Revision] = None) -> CubeBuildContext:
        revision = revision or dataset.founding_revision
        schema = derive_fact_table_schema(dataset)
        create_fact_table(engine, schema, dataset.id)
        create_metadata_table(engine, {"revision_id": revision.id})
        create_filter_table(engine)
        return CubeBuildContext(
            engine=engine,
            dataset=dataset,
            revision=revision,
            fact_schema=schema,
            locales=settings.supported_locales,
            fetcher=fetcher,
            translator=translator,
            date_lookup=date_lookup,
            settings=settings,
            request=BuildRequestContext.generate(dataset.id, revision.id),
        )

    return factory
