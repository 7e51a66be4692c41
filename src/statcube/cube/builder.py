"""Cube build pipeline.

One build runs linearly against its own in-memory DuckDB store:

    schema -> reconcile -> dimensions -> measure -> notes -> views -> materialize

Each stage opens a span and records its duration. The store is closed
exactly once, on every exit path; a failed build leaves no cube file.
"""

import time
from typing import Optional, Union

from statcube.common.exceptions import StatCubeError, resource_not_found_error
from statcube.compute import DuckDBEngine
from statcube.constants.cube import METADATA_TABLE_NAME, BuildStatus
from statcube.cube.context import CubeBuildContext
from statcube.cube.dimensions import DimensionResolver, period_metadata
from statcube.cube.materializer import CubeMaterializer
from statcube.cube.measure import MeasureResolver
from statcube.cube.notes import NoteCodeExpander
from statcube.cube.reconciler import RevisionReconciler, select_uploads
from statcube.cube.schema import create_fact_table, derive_fact_table_schema
from statcube.cube.views import (
    ViewAssembler,
    create_filter_table,
    create_metadata_table,
    set_build_status,
    set_metadata,
)
from statcube.logging import get_logger
from statcube.monitoring import BuildMetrics, MetricsCollector, get_metrics_collector
from statcube.observability import BuildRequestContext, build_request_scope, stage_instrumentation
from statcube.operations import ViewFragments
from statcube.protocols import DateLookupBuilder, Translator, UploadFetcher
from statcube.settings import _Settings, get_settings
from statcube.types import CubeArtifact, Dataset, Revision
from statcube.utils.datetime import get_build_timestamp

logger = get_logger(__name__)


class CubeBuilder:
    """Builds cubes for datasets using the given collaborators.

    A builder holds no per-build state, so one instance can serve
    concurrent builds; each build opens its own store.

    Example:
        >>> builder = CubeBuilder(fetcher, translator, date_lookup)
        >>> artifact = builder.build(dataset, dataset.founding_revision)
        >>> artifact.path
        PosixPath('/tmp/rev-1_....duckdb')
    """

    def __init__(
        self,
        fetcher: UploadFetcher,
        translator: Translator,
        date_lookup: DateLookupBuilder,
        settings: Optional[_Settings] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.fetcher = fetcher
        self.translator = translator
        self.date_lookup = date_lookup
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics_collector()

    @staticmethod
    def resolve_revision(dataset: Dataset, target_revision: Union[Revision, str]) -> Revision:
        if isinstance(target_revision, Revision):
            return target_revision
        revision = dataset.get_revision(target_revision)
        if revision is None:
            raise resource_not_found_error(
                f"Revision {target_revision} not found in dataset {dataset.id}",
                resource_type="revision",
                resource_name=target_revision,
            )
        return revision

    def build(self, dataset: Dataset, target_revision: Union[Revision, str]) -> CubeArtifact:
        """Build the cube of ``target_revision``.

        Raises:
            SchemaError, UploadLoadError, DimensionBuildError,
            MeasureConfigError, MaterializationError: Tagged with the failing
                stage and entity
        """
        revision = self.resolve_revision(dataset, target_revision)
        request = BuildRequestContext.generate(dataset.id, revision.id)
        engine = DuckDBEngine(self.settings.engine)
        start_time = time.perf_counter()

        try:
            with build_request_scope(request, operation="statcube.cube.build"):
                artifact = self._run(engine, dataset, revision, request)
        except Exception as exc:
            self._mark_failed(engine)
            self._record(request, start_time, success=False, error=exc)
            raise
        finally:
            engine.close()

        self._record(request, start_time, success=True)
        return artifact

    def _run(self, engine, dataset, revision, request) -> CubeArtifact:
        with stage_instrumentation(request, stage_name="schema", metrics=self.metrics):
            schema = derive_fact_table_schema(dataset)
            create_fact_table(engine, schema, dataset.id)
            create_metadata_table(engine, {
                "revision_id": revision.id,
                "dataset_id": dataset.id,
                "build_id": request.build_id,
                "build_start": get_build_timestamp(self.settings.processing.time_zone),
                "build_status": BuildStatus.INCOMPLETE.value,
            })
            create_filter_table(engine)

        ctx = CubeBuildContext(
            engine=engine,
            dataset=dataset,
            revision=revision,
            fact_schema=schema,
            locales=self.settings.supported_locales,
            fetcher=self.fetcher,
            translator=self.translator,
            date_lookup=self.date_lookup,
            settings=self.settings,
            request=request,
        )

        with stage_instrumentation(request, stage_name="reconcile", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            applied = RevisionReconciler(ctx).reconcile(select_uploads(dataset, revision))
            request.set_count("uploads_applied", applied)

        fragments = ViewFragments.empty(ctx.locales)

        with stage_instrumentation(request, stage_name="dimensions", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            resolver = DimensionResolver(ctx)
            fragments = fragments.merge(resolver.resolve())
            request.set_count("dimensions_resolved", len(resolver.ordered_dimensions()))
            request.set_count("lookup_tables", len(resolver.lookup_tables))
            for key, value in period_metadata(resolver.periods):
                set_metadata(engine, key, value)

        with stage_instrumentation(request, stage_name="measure", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            fragments = fragments.merge(MeasureResolver(ctx).resolve())

        with stage_instrumentation(request, stage_name="notes", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            fragments = fragments.merge(NoteCodeExpander(ctx).resolve())

        with stage_instrumentation(request, stage_name="views", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            ViewAssembler(ctx).assemble(fragments)
            set_build_status(engine, BuildStatus.AWAITING_MATERIALIZATION)

        with stage_instrumentation(request, stage_name="materialize", metrics=self.metrics) as telemetry:
            ctx.telemetry = telemetry
            return CubeMaterializer(ctx).materialize()

    def _mark_failed(self, engine: DuckDBEngine) -> None:
        if engine.closed:
            return
        try:
            if not engine.table_exists(METADATA_TABLE_NAME):
                return
            set_build_status(engine, BuildStatus.FAILED)
        except StatCubeError as exc:
            logger.warning("Could not record failed build status", extra={"error": str(exc)})

    def _record(self, request: BuildRequestContext, start_time: float, success: bool,
                error: Optional[BaseException] = None) -> None:
        self.metrics.record_build(BuildMetrics(
            build_id=request.build_id,
            dataset_id=request.dataset_id,
            revision_id=request.revision_id,
            duration_seconds=time.perf_counter() - start_time,
            success=success,
            uploads_applied=request.counts.get("uploads_applied", 0),
            dimensions_resolved=request.counts.get("dimensions_resolved", 0),
            error_type=type(error).__name__ if error else None,
        ))


def build_cube(
    dataset: Dataset,
    target_revision: Union[Revision, str],
    fetcher: UploadFetcher,
    translator: Translator,
    date_lookup: DateLookupBuilder,
    settings: Optional[_Settings] = None,
) -> CubeArtifact:
    """Build the cube of ``target_revision`` and return its handle.

    The caller owns the returned file; remove it with ``clean_up_cube``.
    """
    return CubeBuilder(fetcher, translator, date_lookup, settings=settings).build(dataset, target_revision)
