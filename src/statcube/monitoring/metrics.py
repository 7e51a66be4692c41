"""Metrics collection for cube builds.

This module provides the OpenTelemetry instruments recorded around every
cube build and its stages, plus a small in-process record of finished
builds for callers that want a summary without a metrics backend.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from statcube.__version__ import __version__
from statcube.logging import get_logger
from statcube.telemetry import INSTRUMENTATION_NAME, get_meter
from statcube.utils.datetime import get_current_timestamp


@dataclass
class BuildMetrics:
    """Container for the metrics of one cube build.

    Attributes:
        build_id: Identifier of the build
        dataset_id: Dataset the cube was built for
        revision_id: Target revision
        duration_seconds: Wall time from schema derivation to materialization
        success: Whether an artifact was produced
        uploads_applied: Fact table uploads replayed into the fact table
        dimensions_resolved: Dimensions that contributed view columns
        error_type: Exception class name when the build failed
        timestamp: When the build finished
    """

    build_id: str
    dataset_id: str
    revision_id: str
    duration_seconds: float
    success: bool
    uploads_applied: int = 0
    dimensions_resolved: int = 0
    error_type: Optional[str] = None
    timestamp: datetime = field(default_factory=get_current_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


class MetricsCollector:
    """Collector for cube build and stage metrics.

    Instruments:
        statcube.cube.builds: counter of finished builds, tagged by status
        statcube.cube.build.duration: histogram of build wall time
        statcube.cube.stages: counter of finished stages, tagged by stage and status
        statcube.cube.stage.duration: histogram of stage wall time
    """

    def __init__(self, meter_name: str = INSTRUMENTATION_NAME, meter_version: Optional[str] = None):
        self.logger = get_logger(__name__)
        self._builds: List[BuildMetrics] = []
        self.meter = get_meter(meter_name, meter_version or __version__)
        self._setup_instruments()

    def _setup_instruments(self) -> None:
        """Setup OpenTelemetry instruments."""
        self.build_counter = self.meter.create_counter(
            "statcube.cube.builds",
            description="Total number of cube builds",
            unit="builds"
        )

        self.stage_counter = self.meter.create_counter(
            "statcube.cube.stages",
            description="Total number of cube build stages",
            unit="stages"
        )

        self.duration_histogram = self.meter.create_histogram(
            "statcube.cube.build.duration",
            description="Duration of cube builds",
            unit="s"
        )

        self.stage_duration_histogram = self.meter.create_histogram(
            "statcube.cube.stage.duration",
            description="Duration of cube build stages",
            unit="s"
        )

    def record_build(self, metrics: BuildMetrics) -> None:
        """Record a finished build.

        Args:
            metrics: Build metrics to record
        """
        self._builds.append(metrics)

        attributes = {
            "dataset_id": metrics.dataset_id,
            "status": "success" if metrics.success else "error",
        }
        if metrics.error_type:
            attributes["error_type"] = metrics.error_type

        self.build_counter.add(1, attributes)
        self.duration_histogram.record(metrics.duration_seconds, attributes)

        self.logger.info(
            "Cube build recorded",
            extra={key: str(value) for key, value in metrics.to_dict().items() if value is not None},
        )

    def record_stage(self, stage: str, duration_seconds: float, success: bool, tags: Optional[Dict[str, str]] = None) -> None:
        attributes = {**(tags or {}), "stage": stage, "status": "success" if success else "error"}
        self.stage_counter.add(1, attributes)
        self.stage_duration_histogram.record(duration_seconds, attributes)

    def get_summary(self) -> Dict[str, Any]:
        """Summarize the builds recorded by this collector."""
        if not self._builds:
            return {"total_builds": 0}

        succeeded = [m for m in self._builds if m.success]
        total_duration = sum(m.duration_seconds for m in self._builds)
        return {
            "total_builds": len(self._builds),
            "successful_builds": len(succeeded),
            "failed_builds": len(self._builds) - len(succeeded),
            "success_rate": len(succeeded) / len(self._builds),
            "average_duration_seconds": total_duration / len(self._builds),
        }


_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector; instruments are created once."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector
