"""
Aggregation Pipeline
====================

Token-gated orchestration of one dashboard refresh.

A run:
    1. Issues a fresh request token and publishes a `loading` snapshot
    2. Fetches the aggregated series and its timestamp catalog
    3. Picks the focus instant (clicked point, else latest series point)
    4. Resolves the nearest artifact instant per stream
    5. Fetches and transforms every camera's density field concurrently
    6. Merges the fields into one grid
    7. Publishes the result only if its token is still the latest

State Machine:
    Idle -> Running(token) -> Published | Superseded | Failed -> Idle

Design Rules:
    - Tokens strictly increase; last token wins
    - A trigger arriving while a run is in flight is REJECTED, not queued,
      unless the caller forces it (area switch)
    - A superseded run never publishes, success or failure
    - Per-camera failures degrade to `missing_cameras`; they never fail the run
    - The snapshot is replaced with a single assignment and never mutated
    - In-flight HTTP requests are not aborted; stale results are discarded
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple

from pydantic import ValidationError

from crowd_dashboard.alignment.timestamps import artifact_name, nearest_lookup
from crowd_dashboard.errors import (
    ArtifactNotFoundError,
    BackendError,
    DashboardError,
    PartialCameraMismatchError,
)
from crowd_dashboard.geometry.field import transform
from crowd_dashboard.geometry.raster import DEFAULT_CELL_SIZE, combine
from crowd_dashboard.models.density import DENSITY_CEILING, CameraField, RawDensityPoint
from crowd_dashboard.models.grid import CameraRegion
from crowd_dashboard.models.input import (
    AggregateRequest,
    AggregateResponse,
    Area,
    CameraConfig,
    Project,
)
from crowd_dashboard.models.output import (
    DashboardSnapshot,
    PipelineStatus,
    StreamTimestamp,
)
from crowd_dashboard.models.reason_codes import ErrorCode
from crowd_dashboard.observability.analytics import compute_series_stats, summarize_grid
from crowd_dashboard.timeutils import parse_utc, utc_now


logger = logging.getLogger(__name__)


EMPTY_SERIES_MESSAGE = (
    "No crowd count data for the selected time range. "
    "Try increasing the lookback window."
)
PARTIAL_MISMATCH_MESSAGE = (
    "Some cameras in this area do not have data for the selected time range. "
    "Try a different end date or lookback window."
)
GENERIC_FAILURE_MESSAGE = "Failed to load crowd count data. Please try again."
NO_GRID_MESSAGE = "No density data available for any camera in this area"


# =============================================================================
# Run Types
# =============================================================================

class Trigger(str, Enum):
    """What caused a pipeline run."""

    APPLY = "apply"
    CONTROLS = "controls"
    GRAPH_POINT = "graph_point"
    LIVE_TICK = "live_tick"
    AREA_SWITCH = "area_switch"
    LIVE_START = "live_start"


class RunOutcome(str, Enum):
    """
    How a pipeline run ended.

    Attributes:
        PUBLISHED: Snapshot published (success or empty)
        SUPERSEDED: A newer token was issued; result discarded
        FAILED: Error snapshot published
        REJECTED: Another run was in flight; nothing started
    """

    PUBLISHED = "published"
    SUPERSEDED = "superseded"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class RunRequest:
    """
    Parameters of one pipeline run.

    Attributes:
        area: Area to aggregate
        end_date: End of the series window
        lookback_hours: Window length in hours
        half_moving_avg_size: Half-width of the moving average
        focus: Instant to align the grid to; latest series point when None
        trigger: What caused the run
    """

    area: Area
    end_date: datetime
    lookback_hours: int = 3
    half_moving_avg_size: int = 2
    focus: Optional[datetime] = None
    trigger: Trigger = Trigger.APPLY

    def __post_init__(self) -> None:
        if self.lookback_hours < 1:
            raise ValueError(f"lookback_hours must be >= 1, got {self.lookback_hours}")
        if self.half_moving_avg_size < 0:
            raise ValueError(
                f"half_moving_avg_size must be >= 0, got {self.half_moving_avg_size}"
            )

    def to_aggregate_request(self) -> AggregateRequest:
        return AggregateRequest(
            end_date=self.end_date,
            lookback_hours=self.lookback_hours,
            half_moving_avg_size=self.half_moving_avg_size,
        )


class DensityBackend(Protocol):
    """Backend operations the pipeline depends on."""

    async def fetch_time_series(
        self,
        project_id: str,
        area_id: str,
        request: AggregateRequest,
    ) -> AggregateResponse:
        ...

    async def fetch_density_field(self, artifact: str) -> List[RawDensityPoint]:
        ...


class PipelineMetrics:
    """Metrics for AggregationPipeline observability."""

    __slots__ = (
        "runs_issued",
        "runs_published",
        "runs_superseded",
        "runs_failed",
        "runs_rejected",
        "cameras_missing",
        "last_token",
    )

    def __init__(self) -> None:
        self.runs_issued: int = 0
        self.runs_published: int = 0
        self.runs_superseded: int = 0
        self.runs_failed: int = 0
        self.runs_rejected: int = 0
        self.cameras_missing: int = 0
        self.last_token: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "runs_issued": self.runs_issued,
            "runs_published": self.runs_published,
            "runs_superseded": self.runs_superseded,
            "runs_failed": self.runs_failed,
            "runs_rejected": self.runs_rejected,
            "cameras_missing": self.cameras_missing,
            "last_token": self.last_token,
        }


# =============================================================================
# Pipeline
# =============================================================================

class AggregationPipeline:
    """
    Runs dashboard refreshes and publishes their snapshots.

    Attributes:
        project: Project whose areas are aggregated
        snapshot: Latest published snapshot
        metrics: Operational metrics

    Example:
        pipeline = AggregationPipeline(backend, project)
        outcome = await pipeline.run(RunRequest(area=area, end_date=utc_now()))
        print(pipeline.snapshot.status)
    """

    def __init__(
        self,
        backend: DensityBackend,
        project: Project,
        cell_size: float = DEFAULT_CELL_SIZE,
        ceiling: float = DENSITY_CEILING,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            backend: Source of series and density artifacts
            project: Project the areas belong to
            cell_size: World units per grid cell
            ceiling: Saturation density
            clock: Wall clock used for `published_at`
        """
        self.backend = backend
        self.project = project
        self.cell_size = cell_size
        self.ceiling = ceiling
        self._clock = clock

        self._latest_token: int = 0
        self._in_flight_token: Optional[int] = None
        self._snapshot = DashboardSnapshot()

        self.metrics = PipelineMetrics()

    @property
    def snapshot(self) -> DashboardSnapshot:
        """Latest published snapshot."""
        return self._snapshot

    @property
    def latest_token(self) -> int:
        """Most recently issued token (0 before the first run)."""
        return self._latest_token

    @property
    def in_flight(self) -> bool:
        """Whether a run is currently executing."""
        return self._in_flight_token is not None

    async def run(self, request: RunRequest, force: bool = False) -> RunOutcome:
        """
        Execute one refresh.

        Args:
            request: Run parameters
            force: Start even if another run is in flight, superseding it

        Returns:
            How the run ended
        """
        if self._in_flight_token is not None and not force:
            self.metrics.runs_rejected += 1
            logger.info(
                f"Rejected {request.trigger.value} run: "
                f"token {self._in_flight_token} still in flight"
            )
            return RunOutcome.REJECTED

        token = self._issue_token()
        self._in_flight_token = token
        logger.info(
            f"Run {token} started ({request.trigger.value}) for area {request.area.id}, "
            f"end_date={request.end_date.isoformat()}, lookback={request.lookback_hours}h"
        )

        self._publish(self._loading_snapshot(token, request))

        failed = False
        try:
            result = await self._execute(token, request)
        except (DashboardError, ValidationError, ValueError) as e:
            failed = True
            result = self._failure_snapshot(token, request, e)
        except Exception as e:
            logger.error(f"Run {token} raised unexpectedly: {e}", exc_info=True)
            failed = True
            result = self._failure_snapshot(token, request, e)
        finally:
            if self._in_flight_token == token:
                self._in_flight_token = None

        if token != self._latest_token:
            self.metrics.runs_superseded += 1
            logger.debug(
                f"Run {token} superseded by token {self._latest_token}, result dropped"
            )
            return RunOutcome.SUPERSEDED

        self._publish(result)

        if failed:
            self.metrics.runs_failed += 1
            logger.error(f"Run {token} failed: [{result.error_code.value}] {result.error_message}")
            return RunOutcome.FAILED

        self.metrics.runs_published += 1
        logger.info(
            f"Run {token} published: status={result.status.value}, "
            f"{len(result.time_series)} points, {len(result.missing_cameras)} missing cameras"
        )
        return RunOutcome.PUBLISHED

    # -------------------------------------------------------------------------
    # Run stages
    # -------------------------------------------------------------------------

    async def _execute(self, token: int, request: RunRequest) -> DashboardSnapshot:
        area = request.area
        series = await self.backend.fetch_time_series(
            self.project.id,
            area.id,
            request.to_aggregate_request(),
        )

        if not series.time_series:
            return DashboardSnapshot(
                token=token,
                status=PipelineStatus.EMPTY,
                error_code=ErrorCode.NO_AGGREGATE_DATA,
                error_message=EMPTY_SERIES_MESSAGE,
                area_id=area.id,
                end_date=request.end_date,
                camera_timestamps=series.camera_timestamps,
                published_at=self._clock(),
            )

        if request.focus is not None:
            focus = parse_utc(request.focus)
        else:
            focus = max(point.timestamp for point in series.time_series)

        lookup = nearest_lookup(series.catalog(), area.streams, focus)

        loads = await asyncio.gather(
            *(
                self._load_camera(config, lookup.get(config.stream_key))
                for config in area.camera_configs
            )
        )

        fields = [field for field, _ in loads if field is not None]
        missing = [label for field, label in loads if field is None or not field.has_data]
        self.metrics.cameras_missing += len(missing)

        grid = combine(fields, cell_size=self.cell_size, ceiling=self.ceiling)

        return DashboardSnapshot(
            token=token,
            status=PipelineStatus.SUCCESS,
            area_id=area.id,
            end_date=request.end_date,
            focus_instant=focus,
            time_series=series.time_series,
            stats=compute_series_stats(series.time_series),
            camera_timestamps=series.camera_timestamps,
            nearest_timestamps=[
                StreamTimestamp(
                    camera_id=stream.camera_id,
                    position=stream.position_id,
                    timestamp=lookup.get(stream),
                )
                for stream in area.streams
            ],
            combined_grid=grid,
            grid_summary=summarize_grid(grid) if grid is not None else None,
            grid_message=None if grid is not None else NO_GRID_MESSAGE,
            missing_cameras=missing,
            published_at=self._clock(),
        )

    async def _load_camera(
        self,
        config: CameraConfig,
        instant: Optional[datetime],
    ) -> Tuple[Optional[CameraField], str]:
        """
        Fetch and transform one camera's field.

        Returns:
            (field, label). Field is None when the camera is missing.
        """
        display_name = self.project.display_name(config)
        label = f"{display_name} ({config.position.name})"

        if instant is None:
            logger.warning(
                f"[{ErrorCode.NO_STREAM_DATA.value}] No timestamps for {config.stream_key}"
            )
            return None, label

        name = artifact_name(self.project.id, config.camera_id, config.position.name, instant)
        try:
            points = await self.backend.fetch_density_field(name)
        except ArtifactNotFoundError:
            logger.warning(f"[{ErrorCode.ARTIFACT_NOT_FOUND.value}] {name}")
            return None, label
        except BackendError as e:
            logger.warning(f"Density field for {config.stream_key} failed: {e}")
            return None, label
        except Exception as e:
            logger.warning(
                f"Density field for {config.stream_key} raised unexpectedly: {e}",
                exc_info=True,
            )
            return None, label

        field = transform(points, crop=config.crop, ceiling=self.ceiling)
        if not field.has_data:
            logger.warning(f"No density samples inside the crop for {config.stream_key}")
        region = CameraRegion(
            camera_id=config.camera_id,
            position_id=config.position.name,
            display_name=display_name,
            bounds=field.bounds,
        )
        return CameraField.from_transformed(field, region), label

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def _issue_token(self) -> int:
        self._latest_token += 1
        self.metrics.runs_issued += 1
        self.metrics.last_token = self._latest_token
        return self._latest_token

    def _publish(self, snapshot: DashboardSnapshot) -> None:
        self._snapshot = snapshot

    def _loading_snapshot(self, token: int, request: RunRequest) -> DashboardSnapshot:
        return DashboardSnapshot(
            token=token,
            status=PipelineStatus.LOADING,
            area_id=request.area.id,
            end_date=request.end_date,
            published_at=self._clock(),
        )

    def _failure_snapshot(
        self,
        token: int,
        request: RunRequest,
        error: Exception,
    ) -> DashboardSnapshot:
        if isinstance(error, PartialCameraMismatchError):
            code = ErrorCode.PARTIAL_CAMERA_MISMATCH
            message = PARTIAL_MISMATCH_MESSAGE
        else:
            code = (
                error.code
                if isinstance(error, DashboardError)
                else ErrorCode.TRANSPORT_OR_PARSE_FAILURE
            )
            message = str(error) or GENERIC_FAILURE_MESSAGE

        return DashboardSnapshot(
            token=token,
            status=PipelineStatus.ERROR,
            error_code=code,
            error_message=message,
            area_id=request.area.id,
            end_date=request.end_date,
            published_at=self._clock(),
        )
