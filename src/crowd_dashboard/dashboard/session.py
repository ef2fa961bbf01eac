"""
Dashboard Session
=================

Interactive state of one dashboard view.

The session owns:
    - The active area
    - The manual controls (end date, lookback window, smoothing)
    - The aggregation pipeline that produces snapshots
    - The live scheduler

Live Mode Rules:
    - While live, manual controls are locked (ControlsLockedError)
    - Every live tick moves the end date to "now" and runs the pipeline
    - Switching area turns live mode off first, then forces a run for the
      new area that supersedes anything in flight
    - Turning live mode off never touches the published snapshot
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional

from crowd_dashboard.errors import ControlsLockedError, UnknownAreaError
from crowd_dashboard.models.input import Area
from crowd_dashboard.models.output import DashboardSnapshot
from crowd_dashboard.pipeline.aggregation import (
    AggregationPipeline,
    RunOutcome,
    RunRequest,
    Trigger,
)
from crowd_dashboard.pipeline.scheduler import LiveScheduler
from crowd_dashboard.timeutils import parse_utc, utc_now


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Controls:
    """
    Manual controls of the series window.

    Attributes:
        end_date: End of the window (UTC)
        lookback_hours: Window length in hours
        half_moving_avg_size: Half-width of the moving average
    """

    end_date: datetime
    lookback_hours: int = 3
    half_moving_avg_size: int = 2

    def __post_init__(self) -> None:
        if self.lookback_hours < 1:
            raise ValueError(f"lookback_hours must be >= 1, got {self.lookback_hours}")
        if self.half_moving_avg_size < 0:
            raise ValueError(
                f"half_moving_avg_size must be >= 0, got {self.half_moving_avg_size}"
            )

    def to_dict(self) -> dict:
        return {
            "end_date": self.end_date.isoformat(),
            "lookback_hours": self.lookback_hours,
            "half_moving_avg_size": self.half_moving_avg_size,
        }


class DashboardSession:
    """
    Controls, area selection and live mode around one pipeline.

    Attributes:
        pipeline: Snapshot producer
        area: Active area
        controls: Current manual controls
        scheduler: Live-mode timers
    """

    def __init__(
        self,
        pipeline: AggregationPipeline,
        area: Area,
        lookback_hours: int = 3,
        half_moving_avg_size: int = 2,
        refresh_interval: float = 30.0,
        countdown_step: float = 1.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize session.

        Args:
            pipeline: Pipeline bound to the project
            area: Initially selected area
            lookback_hours: Initial window length
            half_moving_avg_size: Initial smoothing half-width
            refresh_interval: Seconds between live ticks
            countdown_step: Seconds between countdown decrements
            clock: Wall clock for "now"
        """
        self.pipeline = pipeline
        self.area = area
        self._clock = clock
        self.controls = Controls(
            end_date=clock(),
            lookback_hours=lookback_hours,
            half_moving_avg_size=half_moving_avg_size,
        )
        self.scheduler = LiveScheduler(
            on_tick=self.live_tick,
            interval=refresh_interval,
            countdown_step=countdown_step,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def live(self) -> bool:
        return self.scheduler.running

    @property
    def controls_enabled(self) -> bool:
        """Manual controls are usable only while live mode is off."""
        return not self.live

    @property
    def countdown(self) -> int:
        return self.scheduler.countdown

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self.pipeline.snapshot

    def live_state(self) -> dict:
        """Live-mode view for status endpoints."""
        return {
            "live": self.live,
            "countdown": self.countdown,
            "controls_enabled": self.controls_enabled,
            "area_id": self.area.id,
            "controls": self.controls.to_dict(),
        }

    # -------------------------------------------------------------------------
    # Manual controls
    # -------------------------------------------------------------------------

    async def update_controls(
        self,
        end_date: Optional[datetime] = None,
        lookback_hours: Optional[int] = None,
        half_moving_avg_size: Optional[int] = None,
    ) -> RunOutcome:
        """
        Change manual controls and refresh.

        Raises:
            ControlsLockedError: If live mode is on
        """
        self._require_manual()

        changes = {}
        if end_date is not None:
            changes["end_date"] = parse_utc(end_date)
        if lookback_hours is not None:
            changes["lookback_hours"] = lookback_hours
        if half_moving_avg_size is not None:
            changes["half_moving_avg_size"] = half_moving_avg_size
        self.controls = replace(self.controls, **changes)

        return await self._run(Trigger.CONTROLS)

    async def apply(self) -> RunOutcome:
        """
        Refresh with the current controls.

        Raises:
            ControlsLockedError: If live mode is on
        """
        self._require_manual()
        return await self._run(Trigger.APPLY)

    async def select_point(self, timestamp: datetime) -> RunOutcome:
        """Refresh with the grid aligned to a clicked series point."""
        return await self._run(Trigger.GRAPH_POINT, focus=parse_utc(timestamp))

    # -------------------------------------------------------------------------
    # Live mode
    # -------------------------------------------------------------------------

    async def set_live(self, enabled: bool) -> None:
        """Turn live mode on or off."""
        if enabled:
            self.scheduler.start()
        else:
            await self.scheduler.stop()

    async def live_tick(self, initial: bool = False) -> RunOutcome:
        """Move the end date to now and refresh."""
        now = self._clock()
        # Rejected ticks leave the controls untouched
        if not self.pipeline.in_flight:
            self.controls = replace(self.controls, end_date=now)
        trigger = Trigger.LIVE_START if initial else Trigger.LIVE_TICK
        return await self._run(trigger, end_date=now)

    # -------------------------------------------------------------------------
    # Area selection
    # -------------------------------------------------------------------------

    async def switch_area(self, area_id: str) -> RunOutcome:
        """
        Select another area of the project.

        Live mode is turned off and the new area's run supersedes any run
        still in flight.

        Raises:
            UnknownAreaError: If the area is not part of the project
        """
        area = self.pipeline.project.get_area(area_id)
        if area is None:
            raise UnknownAreaError(f"Unknown area: {area_id}")

        await self.set_live(False)
        self.area = area
        logger.info(f"Switched to area {area.id} ({area.name})")
        return await self._run(Trigger.AREA_SWITCH, force=True)

    async def close(self) -> None:
        """Stop live timers."""
        await self.scheduler.stop()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_manual(self) -> None:
        if self.live:
            raise ControlsLockedError("Manual controls are disabled while live mode is on")

    async def _run(
        self,
        trigger: Trigger,
        focus: Optional[datetime] = None,
        force: bool = False,
        end_date: Optional[datetime] = None,
    ) -> RunOutcome:
        request = RunRequest(
            area=self.area,
            end_date=end_date or self.controls.end_date,
            lookback_hours=self.controls.lookback_hours,
            half_moving_avg_size=self.controls.half_moving_avg_size,
            focus=focus,
            trigger=trigger,
        )
        return await self.pipeline.run(request, force=force)
