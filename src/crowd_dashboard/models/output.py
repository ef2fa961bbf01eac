"""
Dashboard Output Models
=======================

This module defines the snapshot published by the aggregation pipeline.

A snapshot is the ONLY state rendering collaborators read. Each pipeline
transition builds a complete new snapshot and swaps it in with a single
assignment, so consumers never observe a half-updated view.

Output Contract:
    {
        "token": 7,
        "status": "success",
        "error_code": null,
        "error_message": null,
        "area_id": "main-hall",
        "end_date": "2024-01-01T12:00:00Z",
        "focus_instant": "2024-01-01T11:59:00Z",
        "time_series": [{"timestamp": "...", "value": 42}],
        "stats": {"current": 42, "maximum": 50, "average": 40, "minimum": 31},
        "camera_timestamps": [...],
        "nearest_timestamps": [
            {"camera_id": "cam-1", "position": "north", "timestamp": "..."}
        ],
        "combined_grid": {"cells": [[...]], "bounds": {...}, "regions": [...]},
        "grid_summary": {"width_m": 20, "height_m": 10, ...},
        "grid_message": null,
        "missing_cameras": ["South Gate (south)"],
        "published_at": "2024-01-01T12:00:01Z"
    }

Design Rules:
    - Snapshots are built once and never mutated
    - `status` is one of idle | loading | success | empty | error
    - `error` is distinct from `empty`: empty means the series had no points
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from crowd_dashboard.models.grid import CombinedGrid
from crowd_dashboard.models.input import CameraTimestamp, TimeSeriesPoint
from crowd_dashboard.models.reason_codes import ErrorCode
from crowd_dashboard.models.stream import StreamKey


class PipelineStatus(str, Enum):
    """
    Externally visible pipeline state.

    Attributes:
        IDLE: Nothing has been requested yet
        LOADING: A run is in flight, previous data cleared
        SUCCESS: Latest run published data
        EMPTY: Latest run found no series points
        ERROR: Latest run failed
    """

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


class StreamTimestamp(BaseModel):
    """
    Nearest available instant of one stream relative to the focus instant.

    `timestamp` is None when the stream has no catalog entry.
    """

    camera_id: str = Field(..., description="Camera identifier")
    position: str = Field(..., description="Position name")
    timestamp: Optional[datetime] = Field(default=None, description="Nearest UTC instant")


class SeriesStats(BaseModel):
    """
    Summary of the aggregated crowd count series.

    Attributes:
        current: Last value of the series
        maximum: Largest value
        average: Mean value, rounded to the nearest integer
        minimum: Smallest value
    """

    current: float = Field(default=0.0)
    maximum: float = Field(default=0.0)
    average: float = Field(default=0.0)
    minimum: float = Field(default=0.0)


class GridSummary(BaseModel):
    """
    Descriptive figures for the combined grid.

    Attributes:
        width_m: Combined area width in meters
        height_m: Combined area height in meters
        density_min: Smallest non-zero cell density
        density_max: Largest non-zero cell density
        camera_count: Number of cameras combined
    """

    width_m: float = Field(..., ge=0.0)
    height_m: float = Field(..., ge=0.0)
    density_min: float = Field(..., ge=0.0)
    density_max: float = Field(..., ge=0.0)
    camera_count: int = Field(..., ge=0)


class DashboardSnapshot(BaseModel):
    """
    Complete externally observable dashboard state.

    Attributes:
        token: Request token of the run that produced this snapshot
        status: Pipeline status
        error_code: Machine-readable code for empty/error states
        error_message: Human-readable message for empty/error states
        area_id: Area the snapshot describes
        end_date: End of the requested series window
        focus_instant: Instant the grid and lookup are aligned to
        time_series: Aggregated crowd counts
        stats: Series summary
        camera_timestamps: Catalog returned with the series
        nearest_timestamps: Per-stream nearest instant to the focus
        combined_grid: Merged density grid, None when no camera had data
        grid_summary: Descriptive figures for the grid
        grid_message: Why the grid is absent, if it is
        missing_cameras: Cameras excluded from the grid
        published_at: Wall-clock time the snapshot was published
    """

    token: int = Field(default=0, ge=0)
    status: PipelineStatus = Field(default=PipelineStatus.IDLE)
    error_code: Optional[ErrorCode] = Field(default=None)
    error_message: Optional[str] = Field(default=None)

    area_id: Optional[str] = Field(default=None)
    end_date: Optional[datetime] = Field(default=None)
    focus_instant: Optional[datetime] = Field(default=None)

    time_series: List[TimeSeriesPoint] = Field(default_factory=list)
    stats: SeriesStats = Field(default_factory=SeriesStats)
    camera_timestamps: List[CameraTimestamp] = Field(default_factory=list)
    nearest_timestamps: List[StreamTimestamp] = Field(default_factory=list)

    combined_grid: Optional[CombinedGrid] = Field(default=None)
    grid_summary: Optional[GridSummary] = Field(default=None)
    grid_message: Optional[str] = Field(default=None)
    missing_cameras: List[str] = Field(default_factory=list)

    published_at: Optional[datetime] = Field(default=None)

    def nearest_lookup(self) -> Dict[StreamKey, Optional[datetime]]:
        """Per-stream nearest instants keyed by stream."""
        return {
            StreamKey(entry.camera_id, entry.position): entry.timestamp
            for entry in self.nearest_timestamps
        }
