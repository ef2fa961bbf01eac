"""
Data Models
===========

Data models for the crowd dashboard.

This module re-exports all data models for convenient access.

Models:
    Stream:
        - StreamKey: Camera + position identity
        - TimestampSample: One instant at which a stream has data

    Density:
        - RawDensityPoint, WorldDensitySample: Density measurements
        - CropRectangle: Per-camera projection window
        - TransformedField, CameraField: Per-camera fields in world space

    Grid:
        - Bounds: Axis-aligned world rectangle
        - CameraRegion: Per-camera attribution
        - CombinedGrid: Merged density grid

    Input:
        - AggregateRequest, AggregateResponse: Time-series exchange
        - TimeSeriesPoint, CameraTimestamp: Series and catalog entries
        - Project, Area, CameraConfig, Camera, Position: Project layout

    Output:
        - PipelineStatus: idle | loading | success | empty | error
        - DashboardSnapshot: Complete published state
"""

from crowd_dashboard.models.stream import StreamKey, TimestampSample
from crowd_dashboard.models.grid import Bounds, CameraRegion, CombinedGrid
from crowd_dashboard.models.density import (
    DENSITY_CEILING,
    CameraField,
    CropRectangle,
    RawDensityPoint,
    TransformedField,
    WorldDensitySample,
)
from crowd_dashboard.models.input import (
    AggregateRequest,
    AggregateResponse,
    Area,
    Camera,
    CameraConfig,
    CameraTimestamp,
    Position,
    Project,
    TimeSeriesPoint,
)
from crowd_dashboard.models.output import (
    DashboardSnapshot,
    GridSummary,
    PipelineStatus,
    SeriesStats,
    StreamTimestamp,
)
from crowd_dashboard.models.reason_codes import ErrorCode

__all__ = [
    # Stream
    "StreamKey",
    "TimestampSample",
    # Grid
    "Bounds",
    "CameraRegion",
    "CombinedGrid",
    # Density
    "DENSITY_CEILING",
    "RawDensityPoint",
    "WorldDensitySample",
    "CropRectangle",
    "TransformedField",
    "CameraField",
    # Input
    "AggregateRequest",
    "AggregateResponse",
    "TimeSeriesPoint",
    "CameraTimestamp",
    "Position",
    "CameraConfig",
    "Camera",
    "Area",
    "Project",
    # Output
    "PipelineStatus",
    "StreamTimestamp",
    "SeriesStats",
    "GridSummary",
    "DashboardSnapshot",
    "ErrorCode",
]
