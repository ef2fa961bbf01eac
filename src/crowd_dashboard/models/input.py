"""
Backend Message Schemas
=======================

Pydantic models for payloads exchanged with the density backend.

The backend is a black box. These models validate what it returns so that a
malformed payload is rejected at the boundary instead of surfacing as a
confusing failure deep inside the pipeline.

Aggregate Response Contract:
    {
        "time_series": [
            {"timestamp": "2024-01-01T10:00:00Z", "value": 42}
        ],
        "camera_timestamps": [
            {"camera_id": "cam-1", "position": "north",
             "timestamp": "2024-01-01T10:00:00"}
        ]
    }

Timestamps without an explicit offset are UTC.

Example:
    from crowd_dashboard.models.input import AggregateResponse

    response = AggregateResponse.model_validate(payload)
    catalog = response.catalog()
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from crowd_dashboard.models.density import CropRectangle
from crowd_dashboard.models.stream import StreamKey, TimestampSample
from crowd_dashboard.timeutils import parse_utc, to_iso_z


# =============================================================================
# Time Series
# =============================================================================

class TimeSeriesPoint(BaseModel):
    """
    One point of the aggregated crowd count series.

    Attributes:
        timestamp: UTC instant of the point
        value: Aggregated crowd count
    """

    timestamp: datetime = Field(..., description="UTC instant")
    value: float = Field(..., description="Aggregated crowd count")

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        return parse_utc(v)


class CameraTimestamp(BaseModel):
    """
    Catalog entry: a stream has data at this instant.

    Attributes:
        camera_id: Camera identifier
        position: Position name
        timestamp: UTC instant
    """

    camera_id: str = Field(..., description="Camera identifier")
    position: str = Field(..., description="Position name")
    timestamp: datetime = Field(..., description="UTC instant")

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_timestamp(cls, v):
        return parse_utc(v)

    def to_sample(self) -> TimestampSample:
        return TimestampSample(
            stream=StreamKey(self.camera_id, self.position),
            instant=self.timestamp,
        )


class AggregateRequest(BaseModel):
    """
    Parameters of a time-series aggregation request.

    Attributes:
        end_date: End of the window (UTC)
        lookback_hours: Window length in hours
        half_moving_avg_size: Half-width of the server-side moving average
    """

    end_date: datetime = Field(..., description="Window end (UTC)")
    lookback_hours: int = Field(default=3, ge=1, description="Window length (hours)")
    half_moving_avg_size: int = Field(
        default=2,
        ge=0,
        description="Half-width of the moving average window",
    )

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end_date(cls, v):
        return parse_utc(v)

    def to_payload(self) -> dict:
        """Request body in the backend's wire format."""
        return {
            "end_date": to_iso_z(self.end_date),
            "lookback_hours": self.lookback_hours,
            "half_moving_avg_size": self.half_moving_avg_size,
        }


class AggregateResponse(BaseModel):
    """
    Aggregated series plus the catalog of per-stream timestamps.

    Attributes:
        time_series: Aggregated crowd counts, oldest first
        camera_timestamps: Instants at which each stream has data
    """

    time_series: List[TimeSeriesPoint] = Field(default_factory=list)
    camera_timestamps: List[CameraTimestamp] = Field(default_factory=list)

    def catalog(self) -> List[TimestampSample]:
        """Catalog entries as timestamp samples, in response order."""
        return [entry.to_sample() for entry in self.camera_timestamps]


# =============================================================================
# Project Configuration
# =============================================================================

class Position(BaseModel):
    """Named mounting position of a camera."""

    name: str = Field(..., description="Position name")


class CameraConfig(BaseModel):
    """
    Configuration of one camera at one position inside an area.

    Attributes:
        camera_id: Camera identifier
        position: Mounting position
        name: Optional display name for this configuration
        enable_heatmap: Whether the camera is configured for heatmap output
        heatmap_config: Optional crop rectangle [left, top, width, height]
    """

    camera_id: str = Field(..., description="Camera identifier")
    position: Position = Field(..., description="Mounting position")
    name: Optional[str] = Field(default=None, description="Display name")
    enable_heatmap: bool = Field(default=True, description="Heatmap output enabled")
    heatmap_config: Optional[List[float]] = Field(
        default=None,
        description="Crop rectangle [left, top, width, height] in world units",
    )

    @field_validator("heatmap_config")
    @classmethod
    def validate_heatmap_config(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        """Reject crop rectangles that are not a valid [l, t, w, h]."""
        if v is not None:
            CropRectangle.from_config(v)
        return v

    @property
    def stream_key(self) -> StreamKey:
        return StreamKey(self.camera_id, self.position.name)

    @property
    def crop(self) -> Optional[CropRectangle]:
        if self.heatmap_config is None:
            return None
        return CropRectangle.from_config(self.heatmap_config)


class Camera(BaseModel):
    """Physical camera registered in a project."""

    id: str = Field(..., description="Camera identifier")
    name: str = Field(..., description="Human-readable name")


class Area(BaseModel):
    """
    Physical area observed by one or more camera configurations.

    Attributes:
        id: Area identifier
        name: Human-readable name
        camera_configs: Streams that cover this area
    """

    id: str = Field(..., description="Area identifier")
    name: str = Field(..., description="Human-readable name")
    camera_configs: List[CameraConfig] = Field(default_factory=list)

    @property
    def streams(self) -> List[StreamKey]:
        return [config.stream_key for config in self.camera_configs]


class Project(BaseModel):
    """
    Project with its cameras and areas.

    Attributes:
        id: Project identifier
        name: Human-readable name
        cameras: Registered cameras
        areas: Monitored areas
    """

    id: str = Field(..., description="Project identifier")
    name: str = Field(..., description="Human-readable name")
    cameras: List[Camera] = Field(default_factory=list)
    areas: List[Area] = Field(default_factory=list)

    def get_area(self, area_id: str) -> Optional[Area]:
        for area in self.areas:
            if area.id == area_id:
                return area
        return None

    def camera_names(self) -> Dict[str, str]:
        return {camera.id: camera.name for camera in self.cameras}

    def display_name(self, config: CameraConfig) -> str:
        """Config name, else the camera's registered name, else its id."""
        if config.name:
            return config.name
        return self.camera_names().get(config.camera_id, config.camera_id)
