"""
Grid Models
===========

World-space bounds, per-camera attribution and the merged density grid.

Coordinate Convention:
    World coordinates are meters in a shared ground plane. X increases
    rightward and Y increases UPWARD. Grid rows run the other way: row 0
    holds the cells at max_y (the top of the area) and increasing row
    index decreases Y, matching image/plot orientation.

Output Contract (CombinedGrid):
    {
        "cells": [[0.0, 4.0, ...], ...],
        "bounds": {"min_x": 0, "max_x": 20, "min_y": 0, "max_y": 10},
        "regions": [
            {
                "camera_id": "cam-1",
                "position_id": "north",
                "display_name": "North Gate",
                "bounds": {...}
            }
        ]
    }
"""

from typing import Iterable, List

from pydantic import BaseModel, Field, model_validator

from crowd_dashboard.models.stream import StreamKey


class Bounds(BaseModel):
    """
    Axis-aligned rectangle in world coordinates.

    Attributes:
        min_x: Left edge
        max_x: Right edge
        min_y: Bottom edge
        max_y: Top edge
    """

    min_x: float = Field(..., description="Left edge (meters)")
    max_x: float = Field(..., description="Right edge (meters)")
    min_y: float = Field(..., description="Bottom edge (meters)")
    max_y: float = Field(..., description="Top edge (meters)")

    @model_validator(mode="after")
    def validate_extents(self) -> "Bounds":
        """Ensure max >= min on both axes."""
        if self.max_x < self.min_x:
            raise ValueError("max_x must be >= min_x")
        if self.max_y < self.min_y:
            raise ValueError("max_y must be >= min_y")
        return self

    @classmethod
    def unit(cls) -> "Bounds":
        """Default bounds used when a field has no points to measure."""
        return cls(min_x=0.0, max_x=1.0, min_y=0.0, max_y=1.0)

    @classmethod
    def union(cls, bounds: Iterable["Bounds"]) -> "Bounds":
        """
        Smallest rectangle containing every input rectangle.

        Raises:
            ValueError: If no bounds are given
        """
        items = list(bounds)
        if not items:
            raise ValueError("union of zero bounds is undefined")
        return cls(
            min_x=min(b.min_x for b in items),
            max_x=max(b.max_x for b in items),
            min_y=min(b.min_y for b in items),
            max_y=max(b.max_y for b in items),
        )

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, other: "Bounds") -> bool:
        """Whether `other` lies entirely inside this rectangle."""
        return (
            self.min_x <= other.min_x
            and other.max_x <= self.max_x
            and self.min_y <= other.min_y
            and other.max_y <= self.max_y
        )


class CameraRegion(BaseModel):
    """
    One camera's contribution to the merged view.

    Used for legend and attribution only. Merged cell values carry no
    reference back to the region they came from.

    Attributes:
        camera_id: Camera identifier
        position_id: Position name
        display_name: Human-readable camera name
        bounds: World-space window the camera contributed
    """

    camera_id: str = Field(..., description="Camera identifier")
    position_id: str = Field(..., description="Position name")
    display_name: str = Field(..., description="Human-readable camera name")
    bounds: Bounds = Field(..., description="Contributed world-space window")

    @property
    def stream_key(self) -> StreamKey:
        return StreamKey(self.camera_id, self.position_id)


class CombinedGrid(BaseModel):
    """
    Final rasterized merged density field.

    Attributes:
        cells: Row-major density values, row 0 at max_y
        bounds: Global world-space bounds of the grid
        regions: Cameras that contributed at least one sample
    """

    cells: List[List[float]] = Field(..., description="Row-major density cells")
    bounds: Bounds = Field(..., description="Global bounds")
    regions: List[CameraRegion] = Field(
        default_factory=list,
        description="Per-camera attribution",
    )

    @property
    def height(self) -> int:
        """Number of rows."""
        return len(self.cells)

    @property
    def width(self) -> int:
        """Number of columns."""
        return len(self.cells[0]) if self.cells else 0
