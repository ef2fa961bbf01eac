"""
Density Models
==============

Data models for per-camera density fields on their way into the merged grid.

These models are passed between the transform and rasterization stages:

    RawDensityPoint  --transform-->  TransformedField
    TransformedField + CameraRegion  -->  CameraField  --combine-->  CombinedGrid
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from crowd_dashboard.models.grid import Bounds, CameraRegion


# Saturation density (people/m²). Values above it carry no extra meaning.
DENSITY_CEILING = 6.0


@dataclass(frozen=True, slots=True)
class RawDensityPoint:
    """
    One raw density measurement as stored in a transformed-density artifact.

    Attributes:
        x: Horizontal coordinate (meters)
        y: Vertical coordinate (meters, increasing upward)
        density: People per square meter
    """

    x: float
    y: float
    density: float


@dataclass(frozen=True, slots=True)
class WorldDensitySample:
    """
    Density sample in the shared world coordinate system.

    Attributes:
        x: Horizontal coordinate (meters)
        y: Vertical coordinate (meters, increasing upward)
        density: People per square meter, within [0, DENSITY_CEILING]
    """

    x: float
    y: float
    density: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not 0.0 <= self.density <= DENSITY_CEILING:
            raise ValueError(
                f"density must be within [0, {DENSITY_CEILING}], got {self.density}"
            )


@dataclass(frozen=True, slots=True)
class CropRectangle:
    """
    Per-camera projection window in world coordinates.

    The rectangle is anchored at its top-left corner. Width extends to the
    right and height extends DOWNWARD, toward smaller Y:

        (left, top) +----------------+ (left + width, top)
                    |                |
                    |                |
        (left, top - height) +-------+

    Attributes:
        left: X of the left edge
        top: Y of the top edge
        width: Horizontal extent, > 0
        height: Vertical extent below `top`, > 0
    """

    left: float
    top: float
    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width <= 0:
            raise ValueError("width must be positive")
        if self.height <= 0:
            raise ValueError("height must be positive")

    @classmethod
    def from_config(cls, values: Sequence[float]) -> "CropRectangle":
        """
        Build from a camera configuration `[left, top, width, height]` list.

        Raises:
            ValueError: If the list does not have exactly four values
        """
        if len(values) != 4:
            raise ValueError(
                f"crop rectangle needs 4 values [left, top, width, height], got {len(values)}"
            )
        left, top, width, height = (float(v) for v in values)
        return cls(left=left, top=top, width=width, height=height)


@dataclass(frozen=True, slots=True)
class TransformedField:
    """
    Output of the field transform for one camera.

    Attributes:
        samples: Retained, clamped world-space samples
        bounds: World-space window the camera occupies
    """

    samples: Tuple[WorldDensitySample, ...]
    bounds: Bounds

    @property
    def has_data(self) -> bool:
        return len(self.samples) > 0


@dataclass(frozen=True, slots=True)
class CameraField:
    """
    One camera's transformed field, labelled for rasterization.

    Attributes:
        samples: World-space samples
        bounds: World-space window
        region: Attribution record for the legend
    """

    samples: Tuple[WorldDensitySample, ...]
    bounds: Bounds
    region: CameraRegion

    @classmethod
    def from_transformed(
        cls,
        field: TransformedField,
        region: CameraRegion,
    ) -> "CameraField":
        return cls(samples=field.samples, bounds=field.bounds, region=region)

    @property
    def has_data(self) -> bool:
        return len(self.samples) > 0
