"""
Field Transform
===============

Projects one camera's raw density points into world-space samples.

This module handles:
    - Parsing transformed-density artifacts ([x, y, density] triples)
    - Crop filtering against the camera's projection window
    - Deriving the world-space bounds the camera occupies
    - Clamping densities to [0, DENSITY_CEILING]

Crop Convention:
    A crop rectangle is [left, top, width, height] with Y increasing
    upward in world space. Height extends DOWNWARD from `top`, so the
    window covers y in [top - height, top]. `crop_to_bounds` is the single
    place that encodes this; everything else goes through it.

When a crop is configured, the camera's bounds come from the crop rectangle
itself rather than from the retained points, so a camera is anchored at its
declared window even when no point lands near its edges.

All functions are pure.
"""

import logging
import math
from typing import Any, List, Optional, Sequence

from crowd_dashboard.errors import PayloadError
from crowd_dashboard.models.density import (
    DENSITY_CEILING,
    CropRectangle,
    RawDensityPoint,
    TransformedField,
    WorldDensitySample,
)
from crowd_dashboard.models.grid import Bounds


logger = logging.getLogger(__name__)


def clamp_density(value: float, ceiling: float = DENSITY_CEILING) -> float:
    """Clamp a density into [0, ceiling]."""
    return min(max(value, 0.0), ceiling)


def crop_to_bounds(crop: CropRectangle) -> Bounds:
    """
    World-space bounds of a crop rectangle.

    Returns:
        Bounds with min_x=left, max_x=left+width,
        min_y=top-height, max_y=top
    """
    return Bounds(
        min_x=crop.left,
        max_x=crop.left + crop.width,
        min_y=crop.top - crop.height,
        max_y=crop.top,
    )


def points_bounds(points: Sequence[RawDensityPoint]) -> Bounds:
    """
    Tight bounding box of a point set.

    An empty set yields the unit square so downstream extents are never zero
    by construction.
    """
    if not points:
        return Bounds.unit()
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Bounds(min_x=min(xs), max_x=max(xs), min_y=min(ys), max_y=max(ys))


def in_crop(point: RawDensityPoint, bounds: Bounds) -> bool:
    """Inclusive containment test against crop bounds."""
    return (
        bounds.min_x <= point.x <= bounds.max_x
        and bounds.min_y <= point.y <= bounds.max_y
    )


def transform(
    points: Sequence[RawDensityPoint],
    crop: Optional[CropRectangle] = None,
    ceiling: float = DENSITY_CEILING,
) -> TransformedField:
    """
    Transform raw points into world-space samples.

    Args:
        points: Raw density points of one camera
        crop: Optional projection window
        ceiling: Saturation density for clamping

    Returns:
        TransformedField with retained samples and camera bounds
    """
    if crop is None:
        retained = list(points)
        bounds = points_bounds(retained)
    else:
        bounds = crop_to_bounds(crop)
        retained = [p for p in points if in_crop(p, bounds)]

    samples = tuple(
        WorldDensitySample(x=p.x, y=p.y, density=clamp_density(p.density, ceiling))
        for p in retained
    )

    if crop is not None and len(samples) < len(points):
        logger.debug(
            f"Crop retained {len(samples)}/{len(points)} points "
            f"within x=[{bounds.min_x}, {bounds.max_x}], y=[{bounds.min_y}, {bounds.max_y}]"
        )

    return TransformedField(samples=samples, bounds=bounds)


def parse_raw_points(payload: Any) -> List[RawDensityPoint]:
    """
    Parse a transformed-density artifact.

    Args:
        payload: Decoded JSON, expected to be a list of [x, y, density]

    Returns:
        Parsed points, in payload order

    Raises:
        PayloadError: If the payload is not a list of numeric triples
    """
    if not isinstance(payload, list):
        raise PayloadError(
            f"Density artifact must be a list, got {type(payload).__name__}"
        )

    points: List[RawDensityPoint] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, (list, tuple)) or len(entry) != 3:
            raise PayloadError(f"Density point {index} is not an [x, y, density] triple")
        try:
            x, y, density = (float(v) for v in entry)
        except (TypeError, ValueError):
            raise PayloadError(f"Density point {index} has non-numeric values") from None
        if not all(math.isfinite(v) for v in (x, y, density)):
            raise PayloadError(f"Density point {index} has non-finite values")
        points.append(RawDensityPoint(x=x, y=y, density=density))

    return points
