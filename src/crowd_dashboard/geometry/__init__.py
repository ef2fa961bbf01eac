"""
Geometry Module
===============

World-space projection and rasterization of camera density fields.
"""

from crowd_dashboard.geometry.field import (
    crop_to_bounds,
    parse_raw_points,
    transform,
)
from crowd_dashboard.geometry.raster import combine, grid_shape


__all__ = [
    "crop_to_bounds",
    "parse_raw_points",
    "transform",
    "combine",
    "grid_shape",
]
