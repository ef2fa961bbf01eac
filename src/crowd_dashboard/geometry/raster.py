"""
Grid Rasterizer
===============

Merges per-camera world-space fields into one uniform density grid.

Grid Layout:
    - Global bounds are the union of the bounds of every field with data
    - width  = ceil((max_x - min_x) / cell_size)
    - height = ceil((max_y - min_y) / cell_size)
    - col = floor((x - min_x) / cell_size)
    - row = height - floor((y - min_y) / cell_size) - 1   (row 0 is max_y)
    - Samples mapping outside the grid are clipped silently

Overlap Policy:
    Overlapping cameras observe the same physical crowd. A cell written by
    several cameras keeps the MAXIMUM density, never the sum or the mean.

Binning is O(N) over all samples using numpy's unbuffered `maximum.at`.
"""

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from crowd_dashboard.models.density import DENSITY_CEILING, CameraField
from crowd_dashboard.models.grid import Bounds, CombinedGrid


logger = logging.getLogger(__name__)


DEFAULT_CELL_SIZE = 1.0


def grid_shape(bounds: Bounds, cell_size: float = DEFAULT_CELL_SIZE) -> Tuple[int, int]:
    """
    Grid dimensions for the given bounds.

    Returns:
        (height, width) in cells
    """
    if cell_size <= 0:
        raise ValueError("cell_size must be positive")
    width = int(math.ceil(bounds.width / cell_size))
    height = int(math.ceil(bounds.height / cell_size))
    return height, width


def rasterize_field(
    grid: np.ndarray,
    field: CameraField,
    origin: Bounds,
    cell_size: float = DEFAULT_CELL_SIZE,
    ceiling: float = DENSITY_CEILING,
) -> int:
    """
    Write one field into `grid` in place, keeping the max per cell.

    Args:
        grid: (height, width) array to update
        field: Field to write
        origin: Global bounds the grid was built from
        cell_size: World units per cell
        ceiling: Saturation density

    Returns:
        Number of samples that landed inside the grid
    """
    height, width = grid.shape
    count = len(field.samples)
    if count == 0 or height == 0 or width == 0:
        return 0

    xs = np.fromiter((s.x for s in field.samples), dtype=float, count=count)
    ys = np.fromiter((s.y for s in field.samples), dtype=float, count=count)
    values = np.fromiter((s.density for s in field.samples), dtype=float, count=count)

    cols = np.floor((xs - origin.min_x) / cell_size).astype(int)
    rows_from_bottom = np.floor((ys - origin.min_y) / cell_size).astype(int)

    inside = (
        (cols >= 0) & (cols < width)
        & (rows_from_bottom >= 0) & (rows_from_bottom < height)
    )
    rows = height - rows_from_bottom[inside] - 1

    np.maximum.at(grid, (rows, cols[inside]), np.clip(values[inside], 0.0, ceiling))

    return int(inside.sum())


def combine(
    fields: Sequence[CameraField],
    cell_size: float = DEFAULT_CELL_SIZE,
    ceiling: float = DENSITY_CEILING,
) -> Optional[CombinedGrid]:
    """
    Merge camera fields into one grid.

    Args:
        fields: Transformed, labelled camera fields
        cell_size: World units per cell (1 meter by default)
        ceiling: Saturation density

    Returns:
        CombinedGrid, or None when no field has a single sample
    """
    with_data = [field for field in fields if field.has_data]
    if not with_data:
        logger.info("No camera field has data, nothing to combine")
        return None

    bounds = Bounds.union(field.bounds for field in with_data)
    height, width = grid_shape(bounds, cell_size)
    grid = np.zeros((height, width), dtype=float)

    for field in with_data:
        placed = rasterize_field(grid, field, bounds, cell_size, ceiling)
        if placed < len(field.samples):
            logger.debug(
                f"Clipped {len(field.samples) - placed} samples of "
                f"{field.region.stream_key} outside the grid"
            )

    logger.info(
        f"Combined {len(with_data)} cameras into {width}x{height} grid "
        f"x=[{bounds.min_x}, {bounds.max_x}], y=[{bounds.min_y}, {bounds.max_y}]"
    )

    return CombinedGrid(
        cells=grid.tolist(),
        bounds=bounds,
        regions=[field.region for field in with_data],
    )
