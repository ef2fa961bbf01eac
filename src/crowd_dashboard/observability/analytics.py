"""
Analytics Module
================

Derived figures shown next to the series chart and the density grid.

Computed from data the pipeline already holds:
    - Series stats (current, maximum, average, minimum)
    - Grid summary (area size, non-zero density range, camera count)

Analytics are descriptive only. They never change what is fetched or drawn.
"""

import logging
from typing import Sequence, Tuple

import numpy as np

from crowd_dashboard.models.grid import CombinedGrid
from crowd_dashboard.models.input import TimeSeriesPoint
from crowd_dashboard.models.output import GridSummary, SeriesStats


logger = logging.getLogger(__name__)


DEFAULT_DENSITY_RANGE: Tuple[float, float] = (0.0, 1.0)


def compute_series_stats(points: Sequence[TimeSeriesPoint]) -> SeriesStats:
    """
    Summarize the aggregated crowd count series.

    Args:
        points: Series points, oldest first

    Returns:
        Stats with the last value as `current` and the average rounded
        half up.
        All zeros for an empty series.
    """
    if not points:
        return SeriesStats()

    values = np.asarray([p.value for p in points], dtype=np.float64)
    return SeriesStats(
        current=float(values[-1]),
        maximum=float(values.max()),
        average=float(np.floor(values.mean() + 0.5)),
        minimum=float(values.min()),
    )


def density_range(grid: CombinedGrid) -> Tuple[float, float]:
    """
    Range of non-zero cell densities.

    Empty cells are excluded so that the color scale is driven by occupied
    cells. Falls back to (0, 1) when every cell is zero.
    """
    cells = np.asarray(grid.cells, dtype=np.float64)
    occupied = cells[cells > 0]
    if occupied.size == 0:
        return DEFAULT_DENSITY_RANGE
    return float(occupied.min()), float(occupied.max())


def summarize_grid(grid: CombinedGrid) -> GridSummary:
    """
    Describe a combined grid.

    Args:
        grid: Merged density grid

    Returns:
        GridSummary with world size, density range and contributing cameras
    """
    low, high = density_range(grid)
    summary = GridSummary(
        width_m=round(grid.bounds.width, 2),
        height_m=round(grid.bounds.height, 2),
        density_min=round(low, 4),
        density_max=round(high, 4),
        camera_count=len(grid.regions),
    )
    logger.debug(
        f"Grid {grid.width}x{grid.height}: "
        f"density {summary.density_min:.2f}-{summary.density_max:.2f}, "
        f"{summary.camera_count} cameras"
    )
    return summary
