"""
Observability Module
====================

Descriptive analytics for the dashboard.
"""

from crowd_dashboard.observability.analytics import (
    compute_series_stats,
    density_range,
    summarize_grid,
)


__all__ = [
    "compute_series_stats",
    "density_range",
    "summarize_grid",
]
