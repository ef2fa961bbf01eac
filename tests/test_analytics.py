"""
Analytics Tests
===============

Series stats and grid summaries.
"""

from crowd_dashboard.models.grid import Bounds, CameraRegion, CombinedGrid
from crowd_dashboard.models.input import TimeSeriesPoint
from crowd_dashboard.observability import compute_series_stats, density_range, summarize_grid


def point(minute: int, value: float) -> TimeSeriesPoint:
    return TimeSeriesPoint(timestamp=f"2024-01-01T10:{minute:02d}:00Z", value=value)


class TestSeriesStats:

    def test_empty_series(self):
        stats = compute_series_stats([])
        assert (stats.current, stats.maximum, stats.average, stats.minimum) == (0, 0, 0, 0)

    def test_stats(self):
        stats = compute_series_stats([point(0, 12), point(1, 40), point(2, 7), point(3, 25)])
        assert stats.current == 25
        assert stats.maximum == 40
        assert stats.minimum == 7
        assert stats.average == 21

    def test_average_rounds_half_up(self):
        assert compute_series_stats([point(0, 1), point(1, 2)]).average == 2
        assert compute_series_stats([point(0, 2), point(1, 3)]).average == 3
        assert compute_series_stats([point(0, 1), point(1, 1), point(2, 2)]).average == 1


class TestGridSummary:

    def test_range_ignores_zero_cells(self):
        grid = CombinedGrid(
            cells=[[0.0, 1.5], [4.0, 0.0]],
            bounds=Bounds(min_x=0, max_x=2, min_y=0, max_y=2),
        )
        assert density_range(grid) == (1.5, 4.0)

    def test_range_defaults_when_all_zero(self):
        grid = CombinedGrid(cells=[[0.0, 0.0]], bounds=Bounds(min_x=0, max_x=2, min_y=0, max_y=1))
        assert density_range(grid) == (0.0, 1.0)

    def test_summary(self):
        bounds = Bounds(min_x=-5, max_x=15, min_y=0, max_y=10)
        grid = CombinedGrid(
            cells=[[0.0] * 20 for _ in range(10)],
            bounds=bounds,
            regions=[
                CameraRegion(camera_id="a", position_id="p", display_name="A", bounds=bounds),
            ],
        )
        grid.cells[3][4] = 2.5

        summary = summarize_grid(grid)

        assert summary.width_m == 20
        assert summary.height_m == 10
        assert summary.density_min == 2.5
        assert summary.density_max == 2.5
        assert summary.camera_count == 1
