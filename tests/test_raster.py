"""
Grid Rasterizer Tests
=====================

Grid sizing, row flipping, max-overlap merging and bounds union.
"""

import pytest

from crowd_dashboard.geometry import combine, grid_shape, transform
from crowd_dashboard.models.density import CameraField, CropRectangle, RawDensityPoint
from crowd_dashboard.models.grid import Bounds, CameraRegion


P = RawDensityPoint


def camera_field(camera_id, points, crop=None):
    field = transform(points, crop)
    region = CameraRegion(
        camera_id=camera_id,
        position_id="pos",
        display_name=camera_id.upper(),
        bounds=field.bounds,
    )
    return CameraField.from_transformed(field, region)


def nonzero_cells(grid):
    return {
        (row, col): value
        for row, cells in enumerate(grid.cells)
        for col, value in enumerate(cells)
        if value != 0
    }


class TestGridShape:
    """Cell counts from bounds."""

    def test_ceil(self):
        assert grid_shape(Bounds(min_x=0, max_x=20, min_y=0, max_y=10)) == (10, 20)
        assert grid_shape(Bounds(min_x=0, max_x=2.5, min_y=0, max_y=0.1)) == (1, 3)

    def test_cell_size(self):
        assert grid_shape(Bounds(min_x=0, max_x=20, min_y=0, max_y=10), cell_size=2) == (5, 10)

    def test_invalid_cell_size(self):
        with pytest.raises(ValueError):
            grid_shape(Bounds.unit(), cell_size=0)


class TestCombine:
    """Merging camera fields."""

    def test_no_fields(self):
        assert combine([]) is None

    def test_fields_without_samples(self):
        crop = CropRectangle(left=0, top=10, width=10, height=10)
        assert combine([camera_field("a", [], crop), camera_field("b", [P(50, 50, 1.0)], crop)]) is None

    def test_two_camera_scene(self):
        a = camera_field("a", [P(5, 5, 4.0)], CropRectangle(left=0, top=10, width=10, height=10))
        b = camera_field("b", [P(15, 5, 2.0)], CropRectangle(left=10, top=10, width=10, height=10))

        grid = combine([a, b])

        assert grid.bounds == Bounds(min_x=0, max_x=20, min_y=0, max_y=10)
        assert grid.width == 20
        assert grid.height == 10
        assert nonzero_cells(grid) == {(4, 5): 4.0, (4, 15): 2.0}
        assert [r.camera_id for r in grid.regions] == ["a", "b"]

    def test_row_zero_is_top(self):
        crop = CropRectangle(left=0, top=10, width=10, height=10)
        grid = combine([camera_field("a", [P(0.5, 9.5, 1.0), P(0.5, 0.5, 2.0)], crop)])
        assert grid.cells[0][0] == 1.0
        assert grid.cells[9][0] == 2.0

    def test_overlap_keeps_max_not_sum(self):
        crop = CropRectangle(left=0, top=10, width=10, height=10)
        a = camera_field("a", [P(3.2, 3.2, 3.0)], crop)
        b = camera_field("b", [P(3.7, 3.9, 5.0)], crop)

        grid = combine([a, b])
        assert nonzero_cells(grid) == {(6, 3): 5.0}

        grid_reversed = combine([b, a])
        assert nonzero_cells(grid_reversed) == {(6, 3): 5.0}

    def test_same_camera_points_in_one_cell_keep_max(self):
        crop = CropRectangle(left=0, top=2, width=2, height=2)
        grid = combine([camera_field("a", [P(0.1, 0.1, 1.0), P(0.9, 0.9, 2.5), P(0.5, 0.5, 2.0)], crop)])
        assert grid.cells[1][0] == 2.5

    def test_points_on_far_edge_are_clipped(self):
        crop = CropRectangle(left=0, top=10, width=10, height=10)
        grid = combine([camera_field("a", [P(10, 10, 3.0), P(9.9, 9.9, 1.0)], crop)])
        assert nonzero_cells(grid) == {(0, 9): 1.0}

    def test_regions_only_for_fields_with_data(self):
        crop = CropRectangle(left=0, top=10, width=10, height=10)
        with_data = camera_field("a", [P(1, 1, 1.0)], crop)
        empty = camera_field("b", [], CropRectangle(left=100, top=100, width=5, height=5))
        grid = combine([with_data, empty])
        assert [r.camera_id for r in grid.regions] == ["a"]
        assert grid.bounds == Bounds(min_x=0, max_x=10, min_y=0, max_y=10)

    def test_bounds_contain_every_field(self):
        fields = [
            camera_field("a", [P(-3, 0, 1.0)], CropRectangle(left=-5, top=3, width=4, height=8)),
            camera_field("b", [P(12, 12, 1.0), P(30, -2, 2.0)]),
            camera_field("c", [P(0, 0, 1.0)], CropRectangle(left=0, top=40, width=1, height=45)),
        ]
        grid = combine(fields)
        for field in fields:
            assert field.has_data
            assert grid.bounds.contains(field.bounds)

    def test_cells_are_clamped(self):
        crop = CropRectangle(left=0, top=1, width=1, height=1)
        grid = combine([camera_field("a", [P(0.5, 0.5, 6.0)], crop)], ceiling=4.0)
        assert grid.cells[0][0] == 4.0

    def test_union_of_no_bounds_is_error(self):
        with pytest.raises(ValueError):
            Bounds.union([])
