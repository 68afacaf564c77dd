import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from chart import ChartCoordinates, DragInteractionController


@pytest.fixture
def coords():
    # 360 x 300 plot area inside the default paddings
    return ChartCoordinates(width=490, height=400, n_points=6, min_value=0, max_value=100)


def test_plot_area_corners(coords):
    assert coords.point_to_pixel(0, 100) == (90.0, 40.0)
    assert coords.point_to_pixel(5, 0) == (450.0, 340.0)


def test_pixel_round_trip(coords):
    for index in range(coords.n_points):
        for value in (0, 10, 50, 98, 100):
            x, y = coords.point_to_pixel(index, value)
            assert coords.pixel_to_point(x, y) == (index, float(value))


def test_pixel_to_point_clamps(coords):
    assert coords.nearest_index(-500) == 0
    assert coords.nearest_index(5000) == 5
    assert coords.value_at(-100) == 100.0
    assert coords.value_at(1000) == 0.0


def test_degenerate_geometry():
    tiny = ChartCoordinates(width=10, height=10, n_points=1, min_value=5, max_value=5)
    assert tiny.chart_width == 1.0
    assert tiny.chart_height == 1.0
    assert tiny.nearest_index(123) == 0


def test_drag_keeps_index_fixed(coords):
    series = [0.0] * 6
    drag = DragInteractionController.for_series(coords, series)

    assert drag.drag_start(*coords.point_to_pixel(1, 20)) == (1, 20.0)
    assert drag.is_dragging

    x, _ = coords.point_to_pixel(4, 0)
    _, y = coords.point_to_pixel(0, 60)
    assert drag.drag_move(x, y) == (1, 60.0)

    assert series == [0.0, 60.0, 0.0, 0.0, 0.0, 0.0]
    drag.drag_end()
    assert not drag.is_dragging
    assert drag.drag_move(x, y) is None


def test_start_drag_callback_runs_before_write(coords):
    series = [0.0] * 6
    seen = []
    drag = DragInteractionController.for_series(
        coords, series, on_start_drag=lambda: seen.append(list(series))
    )
    drag.drag_start(*coords.point_to_pixel(3, 40))
    assert seen == [[0.0] * 6]
    assert series[3] == 40.0


def test_read_only_ignores_drags(coords):
    series = [10.0] * 6
    calls = []
    drag = DragInteractionController.for_series(
        coords, series, on_start_drag=lambda: calls.append(1), read_only=True
    )
    assert drag.drag_start(*coords.point_to_pixel(2, 80)) is None
    assert drag.drag_move(*coords.point_to_pixel(2, 80)) is None
    assert series == [10.0] * 6
    assert calls == []


def test_hover_reports_point_without_editing(coords):
    series = [10.0, 20.0, 30.0, 40.0, 50.0, 60.0]
    drag = DragInteractionController.for_series(coords, series)

    info = drag.hover(*coords.point_to_pixel(2, 90))
    assert info.index == 2
    assert info.value == 30.0
    assert (info.x, info.y) == coords.point_to_pixel(2, 30.0)
    assert series == [10.0, 20.0, 30.0, 40.0, 50.0, 60.0]

    assert drag.hover(10, 100) is None
    assert drag.hover_index is None


def test_hover_is_suppressed_while_dragging(coords):
    series = [0.0] * 6
    drag = DragInteractionController.for_series(coords, series)
    drag.drag_start(*coords.point_to_pixel(0, 10))
    assert drag.hover(*coords.point_to_pixel(3, 10)) is None
    drag.drag_end()
    assert drag.hover(*coords.point_to_pixel(3, 10)).index == 3
    drag.leave()
    assert drag.hover_index is None
