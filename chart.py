"""Coordinate mapping and pointer-drag editing for the rate charts."""

import logging
import math
from dataclasses import dataclass
from typing import Callable, MutableSequence, Sequence

from rates import quantize

PADDING_LEFT = 90.0
PADDING_RIGHT = 40.0
PADDING_TOP = 40.0
PADDING_BOTTOM = 60.0


@dataclass(frozen=True)
class ChartCoordinates:
    """Pure mapping between ``(index, value)`` points and chart pixels.

    The same instance must be used to draw the chart and to interpret pointer
    events on it, so that a click lands on the value drawn under the pointer.
    """

    width: float
    height: float
    n_points: int
    min_value: float = 0.0
    max_value: float = 100.0
    padding_left: float = PADDING_LEFT
    padding_right: float = PADDING_RIGHT
    padding_top: float = PADDING_TOP
    padding_bottom: float = PADDING_BOTTOM

    @property
    def chart_width(self) -> float:
        return max(1.0, self.width - self.padding_left - self.padding_right)

    @property
    def chart_height(self) -> float:
        return max(1.0, self.height - self.padding_top - self.padding_bottom)

    @property
    def value_span(self) -> float:
        span = self.max_value - self.min_value
        return span if span > 0 else 1.0

    def point_to_pixel(self, index: int, value: float) -> tuple[float, float]:
        x = self.padding_left + (index / max(1, self.n_points - 1)) * self.chart_width
        y = (
            self.padding_top
            + self.chart_height
            - ((value - self.min_value) / self.value_span) * self.chart_height
        )
        return x, y

    def raw_value_at(self, y: float) -> float:
        relative_y = y - self.padding_top
        return self.max_value - (relative_y / self.chart_height) * self.value_span

    def value_at(self, y: float) -> float:
        """Snapped, clamped value under vertical pixel ``y``."""

        return quantize(self.raw_value_at(y), self.min_value, self.max_value)

    def nearest_index(self, x: float) -> int:
        if self.n_points <= 1:
            return 0
        normalized = (x - self.padding_left) / self.chart_width
        index = math.floor(normalized * (self.n_points - 1) + 0.5)
        return max(0, min(self.n_points - 1, index))

    def pixel_to_point(self, x: float, y: float) -> tuple[int, float]:
        return self.nearest_index(x), self.value_at(y)

    def in_plot_area(self, x: float) -> bool:
        return self.padding_left <= x <= self.width - self.padding_right


@dataclass(frozen=True)
class HoverInfo:
    index: int
    value: float
    x: float
    y: float


class DragInteractionController:
    """Turns pointer events on a chart into single-index edits of a series.

    The year index is fixed when the drag starts; moving the pointer
    sideways during the drag only changes the value, never the year.
    """

    def __init__(
        self,
        coords: ChartCoordinates,
        get_series: Callable[[], Sequence[float]],
        write: Callable[[int, float], None],
        on_start_drag: Callable[[], None] | None = None,
        read_only: bool = False,
    ):
        self.coords = coords
        self._get_series = get_series
        self._write = write
        self._on_start_drag = on_start_drag
        self.read_only = read_only
        self.drag_index: int | None = None
        self.hover_index: int | None = None

    @classmethod
    def for_series(
        cls,
        coords: ChartCoordinates,
        series: MutableSequence[float],
        on_start_drag: Callable[[], None] | None = None,
        read_only: bool = False,
    ) -> "DragInteractionController":
        """Controller that edits ``series`` in place."""

        def write(index: int, value: float) -> None:
            while len(series) <= index:
                series.append(0.0)
            series[index] = value

        return cls(coords, lambda: series, write, on_start_drag, read_only)

    @property
    def is_dragging(self) -> bool:
        return self.drag_index is not None

    def drag_start(self, x: float, y: float) -> tuple[int, float] | None:
        if self.read_only:
            return None
        index = self.coords.nearest_index(x)
        value = self.coords.value_at(y)
        self.drag_index = index
        self.hover_index = None
        if self._on_start_drag is not None:
            self._on_start_drag()
        self._write(index, value)
        logging.debug(f"Drag started at year {index} with value {value}")
        return index, value

    def drag_move(self, x: float, y: float) -> tuple[int, float] | None:
        if self.read_only or self.drag_index is None:
            return None
        value = self.coords.value_at(y)
        self._write(self.drag_index, value)
        return self.drag_index, value

    def drag_end(self) -> None:
        self.drag_index = None

    def hover(self, x: float, y: float) -> HoverInfo | None:
        """Locate the point under the pointer for a tooltip; never edits."""

        if self.is_dragging:
            return None
        if not self.coords.in_plot_area(x):
            self.hover_index = None
            return None
        index = self.coords.nearest_index(x)
        series = self._get_series()
        value = float(series[index]) if index < len(series) else 0.0
        px, py = self.coords.point_to_pixel(index, value)
        self.hover_index = index
        return HoverInfo(index=index, value=value, x=px, y=py)

    def leave(self) -> None:
        self.hover_index = None
