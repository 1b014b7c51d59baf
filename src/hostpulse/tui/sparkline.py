"""Sparkline widget for trend history.

Renders the values of a RingBuffer as vertical bars using Unicode block
characters, optionally across several rows for finer resolution.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import Static

if TYPE_CHECKING:
    from textual.app import RenderResult


def _parse_hex_color(hex_color: str) -> tuple[int, int, int]:
    """Parse "#RRGGBB" or "#RGB" to an RGB tuple."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = "".join(c * 2 for c in hex_color)
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


class GradientColor:
    """A color gradient that interpolates between color stops.

    Example:
        ```python
        gradient = GradientColor([(0, "#50fa7b"), (70, "#f1fa8c"), (100, "#ff5555")])
        color = gradient(35)  # green-yellow
        ```
    """

    def __init__(self, stops: list[tuple[float, str]]) -> None:
        if len(stops) < 2:
            raise ValueError("Gradient requires at least 2 color stops")
        self._parsed: list[tuple[float, tuple[int, int, int]]] = [
            (threshold, _parse_hex_color(color))
            for threshold, color in sorted(stops, key=lambda s: s[0])
        ]

    def __call__(self, value: float) -> str:
        """Get interpolated hex color for a value."""
        if value <= self._parsed[0][0]:
            return _rgb_to_hex(*self._parsed[0][1])
        if value >= self._parsed[-1][0]:
            return _rgb_to_hex(*self._parsed[-1][1])

        for (t1, c1), (t2, c2) in zip(self._parsed, self._parsed[1:]):
            if t1 <= value <= t2:
                t = (value - t1) / (t2 - t1) if t2 != t1 else 0.0
                rgb = tuple(int(a + (b - a) * t) for a, b in zip(c1, c2))
                return _rgb_to_hex(*rgb)

        return _rgb_to_hex(*self._parsed[-1][1])


class Sparkline(Static):
    """Bar chart of recent values.

    Values are scaled between min_value and max_value (auto when None):
    - height=1: 8 levels (▁ to █)
    - height=2: 16 levels (bottom row fills first)

    Only the newest values that fit the widget width are drawn.
    """

    CHARS = " ▁▂▃▄▅▆▇█"
    LEVELS_PER_ROW = 8

    DEFAULT_CSS = """
    Sparkline {
        width: 1fr;
        height: auto;
    }
    """

    data: reactive[list[float]] = reactive(list, always_update=True)

    def __init__(
        self,
        height: int = 1,
        max_value: float | None = 100,
        min_value: float = 0,
        color_func: Callable[[float], str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._height = max(1, min(4, height))
        self._max_value = max_value
        self._min_value = min_value
        self._color_func = color_func

    def set_values(self, values: Sequence[float]) -> None:
        """Replace the plotted values (oldest first)."""
        self.data = list(values)

    def render(self) -> RenderResult:
        """Render the sparkline as Rich Text."""
        width = self.size.width
        values = self.data[-width:] if width > 0 else self.data
        if not values:
            return Text(" " * max(1, width))

        effective_max = self._max_value
        if effective_max is None:
            effective_max = max(values)
        if effective_max <= self._min_value:
            effective_max = self._min_value + 1.0

        rows: list[Text] = [Text() for _ in range(self._height)]
        for value in values:
            level = self._scale_value(value, effective_max)
            color = self._color_func(value) if self._color_func else ""
            for row_idx, char in enumerate(self._render_column(level)):
                rows[row_idx].append(char, style=color or None)

        # Rows are built bottom-up
        return Text("\n").join(reversed(rows))

    def _scale_value(self, value: float, effective_max: float) -> int:
        """Scale a value to 0..(height * LEVELS_PER_ROW)."""
        total_levels = self._height * self.LEVELS_PER_ROW
        normalized = (value - self._min_value) / (effective_max - self._min_value)
        normalized = max(0.0, min(1.0, normalized))
        return int(normalized * total_levels)

    def _render_column(self, level: int) -> list[str]:
        """Render one column as characters from bottom row to top row."""
        result: list[str] = []
        for row in range(self._height):
            remaining = level - row * self.LEVELS_PER_ROW
            if remaining <= 0:
                result.append(self.CHARS[0])
            elif remaining >= self.LEVELS_PER_ROW:
                result.append(self.CHARS[self.LEVELS_PER_ROW])
            else:
                result.append(self.CHARS[remaining])
        return result

    def watch_data(self, new_data: list[float]) -> None:
        """React to data changes by refreshing the widget."""
        self.refresh()
