"""
ASCII plotting for effort trends and simple counts.

Creates terminal-friendly charts from TrendCurve geometry and from
per-weekday or per-exercise counts.
"""

from .config import WEEKDAY_NAMES
from .trend import TrendCurve

# Samples per curve segment when rasterizing
_SAMPLES_PER_SEGMENT = 24


def render_trend(
    curve: TrendCurve,
    labels: list[str] | None = None,
    width: int = 60,
    height: int = 14,
    title: str = "Effort Trend",
) -> str:
    """
    Rasterize a trend curve into an ASCII chart.

    The curve's own drawing box is mapped onto the character grid, so the
    plotted line follows the same spline as the SVG path.

    Args:
        curve: Curve built by ``build_trend``
        labels: Optional x labels, one per point (first and last are shown)
        width: Plot width in characters
        height: Plot height in lines
        title: Chart title

    Returns:
        ASCII art string
    """
    if not curve.values:
        return "No rated workouts yet. Complete a workout with an effort rating to see trends."

    top, right, bottom, left = curve.padding
    chart_w = curve.width - left - right
    chart_h = curve.height - top - bottom
    lo, hi = curve.value_range

    plot_width = width - 6  # Leave room for y-axis labels
    plot_height = max(height - 4, 2)  # Title, separators, x labels

    grid = [[" " for _ in range(plot_width)] for _ in range(plot_height)]

    def _cell(x: float, y: float) -> tuple[int, int]:
        col = round((x - left) / chart_w * (plot_width - 1))
        row = round((y - top) / chart_h * (plot_height - 1))
        return min(max(col, 0), plot_width - 1), min(max(row, 0), plot_height - 1)

    # Curve samples
    for seg in curve.segments:
        for step in range(_SAMPLES_PER_SEGMENT + 1):
            col, row = _cell(*seg.point_at(step / _SAMPLES_PER_SEGMENT))
            grid[row][col] = "·"

    # Data points overwrite the line
    cells = [_cell(p.x, p.y) for p in curve.points]
    for col, row in cells:
        grid[row][col] = "●"

    lines = [title, "─" * width]

    for i, row in enumerate(grid):
        y_val = hi - (i / (plot_height - 1)) * (hi - lo)
        lines.append(f"{y_val:4.0f} ┤" + "".join(row))

    lines.append("─" * width)

    if labels:
        label_line = [" "] * plot_width
        first, last = labels[0], labels[-1]
        for i, c in enumerate(first):
            if i < plot_width:
                label_line[i] = c
        if len(labels) > 1:
            start = max(plot_width - len(last), len(first) + 1)
            for i, c in enumerate(last):
                if start + i < plot_width:
                    label_line[start + i] = c
        lines.append("      " + "".join(label_line))

    summary = curve.summary
    if summary.average is not None:
        parts = [f"avg {summary.average:.1f}", f"latest {summary.latest:g}"]
        if len(curve.values) > 1:
            parts.append(f"change {summary.delta:+g}")
        lines.append("   ".join(parts))

    return "\n".join(lines)


def create_simple_bar_chart(
    labels: list[str],
    values: list[float],
    width: int = 40,
    title: str = "",
) -> str:
    """
    Create a simple horizontal bar chart.

    Args:
        labels: Labels for each bar
        values: Values for each bar
        width: Maximum bar width
        title: Chart title

    Returns:
        ASCII bar chart string
    """
    if not values:
        return "No data to display."

    max_val = max(values)
    max_label_len = max(len(l) for l in labels) if labels else 0

    lines = []

    if title:
        lines.append(title)
        lines.append("─" * (max_label_len + width + 5))

    for label, value in zip(labels, values):
        bar_len = int((value / max_val) * width) if max_val > 0 else 0
        bar = "█" * bar_len
        lines.append(f"{label:>{max_label_len}} │{bar} {value:g}")

    return "\n".join(lines)


def create_weekday_chart(by_weekday: dict[int, int], width: int = 30) -> str:
    """Bar chart of workouts per weekday (Sunday = 0), shown Monday first."""
    order = [1, 2, 3, 4, 5, 6, 0]
    return create_simple_bar_chart(
        [WEEKDAY_NAMES[i] for i in order],
        [float(by_weekday.get(i, 0)) for i in order],
        width=width,
        title="Workouts by Weekday",
    )
