"""
Smooth trend curve through a short numeric series.

Values are scaled into a fixed drawing box and joined by a Catmull-Rom
spline expressed as cubic Bézier segments, one per adjacent pair of points:

    p0 = pts[max(0, i - 1)],  p3 = pts[min(n - 1, i + 2)]
    cp1 = p1 + (p2 - p0) * tension
    cp2 = p2 - (p3 - p1) * tension

Two points give a single straight segment; fewer give no geometry. The
output depends only on the inputs.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Sequence

from .config import (
    EFFORT_MAX,
    EFFORT_MIN,
    TREND_HEIGHT,
    TREND_PADDING,
    TREND_TENSION,
    TREND_WIDTH,
)


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class LineSegment:
    start: Point
    end: Point

    def point_at(self, t: float) -> Point:
        return Point(
            self.start.x + (self.end.x - self.start.x) * t,
            self.start.y + (self.end.y - self.start.y) * t,
        )

    def svg(self) -> str:
        return f"L {_fmt(self.end.x)} {_fmt(self.end.y)}"


@dataclass(frozen=True)
class CubicSegment:
    start: Point
    cp1: Point
    cp2: Point
    end: Point

    def point_at(self, t: float) -> Point:
        """Evaluate the Bézier at parameter t in [0, 1]."""
        u = 1.0 - t
        a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
        return Point(
            a * self.start.x + b * self.cp1.x + c * self.cp2.x + d * self.end.x,
            a * self.start.y + b * self.cp1.y + c * self.cp2.y + d * self.end.y,
        )

    def svg(self) -> str:
        return (
            f"C {_fmt(self.cp1.x)} {_fmt(self.cp1.y)}, "
            f"{_fmt(self.cp2.x)} {_fmt(self.cp2.y)}, "
            f"{_fmt(self.end.x)} {_fmt(self.end.y)}"
        )


Segment = LineSegment | CubicSegment


@dataclass(frozen=True)
class TrendSummary:
    """Average, latest value, and change from first to last (None when empty)."""

    average: float | None = None
    latest: float | None = None
    delta: float | None = None


@dataclass(frozen=True)
class TrendCurve:
    width: float
    height: float
    padding: tuple[float, float, float, float]  # top, right, bottom, left
    value_range: tuple[float, float]
    values: tuple[float, ...] = ()
    points: tuple[Point, ...] = ()
    segments: tuple[Segment, ...] = ()
    summary: TrendSummary = field(default_factory=TrendSummary)

    @property
    def baseline(self) -> float:
        """y coordinate of the bottom of the plot area."""
        top, _, bottom, _ = self.padding
        return self.height - bottom

    def y_for(self, value: float) -> float:
        return _scale_y(value, self.value_range, self.height, self.padding)

    def svg_path(self) -> str:
        """SVG path data for the curve; empty without geometry."""
        if not self.segments:
            return ""
        first = self.points[0]
        parts = [f"M {_fmt(first.x)} {_fmt(first.y)}"]
        parts.extend(seg.svg() for seg in self.segments)
        return " ".join(parts)

    def area_path(self) -> str:
        """The curve closed down to the baseline, for a filled area."""
        line = self.svg_path()
        if not line:
            return ""
        base = _fmt(self.baseline)
        return f"{line} L {_fmt(self.points[-1].x)} {base} L {_fmt(self.points[0].x)} {base} Z"


def _fmt(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


def _scale_y(
    value: float,
    value_range: tuple[float, float],
    height: float,
    padding: tuple[float, float, float, float],
) -> float:
    top, _, bottom, _ = padding
    lo, hi = value_range
    chart_h = height - top - bottom
    return top + chart_h - (value - lo) / (hi - lo) * chart_h


def summarize(values: Sequence[float]) -> TrendSummary:
    if not values:
        return TrendSummary()
    return TrendSummary(
        average=sum(values) / len(values),
        latest=values[-1],
        delta=values[-1] - values[0],
    )


def catmull_rom_segments(points: Sequence[Point], tension: float = TREND_TENSION) -> list[Segment]:
    """Join points with cubic segments; a straight line for exactly two points."""
    n = len(points)
    if n < 2:
        return []
    if n == 2:
        return [LineSegment(points[0], points[1])]

    segments: list[Segment] = []
    for i in range(n - 1):
        p0 = points[max(0, i - 1)]
        p1 = points[i]
        p2 = points[i + 1]
        p3 = points[min(n - 1, i + 2)]
        cp1 = Point(p1.x + (p2.x - p0.x) * tension, p1.y + (p2.y - p0.y) * tension)
        cp2 = Point(p2.x - (p3.x - p1.x) * tension, p2.y - (p3.y - p1.y) * tension)
        segments.append(CubicSegment(p1, cp1, cp2, p2))
    return segments


def build_trend(
    values: Sequence[float],
    width: float = TREND_WIDTH,
    height: float = TREND_HEIGHT,
    value_range: tuple[float, float] = (EFFORT_MIN, EFFORT_MAX),
    padding: tuple[float, float, float, float] = TREND_PADDING,
    tension: float = TREND_TENSION,
) -> TrendCurve:
    """
    Build a smooth trend curve for a chronological series.

    Args:
        values: Series values, oldest first
        width: Drawing box width
        height: Drawing box height
        value_range: (min, max) mapped to the bottom and top of the plot area
        padding: (top, right, bottom, left) margins inside the box
        tension: Catmull-Rom tension

    Returns:
        TrendCurve with scaled points, segments and summary

    Raises:
        ValueError: If the value range is empty or the padding leaves no plot area
    """
    lo, hi = value_range
    if hi <= lo:
        raise ValueError(f"value_range must have min < max, got {value_range}")
    top, right, bottom, left = padding
    chart_w = width - left - right
    if chart_w <= 0 or height - top - bottom <= 0:
        raise ValueError("padding leaves no room for the plot area")

    vals = tuple(float(v) for v in values)
    n = len(vals)
    points = tuple(
        Point(left + i / max(n - 1, 1) * chart_w, _scale_y(v, value_range, height, padding))
        for i, v in enumerate(vals)
    )
    return TrendCurve(
        width=width,
        height=height,
        padding=padding,
        value_range=value_range,
        values=vals,
        points=points,
        segments=tuple(catmull_rom_segments(points, tension)),
        summary=summarize(vals),
    )


def effort_color(effort: float) -> str:
    """Rich color name for an effort rating."""
    if effort <= 3:
        return "bright_green"
    if effort <= 5:
        return "green"
    if effort <= 7:
        return "yellow"
    return "red"
