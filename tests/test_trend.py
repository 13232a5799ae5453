"""
Tests for the effort trend curve and its ASCII rendering.

Default box: 300 x 90 with padding (top 6, right 10, bottom 18, left 22),
so the plot area spans x 22..290 and y 6..72 for values 1..10.
"""

import pytest

from liftlog.core.ascii_plot import create_simple_bar_chart, create_weekday_chart, render_trend
from liftlog.core.trend import (
    CubicSegment,
    LineSegment,
    Point,
    build_trend,
    catmull_rom_segments,
    effort_color,
    summarize,
)


class TestBuildTrend:
    def test_no_values(self):
        curve = build_trend([])
        assert curve.points == ()
        assert curve.segments == ()
        assert curve.summary.average is None
        assert curve.svg_path() == ""
        assert curve.area_path() == ""

    def test_single_value_has_point_but_no_segments(self):
        curve = build_trend([7])
        assert curve.points[0] == pytest.approx(Point(22.0, 28.0))
        assert len(curve.points) == 1
        assert curve.segments == ()
        assert curve.summary.average == 7
        assert curve.summary.latest == 7
        assert curve.summary.delta == 0
        assert curve.svg_path() == ""

    def test_two_values_give_straight_line(self):
        curve = build_trend([1, 10])
        assert curve.points == (Point(22.0, 72.0), Point(290.0, 6.0))
        assert curve.segments == (LineSegment(Point(22.0, 72.0), Point(290.0, 6.0)),)
        assert curve.svg_path() == "M 22 72 L 290 6"

    def test_many_values_give_cubic_segments(self):
        curve = build_trend([1, 10, 1, 10])
        assert len(curve.segments) == 3
        assert all(isinstance(seg, CubicSegment) for seg in curve.segments)
        for left, right in zip(curve.segments, curve.segments[1:]):
            assert left.end == right.start

    def test_control_points_clamp_at_ends(self):
        curve = build_trend([1, 10, 1, 10])
        first = curve.segments[0]
        # p0 is clamped to p1 for the first segment
        assert first.cp1.x == pytest.approx(22 + (268 / 3) * 0.3)
        assert first.cp1.y == pytest.approx(72 - 66 * 0.3)
        assert first.cp2.x == pytest.approx(22 + 268 / 3 - (2 * 268 / 3) * 0.3)
        assert first.cp2.y == pytest.approx(6.0)

    def test_deterministic(self):
        values = [3, 5, 4, 8, 7]
        assert build_trend(values) == build_trend(values)
        assert build_trend(values).svg_path() == build_trend(values).svg_path()

    def test_area_path_closes_at_baseline(self):
        curve = build_trend([2, 6, 9])
        area = curve.area_path()
        assert area.startswith(curve.svg_path())
        assert area.endswith("L 290 72 L 22 72 Z")
        assert curve.baseline == 72

    def test_svg_path_uses_curves(self):
        path = build_trend([2, 6, 9]).svg_path()
        assert path.startswith("M 22 ")
        assert path.count("C ") == 2

    def test_invalid_range(self):
        with pytest.raises(ValueError):
            build_trend([1, 2], value_range=(5, 5))

    def test_padding_too_large(self):
        with pytest.raises(ValueError):
            build_trend([1, 2], width=20)

    def test_custom_range(self):
        curve = build_trend([0, 100], value_range=(0, 100))
        assert curve.points[0].y == pytest.approx(72)
        assert curve.points[1].y == pytest.approx(6)
        assert curve.y_for(50) == pytest.approx(39)


class TestSegments:
    def test_fewer_than_two_points(self):
        assert catmull_rom_segments([]) == []
        assert catmull_rom_segments([Point(0, 0)]) == []

    def test_point_at_endpoints(self):
        seg = catmull_rom_segments([Point(0, 0), Point(10, 5), Point(20, 0)])[0]
        assert seg.point_at(0) == pytest.approx(seg.start)
        assert seg.point_at(1) == pytest.approx(seg.end)

    def test_line_midpoint(self):
        seg = LineSegment(Point(0, 0), Point(10, 20))
        assert seg.point_at(0.5) == Point(5, 10)


class TestSummary:
    def test_summarize(self):
        summary = summarize([4, 6, 8])
        assert summary.average == 6
        assert summary.latest == 8
        assert summary.delta == 4

    def test_negative_delta(self):
        assert summarize([9, 5]).delta == -4


class TestEffortColor:
    @pytest.mark.parametrize(
        "effort,color",
        [(1, "bright_green"), (4, "green"), (7, "yellow"), (10, "red")],
    )
    def test_bands(self, effort, color):
        assert effort_color(effort) == color


class TestAsciiPlot:
    def test_empty_trend_message(self):
        assert render_trend(build_trend([])).startswith("No rated workouts yet")

    def test_points_drawn(self):
        text = render_trend(build_trend([3, 7, 5]), labels=["Jan 1", "Jan 2", "Jan 3"])
        assert text.splitlines()[0] == "Effort Trend"
        assert text.count("●") == 3
        assert "Jan 1" in text
        assert "Jan 3" in text
        assert "avg 5.0" in text
        assert "change +2" in text

    def test_single_point(self):
        text = render_trend(build_trend([6]))
        assert text.count("●") == 1
        assert "latest 6" in text
        assert "change" not in text

    def test_bar_chart(self):
        chart = create_simple_bar_chart(["a", "bb"], [2.0, 4.0], width=10)
        lines = chart.splitlines()
        assert lines[0] == " a │█████ 2"
        assert lines[1] == "bb │██████████ 4"

    def test_bar_chart_empty(self):
        assert create_simple_bar_chart([], []) == "No data to display."

    def test_weekday_chart_starts_monday(self):
        chart = create_weekday_chart({0: 2, 1: 1})
        lines = chart.splitlines()
        assert lines[0] == "Workouts by Weekday"
        assert lines[2].startswith("Mon")
        assert lines[-1].startswith("Sun")
