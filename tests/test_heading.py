import pytest
from fieldpath.geometry import Point2D
from fieldpath.heading import heading_along, line_end_heading, line_start_heading, start_point_heading
from fieldpath.models import BasePoint, ConstantPoint, Line, LinearPoint, TangentialPoint


def _line(end, controls=()):
    return Line(end_point=end, control_points=list(controls))


# --------------------- Tests for line_start_heading / line_end_heading ---------------------

def test_constant_heading_both_ends():
    line = _line(ConstantPoint(x=10, y=10, degrees=45))
    assert line_start_heading(line, Point2D(0, 0)) == 45
    assert line_end_heading(line, Point2D(0, 0)) == 45


def test_linear_heading_ends():
    line = _line(LinearPoint(x=10, y=10, start_deg=90, end_deg=180))
    assert line_start_heading(line, Point2D(0, 0)) == 90
    assert line_end_heading(line, Point2D(0, 0)) == 180


def test_tangential_heading_follows_chord():
    line = _line(TangentialPoint(x=10, y=10))
    assert line_start_heading(line, Point2D(0, 0)) == pytest.approx(45.0)
    assert line_end_heading(line, Point2D(0, 0)) == pytest.approx(45.0)


def test_tangential_heading_uses_control_points():
    """Start aims at the first control point, end arrives from the last one."""
    line = _line(TangentialPoint(x=10, y=10), [BasePoint(x=0, y=10), BasePoint(x=10, y=0)])
    assert line_start_heading(line, Point2D(0, 0)) == pytest.approx(90.0)
    assert line_end_heading(line, Point2D(0, 0)) == pytest.approx(90.0)


def test_tangential_reverse_is_wrapped():
    line = _line(TangentialPoint(x=10, y=10, reverse=True))
    assert line_start_heading(line, Point2D(0, 0)) == pytest.approx(-135.0)


def test_missing_line_gives_zero():
    assert line_start_heading(None, Point2D(0, 0)) == 0.0
    assert line_end_heading(None, Point2D(0, 0)) == 0.0


def test_unknown_variant_raises_type_error(mocker):
    line = mocker.Mock(end_point=BasePoint(x=0, y=0), control_points=[])
    with pytest.raises(TypeError):
        line_start_heading(line, Point2D(0, 0))


# --------------------- Tests for start_point_heading ---------------------

def test_start_point_heading_variants():
    lines = [_line(ConstantPoint(x=10, y=0, degrees=0))]
    assert start_point_heading(LinearPoint(x=0, y=0, start_deg=30, end_deg=60), lines) == 30
    assert start_point_heading(ConstantPoint(x=0, y=0, degrees=12), lines) == 12
    assert start_point_heading(TangentialPoint(x=0, y=0), lines) == pytest.approx(0.0)
    assert start_point_heading(TangentialPoint(x=0, y=0, reverse=True), lines) == pytest.approx(180.0)


def test_tangential_start_without_lines():
    assert start_point_heading(TangentialPoint(x=0, y=0), []) == 0.0


# --------------------- Tests for heading_along ---------------------

def test_heading_along_linear_interpolates():
    line = _line(LinearPoint(x=10, y=0, start_deg=0, end_deg=90))
    points = [Point2D(0, 0), Point2D(10, 0)]
    assert heading_along(line, points, 0.5) == pytest.approx(45.0)


def test_heading_along_tangential_straight_line():
    line = _line(TangentialPoint(x=0, y=10))
    points = [Point2D(0, 0), Point2D(0, 10)]
    assert heading_along(line, points, 0.5) == pytest.approx(90.0)


def test_heading_along_tangential_reverse_looks_back():
    line = _line(TangentialPoint(x=10, y=0, reverse=True))
    points = [Point2D(0, 0), Point2D(10, 0)]
    assert heading_along(line, points, 0.5) == pytest.approx(180.0)


def test_heading_along_zero_length_segment():
    line = _line(TangentialPoint(x=5, y=5))
    points = [Point2D(5, 5), Point2D(5, 5)]
    assert heading_along(line, points, 0.3) == 0.0
