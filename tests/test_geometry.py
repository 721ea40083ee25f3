import math

import numpy as np
import pytest
from fieldpath.geometry import (
    Point2D,
    angular_difference,
    as_point,
    build_rectangle,
    convex_hull,
    ease_in_out_quad,
    minimum_separating_width,
    point_to_segment_distance,
    polygon_center,
    quadratic_to_cubic,
    robot_corners,
    rotate_point,
    shortest_rotation,
    tangent_angle,
    transform_angle,
)
from fieldpath.models import BasePoint

# -----------------------------------------------------------------------------
# Tests for point helpers
# -----------------------------------------------------------------------------

def test_as_point_accepts_models_and_tuples():
    """Pydantic points, tuples and Point2D all coerce to the same Point2D."""
    assert as_point(BasePoint(x=3, y=4)) == Point2D(3.0, 4.0)
    assert as_point((3, 4)) == Point2D(3.0, 4.0)
    p = Point2D(1.0, 2.0)
    assert as_point(p) is p


def test_rotate_point_quarter_turn():
    """Rotating (1, 0) by 90 degrees about the origin lands on (0, 1)."""
    p = rotate_point((1, 0), (0, 0), 90)
    assert np.allclose(p, (0.0, 1.0))


# -----------------------------------------------------------------------------
# Tests for angle helpers
# -----------------------------------------------------------------------------

def test_angular_difference_wraps_shortest_way():
    assert angular_difference(350, 10) == pytest.approx(20.0)
    assert angular_difference(10, 350) == pytest.approx(-20.0)
    assert angular_difference(0, 180) == pytest.approx(180.0)


def test_shortest_rotation_crosses_180():
    """170 -> -170 goes through 180, not through 0."""
    assert shortest_rotation(170, -170, 0.5) == pytest.approx(180.0)
    assert shortest_rotation(170, -170, 1.0) == pytest.approx(190.0)


def test_transform_angle_range():
    assert transform_angle(190) == pytest.approx(-170.0)
    assert transform_angle(-190) == pytest.approx(170.0)
    assert transform_angle(45) == pytest.approx(45.0)


def test_tangent_angle_degrees():
    assert tangent_angle((0, 0), (0, 10)) == pytest.approx(90.0)
    assert tangent_angle((0, 0), (-10, 0)) == pytest.approx(180.0)


# -----------------------------------------------------------------------------
# Tests for build_rectangle / minimum_separating_width
# -----------------------------------------------------------------------------

def test_build_rectangle_axis_aligned():
    """Corners go counter-clockwise from bottom-left."""
    rect = build_rectangle((0, 0), 4, 2, 0)
    expected = np.array([[-2, -1], [2, -1], [2, 1], [-2, 1]], dtype=float)
    assert rect.shape == (4, 2)
    assert np.allclose(rect, expected)


def test_build_rectangle_rotation_keeps_center():
    rect = build_rectangle((10, 20), 6, 3, 37)
    assert np.allclose(rect.mean(axis=0), (10, 20))
    # Side lengths survive rotation
    assert np.isclose(np.linalg.norm(rect[1] - rect[0]), 6)
    assert np.isclose(np.linalg.norm(rect[2] - rect[1]), 3)


def test_separating_width_exact_overlap():
    """Two 10x10 squares whose centers are 8 apart overlap by exactly 2."""
    a = build_rectangle((0, 0), 10, 10, 0)
    b = build_rectangle((8, 0), 10, 10, 0)
    assert minimum_separating_width(a, b) == pytest.approx(2.0)


def test_separating_width_disjoint_is_zero():
    """A 10 unit gap between squares scores 0."""
    a = build_rectangle((0, 0), 10, 10, 0)
    b = build_rectangle((20, 0), 10, 10, 0)
    assert minimum_separating_width(a, b) == 0.0


def test_separating_width_is_symmetric():
    a = build_rectangle((0, 0), 10, 6, 15)
    b = build_rectangle((5, 3), 8, 8, -30)
    assert minimum_separating_width(a, b) == pytest.approx(minimum_separating_width(b, a))


def test_separating_width_touching_edges_is_zero():
    """Shared edge means zero overlap on that axis."""
    a = build_rectangle((0, 0), 10, 10, 0)
    b = build_rectangle((10, 0), 10, 10, 0)
    assert minimum_separating_width(a, b) == 0.0


def test_separating_width_degenerate_rectangle():
    """Zero-width rectangles have zero-length edges; those axes are skipped."""
    a = build_rectangle((0, 0), 0, 10, 0)
    b = build_rectangle((0, 0), 10, 10, 0)
    assert minimum_separating_width(a, b) >= 0.0


# -----------------------------------------------------------------------------
# Tests for polygon helpers
# -----------------------------------------------------------------------------

def test_point_to_segment_distance_cases():
    # Perpendicular foot inside the segment
    assert point_to_segment_distance((5, 3), (0, 0), (10, 0)) == pytest.approx(3.0)
    # Beyond the end: distance to the endpoint
    assert point_to_segment_distance((13, 4), (0, 0), (10, 0)) == pytest.approx(5.0)
    # Degenerate segment
    assert point_to_segment_distance((3, 4), (0, 0), (0, 0)) == pytest.approx(5.0)


def test_polygon_center_is_vertex_mean():
    assert polygon_center([(0, 0), (4, 0), (4, 2), (0, 2)]) == Point2D(2.0, 1.0)


def test_robot_corners_unrotated():
    corners = robot_corners(10, 10, 0, 4, 2)
    assert np.allclose(corners, [(8, 9), (12, 9), (12, 11), (8, 11)])


def test_robot_corners_rotation_preserves_center():
    corners = robot_corners(50, 60, 33, 16, 18)
    assert np.allclose(np.mean(corners, axis=0), (50, 60))


def test_convex_hull_drops_interior_points():
    pts = [(0, 0), (10, 0), (10, 10), (0, 10), (5, 5), (3, 7)]
    hull = convex_hull(pts)
    assert set(hull) == {Point2D(0, 0), Point2D(10, 0), Point2D(10, 10), Point2D(0, 10)}
    assert hull[0] == Point2D(0, 0)


def test_quadratic_to_cubic_elevation():
    """Elevated handles sit 2/3 of the way toward the quadratic control point."""
    q1, q2 = quadratic_to_cubic((0, 0), (3, 3), (6, 0))
    assert np.allclose(q1, (2, 2))
    assert np.allclose(q2, (4, 2))


def test_ease_in_out_quad_endpoints_and_midpoint():
    assert ease_in_out_quad(0.0) == 0.0
    assert ease_in_out_quad(0.5) == pytest.approx(0.5)
    assert ease_in_out_quad(1.0) == pytest.approx(1.0)
    assert ease_in_out_quad(0.25) < 0.25
    assert math.isclose(ease_in_out_quad(0.75), 1 - ease_in_out_quad(0.25))
