"""Planar geometry utilities for the field model.

This module provides the rotation, rectangle and polygon primitives the rest of
the package builds on. All coordinates are field inches on a 144x144 square
with angles in degrees unless a name says otherwise.

The separating-axis routine is used as a continuous penetration-depth metric
rather than a boolean collision flag, so the optimizer can treat it as a
smooth-ish objective:
- Two disjoint rectangles score exactly 0.
- Overlapping rectangles score the smallest overlap found across all edge normals.
"""

from __future__ import annotations

import math
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np

FIELD_SIZE = 144.0


class Point2D(NamedTuple):
    """Immutable field position in inches."""

    x: float
    y: float


def as_point(p) -> Point2D:
    """Coerce anything with ``.x``/``.y`` (or a 2-sequence) into a Point2D."""
    if isinstance(p, Point2D):
        return p
    if hasattr(p, "x") and hasattr(p, "y"):
        return Point2D(float(p.x), float(p.y))
    return Point2D(float(p[0]), float(p[1]))


def distance(a, b) -> float:
    a, b = as_point(a), as_point(b)
    return math.hypot(a.x - b.x, a.y - b.y)


def lerp(ratio: float, start: float, end: float) -> float:
    return start + (end - start) * ratio


def lerp2d(ratio: float, start, end) -> Point2D:
    start, end = as_point(start), as_point(end)
    return Point2D(lerp(ratio, start.x, end.x), lerp(ratio, start.y, end.y))


# -------------------- Angles --------------------

def transform_angle(angle: float) -> float:
    """Wrap an angle in degrees into [-180, 180)."""
    return ((angle + 180.0) % 360.0) - 180.0


def angular_difference(start: float, end: float) -> float:
    """Smallest signed difference from ``start`` to ``end`` in degrees.

    Returns:
        A value in [-180, 180].

    Example:
        >>> angular_difference(350.0, 10.0)
        20.0
    """
    diff = (end % 360.0) - (start % 360.0)
    if diff > 180.0:
        diff -= 360.0
    elif diff < -180.0:
        diff += 360.0
    return diff


def shortest_rotation(start: float, end: float, fraction: float) -> float:
    """Interpolate from ``start`` toward ``end`` along the shorter arc.

    The result is expressed relative to the original ``start`` so winding is
    preserved (e.g. 170 -> -170 at 0.5 gives 180, not 0).
    """
    return start + angular_difference(start, end) * fraction


def tangent_angle(p1, p2) -> float:
    """Direction from ``p1`` to ``p2`` in degrees (atan2 convention)."""
    p1, p2 = as_point(p1), as_point(p2)
    return math.degrees(math.atan2(p2.y - p1.y, p2.x - p1.x))


# -------------------- Rectangles / SAT --------------------

def rotate_point(p, pivot, angle_deg: float) -> Point2D:
    """Rotate ``p`` about ``pivot`` by ``angle_deg`` (counter-clockwise)."""
    p, pivot = as_point(p), as_point(pivot)
    rad = math.radians(angle_deg)
    c, s = math.cos(rad), math.sin(rad)
    tx, ty = p.x - pivot.x, p.y - pivot.y
    return Point2D(tx * c - ty * s + pivot.x, tx * s + ty * c + pivot.y)


def build_rectangle(center, width: float, height: float, rotation_deg: float) -> np.ndarray:
    """Build the four vertices of an oriented rectangle.

    The axis-aligned corners (counter-clockwise, starting bottom-left) are
    rotated about ``center``.

    Args:
        center: Rectangle center.
        width: Extent along the local X axis.
        height: Extent along the local Y axis.
        rotation_deg: Rotation about the center in degrees.

    Returns:
        (4, 2) float array of vertices.
    """
    c = as_point(center)
    hw, hh = width / 2.0, height / 2.0
    corners = (
        (c.x - hw, c.y - hh),
        (c.x + hw, c.y - hh),
        (c.x + hw, c.y + hh),
        (c.x - hw, c.y + hh),
    )
    return np.array([rotate_point(v, c, rotation_deg) for v in corners], dtype=np.float64)


def _project(vertices: np.ndarray, axis: np.ndarray) -> Tuple[float, float]:
    proj = vertices @ axis / float(np.hypot(axis[0], axis[1]))
    return float(proj.min()), float(proj.max())


def _overlap(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return max(0.0, min(a[1], b[1]) - max(a[0], b[0]))


def minimum_separating_width(rect_a: np.ndarray, rect_b: np.ndarray) -> float:
    """Penetration depth of two convex quads by the separating-axis theorem.

    Every edge normal of ``rect_a`` and then of ``rect_b`` is tried as a
    candidate axis. A zero overlap on any axis proves the shapes are disjoint
    and returns 0 immediately; otherwise the minimum overlap over all axes is
    returned.

    Args:
        rect_a: (4, 2) vertices, e.g. from :func:`build_rectangle`.
        rect_b: (4, 2) vertices.

    Returns:
        0.0 for disjoint rectangles, else the minimum positive overlap.

    Example:
        >>> a = build_rectangle((0, 0), 10, 10, 0)
        >>> b = build_rectangle((8, 0), 10, 10, 0)
        >>> minimum_separating_width(a, b)
        2.0
    """
    A = np.asarray(rect_a, dtype=np.float64)
    B = np.asarray(rect_b, dtype=np.float64)
    min_width = math.inf
    for rect in (A, B):
        n = len(rect)
        for i in range(n):
            edge = rect[(i + 1) % n] - rect[i]
            axis = np.array([-edge[1], edge[0]])
            if not axis.any():
                continue
            overlap = _overlap(_project(A, axis), _project(B, axis))
            if overlap == 0.0:
                return 0.0
            min_width = min(min_width, overlap)
    return 0.0 if math.isinf(min_width) else min_width


# -------------------- Polygons --------------------

def point_to_segment_distance(p, a, b) -> float:
    """Shortest distance from ``p`` to the closed segment ``a``-``b``."""
    p, a, b = as_point(p), as_point(a), as_point(b)
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(p.x - a.x, p.y - a.y)
    t = ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (a.x + t * dx), p.y - (a.y + t * dy))


def polygon_center(vertices: Sequence) -> Point2D:
    """Vertex centroid (mean of the vertices, not the area centroid)."""
    pts = np.array([as_point(v) for v in vertices], dtype=np.float64)
    cx, cy = pts.mean(axis=0)
    return Point2D(float(cx), float(cy))


def robot_corners(x: float, y: float, heading: float, width: float, height: float) -> List[Point2D]:
    """Corners of a robot footprint centered at (x, y).

    Width runs across the heading and height along it. Order is front-left,
    front-right, back-right, back-left.
    """
    rad = math.radians(heading)
    c, s = math.cos(rad), math.sin(rad)
    hw, hh = width / 2.0, height / 2.0
    local = ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh))
    return [Point2D(x + dx * c - dy * s, y + dx * s + dy * c) for dx, dy in local]


def _cross(o: Point2D, a: Point2D, b: Point2D) -> float:
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def convex_hull(points: Sequence) -> List[Point2D]:
    """Graham scan. Returns the hull counter-clockwise from the lowest point."""
    pts = [as_point(p) for p in points]
    if len(pts) < 3:
        return pts

    pivot = min(pts, key=lambda p: (p.y, p.x))
    rest = list(pts)
    rest.remove(pivot)
    rest.sort(key=lambda p: (
        math.atan2(p.y - pivot.y, p.x - pivot.x),
        (p.x - pivot.x) ** 2 + (p.y - pivot.y) ** 2,
    ))

    hull = [pivot]
    for p in rest:
        while len(hull) >= 2 and _cross(hull[-2], hull[-1], p) <= 0:
            hull.pop()
        hull.append(p)
    return hull


# -------------------- Curves helpers --------------------

def quadratic_to_cubic(p0, p1, p2) -> Tuple[Point2D, Point2D]:
    """Degree-elevate a quadratic control point into two cubic ones."""
    p0, p1, p2 = as_point(p0), as_point(p1), as_point(p2)
    q1 = Point2D(p0.x + (2 / 3) * (p1.x - p0.x), p0.y + (2 / 3) * (p1.y - p0.y))
    q2 = Point2D(p2.x + (2 / 3) * (p1.x - p2.x), p2.y + (2 / 3) * (p1.y - p2.y))
    return q1, q2


def ease_in_out_quad(x: float) -> float:
    return 2 * x * x if x < 0.5 else 1 - ((-2 * x + 2) ** 2) / 2
