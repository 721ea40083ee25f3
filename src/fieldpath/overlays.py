"""Swept-body overlays for the field view.

``ghost_path_points`` outlines the area the robot body sweeps while following
the path; ``onion_layers`` places full robot footprints at a fixed spacing
along it. Both use field-frame headings.
"""

from __future__ import annotations

import math
from typing import List, NamedTuple, Sequence

from .curve import ARC_LENGTH_SAMPLES, curve_length, curve_point, segment_points
from .geometry import Point2D, as_point, distance, robot_corners
from .heading import heading_along

DUPLICATE_THRESHOLD = 1e-4
MIN_SAMPLES_PER_LINE = 10


class OnionLayer(NamedTuple):
    x: float
    y: float
    heading: float
    corners: List[Point2D]
    line_index: int


def _segments(start_point, lines: Sequence):
    prev = start_point
    for index, line in enumerate(lines):
        yield index, line, segment_points(prev, line.control_points, line.end_point)
        prev = line.end_point


def _same(a: Point2D, b: Point2D) -> bool:
    return abs(a.x - b.x) <= DUPLICATE_THRESHOLD and abs(a.y - b.y) <= DUPLICATE_THRESHOLD


def ghost_path_points(start_point, lines: Sequence, robot_width: float, robot_height: float,
                      samples: int = 200) -> List[Point2D]:
    """Closed boundary polygon of the robot's swept path.

    Each pose contributes a left and right rail point half the robot width off
    its heading normal. The boundary runs start bridge, left rail forward, end
    bridge, right rail backward, with consecutive duplicates removed.

    Args:
        start_point: Path start.
        lines: Ordered segments.
        robot_width: Footprint width.
        robot_height: Footprint height (used for the single-pose case).
        samples: Total samples across the path; at least 10 per segment.

    Returns:
        Closed polygon (first point repeated last), or ``[]`` without lines.
    """
    if not lines:
        return []

    per_line = max(MIN_SAMPLES_PER_LINE, math.ceil(samples / len(lines)))
    half_w = robot_width / 2.0
    poses = []
    for _, line, points in _segments(start_point, lines):
        for i in range(per_line + 1):
            t = i / per_line
            center = curve_point(t, points)
            heading = heading_along(line, points, t)
            rad = math.radians(heading)
            nx, ny = -math.sin(rad), math.cos(rad)
            left = Point2D(center.x + nx * half_w, center.y + ny * half_w)
            right = Point2D(center.x - nx * half_w, center.y - ny * half_w)
            poses.append((center, heading, left, right))

    if len(poses) == 1:
        center, heading, _, _ = poses[0]
        return robot_corners(center.x, center.y, heading, robot_width, robot_height)

    boundary = [poses[0][3], poses[0][2]]
    boundary.extend(p[2] for p in poses)
    boundary.append(poses[-1][3])
    boundary.extend(p[3] for p in reversed(poses))

    result: List[Point2D] = []
    for p in boundary:
        if not result or not _same(p, result[-1]):
            result.append(p)
    if len(result) < 3:
        return []
    if not _same(result[0], result[-1]):
        result.append(result[0])
    return result


def onion_layers(start_point, lines: Sequence, robot_width: float, robot_height: float,
                 spacing: float = 6.0) -> List[OnionLayer]:
    """Robot footprints every ``spacing`` inches of travel along the path."""
    if spacing <= 0:
        raise ValueError("spacing must be positive")
    if not lines:
        return []

    total = sum(curve_length(points) for _, _, points in _segments(start_point, lines))
    layers: List[OnionLayer] = []
    travelled = 0.0
    next_at = spacing

    for index, line, points in _segments(start_point, lines):
        prev_pos = as_point(points[0])
        prev_t = 0.0
        for i in range(1, ARC_LENGTH_SAMPLES + 1):
            t = i / ARC_LENGTH_SAMPLES
            pos = curve_point(t, points)
            step = distance(prev_pos, pos)
            travelled += step

            while travelled >= next_at and next_at <= total:
                ratio = 1.0 - (travelled - next_at) / step if step > 0 else 1.0
                layer_t = prev_t + (t - prev_t) * ratio
                here = curve_point(layer_t, points)
                heading = heading_along(line, points, layer_t)
                layers.append(OnionLayer(
                    x=here.x,
                    y=here.y,
                    heading=heading,
                    corners=robot_corners(here.x, here.y, heading, robot_width, robot_height),
                    line_index=index,
                ))
                next_at += spacing

            prev_pos = pos
            prev_t = t
    return layers
