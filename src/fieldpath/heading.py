"""Heading-variant resolution for path segments.

Each function dispatches on the segment end point's heading variant and raises
``TypeError`` for anything else, so adding a variant fails loudly everywhere it
is not yet handled.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from .curve import curve_point
from .geometry import shortest_rotation, tangent_angle, transform_angle
from .models import ConstantPoint, Line, LinearPoint, TangentialPoint

TANGENT_LOOKAHEAD = 0.01


def _unknown(point) -> TypeError:
    return TypeError(f"Unknown heading variant: {type(point).__name__}")


def _tangential(angle: float, reverse: bool) -> float:
    return transform_angle(angle + 180.0) if reverse else transform_angle(angle)


def line_start_heading(line: Optional[Line], previous_point) -> float:
    """Heading the robot must hold when it starts ``line``."""
    if line is None:
        return 0.0
    end = line.end_point
    if isinstance(end, ConstantPoint):
        return end.degrees
    if isinstance(end, LinearPoint):
        return end.start_deg
    if isinstance(end, TangentialPoint):
        next_point = line.control_points[0] if line.control_points else end
        return _tangential(tangent_angle(previous_point, next_point), end.reverse)
    raise _unknown(end)


def line_end_heading(line: Optional[Line], previous_point) -> float:
    """Heading the robot holds on arriving at the end of ``line``."""
    if line is None:
        return 0.0
    end = line.end_point
    if isinstance(end, ConstantPoint):
        return end.degrees
    if isinstance(end, LinearPoint):
        return end.end_deg
    if isinstance(end, TangentialPoint):
        prev = line.control_points[-1] if line.control_points else previous_point
        return _tangential(tangent_angle(prev, end), end.reverse)
    raise _unknown(end)


def start_point_heading(start_point, lines: Sequence[Line]) -> float:
    """Initial heading declared by the path's start point.

    A tangential start aims at the first segment's first control point (or
    its end point when it has none).
    """
    if isinstance(start_point, LinearPoint):
        return start_point.start_deg
    if isinstance(start_point, ConstantPoint):
        return start_point.degrees
    if isinstance(start_point, TangentialPoint):
        if not lines:
            return 0.0
        first = lines[0]
        next_point = first.control_points[0] if first.control_points else first.end_point
        angle = tangent_angle(start_point, next_point)
        return angle + 180.0 if start_point.reverse else angle
    raise _unknown(start_point)


def heading_along(line: Line, points: Sequence, fraction: float) -> float:
    """Heading at parameter ``fraction`` along a segment.

    Args:
        line: The segment whose end point selects the variant.
        points: Full control polygon (start, control points, end).
        fraction: Curve parameter in [0, 1].

    Returns:
        Heading in degrees. A tangential heading whose look-ahead sample
        coincides with the current one returns 0.
    """
    end = line.end_point
    if isinstance(end, LinearPoint):
        return shortest_rotation(end.start_deg, end.end_deg, fraction)
    if isinstance(end, ConstantPoint):
        return end.degrees
    if isinstance(end, TangentialPoint):
        here = curve_point(fraction, points)
        step = -TANGENT_LOOKAHEAD if end.reverse else TANGENT_LOOKAHEAD
        ahead = curve_point(fraction + step, points)
        dx, dy = ahead.x - here.x, ahead.y - here.y
        if dx == 0 and dy == 0:
            return 0.0
        return math.degrees(math.atan2(dy, dx))
    raise _unknown(end)
