"""Cubic Bezier curves and sampled-curve helpers.

A :class:`CubicBezierCurve` is a value object: its polynomial coefficients are
derived once at construction and its arc length is cached on first use. To
change a curve, build a new one.

Path segments in the editor may carry zero, one or two control points, so the
module also exposes :func:`curve_point` (de Casteljau for any degree) and
:func:`curve_length` (polyline length over uniform samples).
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import (
    FIELD_SIZE,
    Point2D,
    as_point,
    build_rectangle,
    lerp2d,
    minimum_separating_width,
    quadratic_to_cubic,
)

ARC_LENGTH_SAMPLES = 100
INVERSION_SAMPLES = 101
COLLISION_SAMPLES = 100

# Static field regions (center, width, height), all axis-aligned.
RESTRICTED_ZONE_SIZE = (27.5, 42.75)
ALLIANCES = ("red", "blue")


def curve_point(t: float, points: Sequence) -> Point2D:
    """Evaluate a Bezier curve of any degree at ``t`` by de Casteljau."""
    pts = [as_point(p) for p in points]
    while len(pts) > 1:
        pts = [lerp2d(t, pts[i], pts[i + 1]) for i in range(len(pts) - 1)]
    return pts[0]


def sample_curve(points: Sequence, samples: int = ARC_LENGTH_SAMPLES) -> np.ndarray:
    """Return ``samples + 1`` points at uniform parameter spacing as (N, 2)."""
    return np.array([curve_point(i / samples, points) for i in range(samples + 1)], dtype=np.float64)


def curve_length(points: Sequence, samples: int = ARC_LENGTH_SAMPLES) -> float:
    """Approximate arc length as the sum of ``samples`` chord lengths."""
    P = sample_curve(points, samples)
    return float(np.hypot(*np.diff(P, axis=0).T).sum())


class CubicBezierCurve:
    """Cubic Bezier curve over four control points.

    Attributes:
        p0, p1, p2, p3: Control points; p0 and p3 are the endpoints.
        coeff_x, coeff_y: Power-basis coefficients ``[t^3, t^2, t, 1]``.

    Example:
        >>> curve = CubicBezierCurve((0, 0), (10, 20), (30, 20), (40, 0))
        >>> curve.evaluate(0.0)
        Point2D(x=0.0, y=0.0)
        >>> curve.evaluate(1.0)
        Point2D(x=40.0, y=0.0)
    """

    def __init__(self, p0, p1, p2, p3):
        self.p0 = as_point(p0)
        self.p1 = as_point(p1)
        self.p2 = as_point(p2)
        self.p3 = as_point(p3)

        P = np.array([self.p0, self.p1, self.p2, self.p3], dtype=np.float64)
        self._control = P
        # Expanded cubic: a t^3 + b t^2 + c t + d
        a = P[3] - 3 * P[2] + 3 * P[1] - P[0]
        b = 3 * P[2] - 6 * P[1] + 3 * P[0]
        c = 3 * P[1] - 3 * P[0]
        d = P[0]
        self.coeff_x = np.array([a[0], b[0], c[0], d[0]])
        self.coeff_y = np.array([a[1], b[1], c[1], d[1]])

        self._arc_length: Optional[float] = None
        self._inversion_table: Optional[np.ndarray] = None

    @classmethod
    def from_control_points(cls, start, control_points: Sequence, end) -> "CubicBezierCurve":
        """Build a cubic from a segment with 0, 1 or 2 interior control points.

        Straight segments get handles at 1/3 and 2/3 of the chord; a single
        quadratic control point is degree-elevated.
        """
        start, end = as_point(start), as_point(end)
        controls = [as_point(p) for p in control_points]
        if len(controls) == 0:
            return cls(start, lerp2d(1 / 3, start, end), lerp2d(2 / 3, start, end), end)
        if len(controls) == 1:
            q1, q2 = quadratic_to_cubic(start, controls[0], end)
            return cls(start, q1, q2, end)
        if len(controls) == 2:
            return cls(start, controls[0], controls[1], end)
        raise ValueError(f"Expected at most 2 control points, got {len(controls)}")

    def __repr__(self) -> str:
        return f"CubicBezierCurve({self.p0}, {self.p1}, {self.p2}, {self.p3})"

    @property
    def control_points(self) -> Tuple[Point2D, Point2D, Point2D, Point2D]:
        return self.p0, self.p1, self.p2, self.p3

    # -------------------- Evaluation --------------------

    def evaluate(self, t: float) -> Point2D:
        """Position at ``t`` via Bernstein blending.

        Endpoints are exact: ``evaluate(0) == p0`` and ``evaluate(1) == p3``.
        """
        mt = 1.0 - t
        w0 = mt * mt * mt
        w1 = 3.0 * mt * mt * t
        w2 = 3.0 * mt * t * t
        w3 = t * t * t
        return Point2D(
            w0 * self.p0.x + w1 * self.p1.x + w2 * self.p2.x + w3 * self.p3.x,
            w0 * self.p0.y + w1 * self.p1.y + w2 * self.p2.y + w3 * self.p3.y,
        )

    def evaluate_many(self, ts: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`evaluate`; returns (N, 2)."""
        t = np.asarray(ts, dtype=np.float64)[:, None]
        mt = 1.0 - t
        W = np.hstack([mt ** 3, 3 * mt ** 2 * t, 3 * mt * t ** 2, t ** 3])
        return W @ self._control

    def derivative(self, t: float) -> Point2D:
        """First derivative of the expanded cubic at ``t``."""
        ax, bx, cx, _ = self.coeff_x
        ay, by, cy, _ = self.coeff_y
        return Point2D(
            float(3 * ax * t * t + 2 * bx * t + cx),
            float(3 * ay * t * t + 2 * by * t + cy),
        )

    def theta(self, t: float) -> float:
        """Tangent direction at ``t`` in radians."""
        d = self.derivative(t)
        return math.atan2(d.y, d.x)

    def arc_length(self) -> float:
        """Chord-sum length over 100 uniform samples, computed once.

        Samples come from the power basis so a curve whose control points all
        coincide measures exactly zero.
        """
        if self._arc_length is None:
            ts = np.linspace(0.0, 1.0, ARC_LENGTH_SAMPLES + 1)
            xs = np.polyval(self.coeff_x, ts)
            ys = np.polyval(self.coeff_y, ts)
            self._arc_length = float(np.hypot(np.diff(xs), np.diff(ys)).sum())
        return self._arc_length

    def invert(self, point) -> float:
        """Parameter of the nearest of 101 evenly spaced samples to ``point``.

        This is a coarse nearest-sample search with a resolution of 0.01; it
        is not a root-find and gives no sub-sample accuracy.
        """
        if self._inversion_table is None:
            ts = np.linspace(0.0, 1.0, INVERSION_SAMPLES)
            self._inversion_table = self.evaluate_many(ts)
        p = as_point(point)
        d2 = (self._inversion_table[:, 0] - p.x) ** 2 + (self._inversion_table[:, 1] - p.y) ** 2
        return int(np.argmin(d2)) / (INVERSION_SAMPLES - 1)

    # -------------------- Collision metrics --------------------

    def collision_weight(
        self,
        alliance: str,
        heading: float,
        boundary_tolerance: float,
        restricted_zone_tolerance: float,
        robot_width: float,
        robot_height: float,
    ) -> float:
        """Optimization objective scoring field-region penetration.

        The curve is nominally scanned at ``t = i/100`` for ``i`` in 0..99,
        but each sample overwrites the previous one, so only the terminal
        sample (t = 0.99) contributes. The score is
        ``20 * (sum of the five penetrations) / 100``.

        Args:
            alliance: ``"red"`` or ``"blue"``; selects the outer wall.
            heading: Robot rotation passed straight to the rectangle builder.
            boundary_tolerance: Thickness of wall and divider bands.
            restricted_zone_tolerance: Padding added around the central zone.
            robot_width: Robot footprint width.
            robot_height: Robot footprint height.

        Returns:
            Non-negative score; 0 when the terminal pose touches nothing.
        """
        t = (COLLISION_SAMPLES - 1) / COLLISION_SAMPLES
        penetrations = region_penetrations(
            self.evaluate(t), alliance, heading, boundary_tolerance,
            restricted_zone_tolerance, robot_width, robot_height,
        )
        return 20.0 * sum(penetrations.values()) / COLLISION_SAMPLES

    def as_line(self, degrees: float, **fields):
        """Export as a constant-heading path segment ending at ``p3``."""
        from .models import ConstantPoint, ControlPoint, Line

        return Line(
            end_point=ConstantPoint(x=self.p3.x, y=self.p3.y, degrees=degrees),
            control_points=[ControlPoint(x=self.p1.x, y=self.p1.y),
                            ControlPoint(x=self.p2.x, y=self.p2.y)],
            **fields,
        )


def field_regions(
    alliance: str,
    boundary_tolerance: float,
    restricted_zone_tolerance: float,
) -> Dict[str, Tuple[Point2D, float, float]]:
    """The five static regions as ``name -> (center, width, height)``."""
    if alliance not in ALLIANCES:
        raise ValueError(f"alliance must be one of {ALLIANCES}, got {alliance!r}")
    mid = FIELD_SIZE / 2.0
    zone_w, zone_h = RESTRICTED_ZONE_SIZE
    outer_x = 0.0 if alliance == "blue" else FIELD_SIZE
    return {
        "restricted_zone": (Point2D(mid, mid),
                            zone_w + 2 * restricted_zone_tolerance,
                            zone_h + 2 * restricted_zone_tolerance),
        "alliance_divider": (Point2D(mid, mid), FIELD_SIZE, 2 * boundary_tolerance),
        "outer_wall": (Point2D(outer_x, mid), FIELD_SIZE, boundary_tolerance),
        "left_wall": (Point2D(mid, 0.0), boundary_tolerance, FIELD_SIZE),
        "right_wall": (Point2D(mid, FIELD_SIZE), boundary_tolerance, FIELD_SIZE),
    }


def region_penetrations(
    center,
    alliance: str,
    heading: float,
    boundary_tolerance: float,
    restricted_zone_tolerance: float,
    robot_width: float,
    robot_height: float,
) -> Dict[str, float]:
    """Penetration depth of a robot pose into each static field region."""
    robot = build_rectangle(center, robot_width, robot_height, heading)
    out = {}
    for name, (c, w, h) in field_regions(alliance, boundary_tolerance, restricted_zone_tolerance).items():
        out[name] = minimum_separating_width(robot, build_rectangle(c, w, h, 0.0))
    return out


def segment_points(start, control_points: Sequence, end) -> List[Point2D]:
    """Full control polygon of a segment: start, interior points, end."""
    return [as_point(start), *[as_point(p) for p in control_points], as_point(end)]
