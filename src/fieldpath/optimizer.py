"""Control-point optimization for constant-heading segments.

The solver searches a 5-dimensional point ``[theta, p1.x, p1.y, p2.x, p2.y]``
for the heading and interior control points that minimize the curve's
collision weight, then runs the heading dynamics on the resulting curve to
estimate travel (T1) and rotation (T2) time.

Example:
    >>> solver = ConstantHeadingSolver(p0=(20, 20), p3=(20, 120),
    ...                                theta_initial=0.0, theta_final=1.57)
    >>> solution = solver.get_solution()
    >>> solution.curve.p0
    Point2D(x=20.0, y=20.0)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
from scipy.optimize import Bounds, minimize

from .curve import CubicBezierCurve
from .dynamics import ConstantHeadingEquation, find_t1, find_t2, simulate
from .geometry import FIELD_SIZE, as_point

log = logging.getLogger(__name__)

DEFAULT_MASS = 15.0
DEFAULT_LATERAL_DRAG = 10.0
DEFAULT_MAX_EVALUATIONS = 2000


@dataclass(frozen=True)
class OptimizationResult:
    point: np.ndarray
    value: float
    evaluations: int


@dataclass(frozen=True)
class SolutionPoint:
    """Heading, curve and timing produced by one solver run."""

    theta: float
    curve: CubicBezierCurve
    t1: float
    t2: float

    @property
    def target_time(self) -> float:
        return self.t1 + self.t2


class BoundedOptimizer:
    """Derivative-free minimizer over a box.

    The search is seeded the way BOBYQA builds its first interpolation set:
    the initial guess plus ``+-rho`` steps along each coordinate, truncated to
    ``interpolation_points`` candidates. The best seed starts a bounded Powell
    search. Every point handed to the objective is clamped into the box.

    Args:
        interpolation_points: Seed count, in ``[n + 2, (n + 1)(n + 2) / 2]``.
        lower_bounds: Per-dimension lower bounds.
        upper_bounds: Per-dimension upper bounds.
        max_evaluations: Cap on objective evaluations for the Powell phase.
    """

    def __init__(self, interpolation_points: int, lower_bounds: Sequence[float],
                 upper_bounds: Sequence[float], max_evaluations: int = DEFAULT_MAX_EVALUATIONS):
        self.lower = np.asarray(lower_bounds, dtype=np.float64)
        self.upper = np.asarray(upper_bounds, dtype=np.float64)
        if self.lower.shape != self.upper.shape:
            raise ValueError("lower_bounds and upper_bounds must have the same length")
        if np.any(self.lower > self.upper):
            raise ValueError(f"Empty search box: lower={self.lower.tolist()} upper={self.upper.tolist()}")
        # Dimensions with lower == upper are held fixed
        self.free = self.lower < self.upper

        n = self.lower.size
        lo, hi = n + 2, (n + 1) * (n + 2) // 2
        if not lo <= interpolation_points <= hi:
            raise ValueError(f"interpolation_points must be in [{lo}, {hi}], got {interpolation_points}")
        self.interpolation_points = interpolation_points
        self.max_evaluations = max_evaluations

    def clamp(self, point: Sequence[float]) -> np.ndarray:
        return np.clip(np.asarray(point, dtype=np.float64), self.lower, self.upper)

    def _seeds(self, x0: np.ndarray) -> np.ndarray:
        rho = 0.1 * (self.upper - self.lower)
        seeds = [x0]
        for i in range(x0.size):
            for sign in (1.0, -1.0):
                step = np.zeros_like(x0)
                step[i] = sign * rho[i]
                seeds.append(self.clamp(x0 + step))
        return np.array(seeds[: self.interpolation_points])

    def optimize(self, objective: Callable[[np.ndarray], float],
                 initial_guess: Sequence[float]) -> OptimizationResult:
        evaluations = 0

        def f(x):
            nonlocal evaluations
            evaluations += 1
            return float(objective(self.clamp(x)))

        x0 = self.clamp(initial_guess)
        seeds = self._seeds(x0)
        values = [f(s) for s in seeds]
        best = int(np.argmin(values))
        start, start_value = seeds[best], values[best]
        if not self.free.any():
            log.debug("Search box is a single point: value=%.6g", start_value)
            return OptimizationResult(point=start, value=start_value, evaluations=evaluations)

        def expand(z):
            x = start.copy()
            x[self.free] = z
            return x

        res = minimize(
            lambda z: f(expand(z)),
            start[self.free],
            method="Powell",
            bounds=Bounds(self.lower[self.free], self.upper[self.free]),
            options={"maxfev": self.max_evaluations, "xtol": 1e-4, "ftol": 1e-8},
        )
        point = self.clamp(expand(res.x))
        value = f(point)
        if value > start_value:
            point, value = start, start_value

        log.debug("Bounded search finished: value=%.6g after %d evaluations", value, evaluations)
        return OptimizationResult(point=point, value=value, evaluations=evaluations)


class ConstantHeadingSolver:
    """Shape a segment's control points and heading to avoid field boundaries.

    Args:
        p0: Segment start (fixed).
        p3: Segment end (fixed).
        theta_initial: Heading before the segment, radians.
        theta_final: Heading required after the segment, radians.
        v_max: Velocity cap for the dynamics.
        mass: Robot mass for the friction term.
        mu_k: Kinetic friction coefficient.
        c1: Lateral misalignment drag coefficient.
        c2: Reserved second drag coefficient (carried, unused by the model).
        angular_velocity: Turn rate in rad/s for T2.
        boundary_tolerance: Wall/divider band thickness.
        restricted_zone_tolerance: Padding around the central zone.
        alliance: ``"red"`` or ``"blue"``.
        robot_width: Footprint width.
        robot_height: Footprint height.
    """

    def __init__(
        self,
        p0,
        p3,
        theta_initial: float,
        theta_final: float,
        *,
        v_max: float = 40.0,
        mass: float = DEFAULT_MASS,
        mu_k: float = 0.4,
        c1: float = DEFAULT_LATERAL_DRAG,
        c2: float = 0.0,
        angular_velocity: float = math.pi,
        boundary_tolerance: float = 1.0,
        restricted_zone_tolerance: float = 1.0,
        alliance: str = "red",
        robot_width: float = 16.0,
        robot_height: float = 16.0,
        max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
    ):
        self.p0 = as_point(p0)
        self.p3 = as_point(p3)
        self.theta_initial = theta_initial
        self.theta_final = theta_final
        self.v_max = v_max
        self.mass = mass
        self.mu_k = mu_k
        self.c1 = c1
        self.c2 = c2
        self.angular_velocity = angular_velocity
        self.boundary_tolerance = boundary_tolerance
        self.restricted_zone_tolerance = restricted_zone_tolerance
        self.alliance = alliance
        self.robot_width = robot_width
        self.robot_height = robot_height
        self.max_evaluations = max_evaluations

    @classmethod
    def from_settings(cls, settings, p0, p3, theta_initial: float, theta_final: float,
                      **overrides) -> "ConstantHeadingSolver":
        """Build a solver from a :class:`~fieldpath.models.Settings` record.

        ``safety_margin`` doubles as the boundary and restricted-zone
        tolerance unless overridden.
        """
        params = dict(
            v_max=settings.max_velocity or (settings.x_velocity + settings.y_velocity) / 2.0,
            mu_k=settings.k_friction,
            angular_velocity=settings.a_velocity,
            boundary_tolerance=settings.safety_margin,
            restricted_zone_tolerance=settings.safety_margin,
            robot_width=settings.r_width,
            robot_height=settings.r_height,
        )
        params.update(overrides)
        return cls(p0, p3, theta_initial, theta_final, **params)

    # -------------------- Search space --------------------

    def initial_guess(self) -> np.ndarray:
        return np.array([
            self.theta_final,
            self.p0.x,
            (self.p0.y + self.p3.y) / 2.0,
            self.p0.x,
            self.p3.y,
        ])

    def bounds(self):
        """Keep interior control points inside the near half-field minus a margin.

        A margin wider than the half-field collapses that coordinate to the
        midpoint of the inverted pair.
        """
        m = self.boundary_tolerance + min(self.robot_width, self.robot_height)
        half = FIELD_SIZE / 2.0
        lower = [0.0, m, m, m, m]
        upper = [2.0 * math.pi, half - m, FIELD_SIZE - m, half - m, FIELD_SIZE - m]
        for i, (lo, hi) in enumerate(zip(lower, upper)):
            if lo > hi:
                lower[i] = upper[i] = (lo + hi) / 2.0
        return lower, upper

    def curve_for(self, point: Sequence[float]) -> CubicBezierCurve:
        return CubicBezierCurve(self.p0, (point[1], point[2]), (point[3], point[4]), self.p3)

    def objective(self, point: Sequence[float]) -> float:
        return self.curve_for(point).collision_weight(
            self.alliance,
            point[0],
            self.boundary_tolerance,
            self.restricted_zone_tolerance,
            self.robot_width,
            self.robot_height,
        )

    def optimize(self) -> OptimizationResult:
        lower, upper = self.bounds()
        guess = self.initial_guess()
        optimizer = BoundedOptimizer(2 * guess.size + 1, lower, upper, self.max_evaluations)
        return optimizer.optimize(self.objective, guess)

    # -------------------- Timing --------------------

    def travel_time(self, theta: float, curve: CubicBezierCurve) -> float:
        equation = ConstantHeadingEquation(theta, self.v_max, self.mass, self.mu_k, self.c1, curve)
        return find_t1(simulate(equation), curve.arc_length())

    def rotation_time(self, theta: float) -> float:
        return find_t2(theta, self.theta_initial, self.theta_final, self.angular_velocity)

    def get_solution(self, result: Optional[OptimizationResult] = None) -> SolutionPoint:
        """Optimize (unless ``result`` is given) and time the resulting curve."""
        if result is None:
            result = self.optimize()
        theta = float(result.point[0])
        curve = self.curve_for(result.point)
        return SolutionPoint(
            theta=theta,
            curve=curve,
            t1=self.travel_time(theta, curve),
            t2=self.rotation_time(theta),
        )
