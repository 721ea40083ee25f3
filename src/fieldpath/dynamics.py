"""Constant-heading travel dynamics along a Bezier curve.

Models a robot that holds a fixed heading ``theta`` while being pushed along a
curve. At each state the desired heading is projected onto the local path
tangent; kinetic friction and a lateral drag proportional to
``|sin(theta - path_angle)|`` are subtracted, so the robot slows down as its
heading diverges from the path direction.

The ODE is integrated with Gill's fourth-order Runge-Kutta variant at a fixed
step and the raw trace is resampled to a fixed number of points for the
downstream time estimators.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Sequence

import numpy as np

from .curve import CubicBezierCurve
from .geometry import as_point

STEP = 0.005
HORIZON = 30.0
TRACE_POINTS = 1000

_SQRT2 = math.sqrt(2.0)


class ConstantHeadingEquation:
    """Right-hand side of the constant-heading travel ODE.

    Attributes:
        theta: Held heading in radians.
        v_max: Velocity cap.
        mass: Robot mass.
        mu_k: Kinetic friction coefficient.
        c1: Lateral drag coefficient for heading/path misalignment.
        curve: The path being followed.
    """

    dimension = 2

    def __init__(self, theta: float, v_max: float, mass: float, mu_k: float,
                 c1: float, curve: CubicBezierCurve):
        self.theta = theta
        self.v_max = v_max
        self.mass = mass
        self.mu_k = mu_k
        self.c1 = c1
        self.curve = curve
        self._heading = np.array([math.cos(theta), math.sin(theta)])

    def compute_derivatives(self, t: float, state: Sequence[float],
                            out: Optional[np.ndarray] = None) -> np.ndarray:
        """Velocity ``[dx, dy]`` at ``state``; ``t`` is unused (autonomous).

        The tangent is taken at the curve parameter nearest to ``state``.
        A zero tangent yields zero velocity.
        """
        if out is None:
            out = np.empty(2)
        s = self.curve.invert((state[0], state[1]))
        tangent = self.curve.derivative(s)
        norm = math.hypot(tangent.x, tangent.y)
        if norm < 1e-12:
            out[0] = out[1] = 0.0
            return out

        along = tangent.x * self._heading[0] + tangent.y * self._heading[1]
        path_angle = math.atan2(tangent.y, tangent.x)
        drag = self.mu_k * self.mass + self.c1 * abs(math.sin(self.theta - path_angle))
        scalar = (along * self.v_max - norm * drag) / (norm * norm)

        out[0] = scalar * tangent.x
        out[1] = scalar * tangent.y
        return out

    __call__ = compute_derivatives


def integrate_gill(
    f: Callable[[float, np.ndarray], np.ndarray],
    y0: Sequence[float],
    h: float = STEP,
    t_end: float = HORIZON,
) -> np.ndarray:
    """Fixed-step integration with Gill's coefficients.

    Args:
        f: ``f(t, y) -> dy/dt``.
        y0: Initial state.
        h: Step size in seconds.
        t_end: Integration horizon in seconds.

    Returns:
        (steps + 1, dim) array of states including ``y0``.
    """
    steps = int(round(t_end / h))
    y = np.array(y0, dtype=np.float64)
    trace = np.empty((steps + 1, y.size))
    trace[0] = y

    a2 = (_SQRT2 - 1.0) / 2.0        # -1/2 + 1/sqrt(2)
    b2 = (2.0 - _SQRT2) / 2.0        # 1 - 1/sqrt(2)
    c3 = -_SQRT2 / 2.0               # -1/sqrt(2)
    d3 = (2.0 + _SQRT2) / 2.0        # 1 + 1/sqrt(2)

    t = 0.0
    for i in range(steps):
        k1 = np.array(f(t, y))
        k2 = np.array(f(t + 0.5 * h, y + 0.5 * h * k1))
        k3 = np.array(f(t + 0.5 * h, y + h * (a2 * k1 + b2 * k2)))
        k4 = np.array(f(t + h, y + h * (c3 * k2 + d3 * k3)))
        y = y + (h / 6.0) * (k1 + (2.0 - _SQRT2) * k2 + (2.0 + _SQRT2) * k3 + k4)
        t += h
        trace[i + 1] = y
    return trace


def resample_trace(trace: np.ndarray, n: int = TRACE_POINTS) -> np.ndarray:
    """Linearly interpolate a trace to exactly ``n`` index-uniform points."""
    trace = np.asarray(trace, dtype=np.float64)
    src = np.arange(len(trace))
    idx = np.linspace(0.0, len(trace) - 1, n)
    return np.column_stack([np.interp(idx, src, trace[:, k]) for k in range(trace.shape[1])])


def simulate(equation: ConstantHeadingEquation, h: float = STEP, t_end: float = HORIZON,
             n: int = TRACE_POINTS) -> np.ndarray:
    """Integrate ``equation`` from its curve's start and resample to ``n`` points."""
    trace = integrate_gill(equation, equation.curve.p0, h=h, t_end=t_end)
    return resample_trace(trace, n)


def find_t1(trace: np.ndarray, target_length: float, horizon: float = HORIZON,
            origin=(0.0, 0.0)) -> float:
    """Simulated time at which the trace is ``target_length`` from ``origin``.

    Picks the resampled index whose straight-line distance from ``origin``
    is closest to ``target_length`` and scales it onto ``[0, horizon]``. This
    is a terminal-time estimate, not an arc-length match.
    """
    o = as_point(origin)
    trace = np.asarray(trace, dtype=np.float64)
    dist = np.hypot(trace[:, 0] - o.x, trace[:, 1] - o.y)
    idx = int(np.argmin(np.abs(dist - target_length)))
    return idx * horizon / (len(trace) - 1)


def find_t2(theta: float, theta_initial: float, theta_final: float,
            angular_velocity: float) -> float:
    """Rotation time into and out of the held heading ``theta``."""
    return (abs(theta_final - theta) + abs(theta_initial - theta)) / angular_velocity
