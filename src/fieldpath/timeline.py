"""Motion-profile time prediction.

Turns a start point, its path segments and an optional build sequence into a
:class:`~fieldpath.models.TimePrediction`: per-segment travel times plus a
contiguous timeline of ``travel`` and ``wait`` events.

Each segment is timed with a trapezoidal velocity profile when it is long
enough to reach cruise speed (``length >= v^2/2a + v^2/2d``), otherwise with
a triangular profile whose peak is ``sqrt(2 L a d / (a + d))``. Heading changes
between segments are inserted as stationary rotation waits at the settings'
angular velocity.
"""

from __future__ import annotations

import logging
import math
from typing import List, NamedTuple, Optional, Sequence

from .curve import curve_length, segment_points
from .geometry import angular_difference
from .heading import line_end_heading, line_start_heading, start_point_heading
from .models import (
    BasePoint,
    Line,
    PathItem,
    Settings,
    TimePrediction,
    TravelEvent,
    WaitEvent,
    WaitItem,
)

log = logging.getLogger(__name__)

ROTATION_THRESHOLD_DEG = 0.1


class MotionProfile(NamedTuple):
    """Timing breakdown of one segment's velocity profile."""

    acc_time: float
    const_time: float
    dec_time: float
    acc_dist: float
    const_dist: float
    peak_velocity: float
    max_acc: float
    max_dec: float

    @property
    def total_time(self) -> float:
        return self.acc_time + self.const_time + self.dec_time

    @property
    def trapezoidal(self) -> bool:
        return self.const_time > 0 or self.const_dist > 0


def motion_profile(length: float, max_vel: float, max_acc: float,
                   max_dec: Optional[float] = None) -> MotionProfile:
    """Build the trapezoidal or triangular profile covering ``length``.

    ``max_dec`` falls back to ``max_acc`` when unset or zero.
    """
    dec = max_dec or max_acc
    acc_dist = max_vel * max_vel / (2 * max_acc)
    dec_dist = max_vel * max_vel / (2 * dec)

    if length >= acc_dist + dec_dist:
        const_dist = length - acc_dist - dec_dist
        return MotionProfile(max_vel / max_acc, const_dist / max_vel, max_vel / dec,
                             acc_dist, const_dist, max_vel, max_acc, dec)

    v_peak = math.sqrt(2 * max(length, 0.0) * max_acc * dec / (max_acc + dec))
    return MotionProfile(v_peak / max_acc, 0.0, v_peak / dec,
                         0.5 * v_peak * v_peak / max_acc, 0.0, v_peak, max_acc, dec)


def motion_profile_time(length: float, max_vel: float, max_acc: float,
                        max_dec: Optional[float] = None) -> float:
    """Duration of the profile covering ``length``."""
    return motion_profile(length, max_vel, max_acc, max_dec).total_time


def profile_distance(profile: MotionProfile, t: float) -> float:
    """Distance covered ``t`` seconds into ``profile`` (``t`` is clamped)."""
    t = max(0.0, min(t, profile.total_time))
    a, d, v = profile.max_acc, profile.max_dec, profile.peak_velocity
    if t <= profile.acc_time:
        return 0.5 * a * t * t
    if t <= profile.acc_time + profile.const_time:
        return profile.acc_dist + v * (t - profile.acc_time)
    rem = t - profile.acc_time - profile.const_time
    return profile.acc_dist + profile.const_dist + v * rem - 0.5 * d * rem * rem


def _ms_to_seconds(value) -> float:
    try:
        seconds = float(value) / 1000.0
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(seconds) or seconds <= 0:
        return 0.0
    return seconds


def default_sequence(lines: Sequence[Line]) -> list:
    """Sequence implied by segment order and each segment's own waits."""
    seq: list = []
    for line in lines:
        if _ms_to_seconds(line.wait_before_ms) > 0:
            seq.append(WaitItem(name=line.wait_before_name, duration_ms=line.wait_before_ms,
                                position="before"))
        seq.append(PathItem(line_id=line.id))
        if _ms_to_seconds(line.wait_after_ms) > 0:
            seq.append(WaitItem(name=line.wait_after_name, duration_ms=line.wait_after_ms,
                                position="after"))
    return seq


def segment_travel_time(length: float, settings: Settings) -> float:
    if settings.uses_motion_profile:
        return motion_profile_time(length, settings.max_velocity, settings.max_acceleration,
                                   settings.max_deceleration)
    return length / ((settings.x_velocity + settings.y_velocity) / 2.0)


def calculate_path_time(start_point, lines: Sequence[Line], settings: Settings,
                        sequence: Optional[Sequence] = None) -> TimePrediction:
    """Predict the timed event timeline of a path.

    Args:
        start_point: Path start with its heading variant.
        lines: Ordered segments.
        settings: Motion constraints.
        sequence: Optional explicit interleaving of ``PathItem``/``WaitItem``.
            Items naming an unknown segment id are skipped.

    Returns:
        TimePrediction whose events are contiguous from 0 to ``total_time``.

    Example:
        >>> pred = calculate_path_time(start, [line], Settings())
        >>> pred.timeline[-1].end_time == pred.total_time
        True
    """
    line_by_id = {line.id: line for line in lines}
    index_by_id = {line.id: i for i, line in enumerate(lines)}
    seq = list(sequence) if sequence else default_sequence(lines)

    segment_lengths: List[float] = []
    segment_times: List[float] = []
    timeline: list = []

    current_time = 0.0
    current_heading = start_point_heading(start_point, lines)
    last_point = start_point

    for idx, item in enumerate(seq):
        if isinstance(item, WaitItem):
            wait = _ms_to_seconds(item.duration_ms)
            if wait > 0:
                timeline.append(WaitEvent(
                    duration=wait,
                    start_time=current_time,
                    end_time=current_time + wait,
                    start_heading=current_heading,
                    target_heading=current_heading,
                    at_point=BasePoint(x=last_point.x, y=last_point.y),
                    name=item.name,
                    wait_position=item.position,
                ))
                current_time += wait
            continue

        line = line_by_id.get(item.line_id)
        if line is None:
            log.debug("Skipping sequence item for unknown line %r", item.line_id)
            continue
        prev_point = last_point

        required = line_start_heading(line, prev_point)
        if idx == 0:
            current_heading = required
        diff = abs(angular_difference(current_heading, required))
        if diff > ROTATION_THRESHOLD_DEG:
            rotation = math.radians(diff) / settings.a_velocity
            timeline.append(WaitEvent(
                duration=rotation,
                start_time=current_time,
                end_time=current_time + rotation,
                start_heading=current_heading,
                target_heading=required,
                at_point=BasePoint(x=prev_point.x, y=prev_point.y),
            ))
            current_time += rotation
            current_heading = required

        length = curve_length(segment_points(prev_point, line.control_points, line.end_point))
        travel = segment_travel_time(length, settings)
        segment_lengths.append(length)
        segment_times.append(travel)
        timeline.append(TravelEvent(
            duration=travel,
            start_time=current_time,
            end_time=current_time + travel,
            line_index=index_by_id[line.id],
        ))
        current_time += travel
        current_heading = line_end_heading(line, prev_point)
        last_point = line.end_point

    return TimePrediction(
        total_time=current_time,
        segment_times=segment_times,
        total_distance=sum(segment_lengths),
        timeline=timeline,
    )


def format_time(total_seconds: float) -> str:
    """Human-readable duration: ``"3.933s"`` or ``"1:05.250s"``."""
    if total_seconds <= 0:
        return "0.000s"
    minutes = int(total_seconds // 60)
    seconds = total_seconds % 60
    if minutes > 0:
        return f"{minutes}:{seconds:06.3f}s"
    return f"{seconds:.3f}s"


def animation_duration_ms(total_time: float, speed_factor: float = 1.0) -> float:
    return total_time * 1000.0 / speed_factor
