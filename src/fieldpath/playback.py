"""Timeline playback.

:class:`PlaybackScheduler` advances a 0-100 progress value from frame
timestamps. It owns no timer: whoever drives it calls :meth:`tick` once per
frame (a UI's animation frame, a test, or :func:`run_realtime`).
:func:`calculate_robot_state` turns a progress value back into a pose using
the same motion-profile math the timeline was built with.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from .curve import curve_length, curve_point, segment_points
from .geometry import ease_in_out_quad, shortest_rotation
from .heading import heading_along
from .models import RobotState, Settings, WaitEvent
from .timeline import motion_profile, profile_distance

log = logging.getLogger(__name__)

DEFAULT_FPS = 60.0


class PlaybackScheduler:
    """Frame-driven progress clock with loop, seek and completion support.

    Args:
        total_duration: Timeline length in seconds.
        on_percent_change: Called with the new percent after every change.
        on_complete: Called once when a non-looping playback reaches 100%.

    Example:
        >>> sched = PlaybackScheduler(4.0, lambda percent: None)
        >>> sched.seek_to_percent(50)
        50.0
        >>> sched.get_percent()
        50.0
    """

    def __init__(self, total_duration: float, on_percent_change: Callable[[float], None],
                 on_complete: Optional[Callable[[], None]] = None):
        self.total_duration = total_duration
        self.on_percent_change = on_percent_change
        self.on_complete = on_complete

        self.playing = False
        self.loop = True
        self.percent = 0.0
        self.accumulated_seconds = 0.0
        self.last_timestamp: Optional[float] = None
        self._external_change = False

    def _update_percent(self) -> None:
        if self.total_duration > 0:
            raw = self.accumulated_seconds / self.total_duration * 100.0
            self.percent = max(0.0, min(100.0, raw))
        else:
            self.percent = 0.0

    def _emit(self, percent: float) -> None:
        if not self._external_change:
            self.on_percent_change(percent)

    # -------------------- Frame driver --------------------

    def tick(self, timestamp: float) -> None:
        """Advance by the time since the previous tick.

        ``timestamp`` is in seconds on any monotonic clock. The first tick
        after :meth:`play` only records the timestamp.
        """
        self._external_change = False
        if not self.playing:
            self.last_timestamp = None
            return
        if self.last_timestamp is None:
            self.last_timestamp = timestamp
            return

        delta = timestamp - self.last_timestamp
        self.last_timestamp = timestamp
        self.accumulated_seconds += delta

        if self.total_duration <= 0:
            self.percent = 0.0
            self._emit(self.percent)
            return

        if self.loop:
            self.accumulated_seconds %= self.total_duration
            self._update_percent()
            self._emit(self.percent)
            return

        if self.accumulated_seconds >= self.total_duration:
            self.accumulated_seconds = self.total_duration
            self._update_percent()
            self._emit(100.0)
            self.playing = False
            self.last_timestamp = None
            if self.on_complete:
                self.on_complete()
            return

        self._update_percent()
        self._emit(self.percent)

    # -------------------- Controls --------------------

    def play(self) -> None:
        if self.playing:
            return
        if not self.loop and self.total_duration > 0 and self.accumulated_seconds >= self.total_duration:
            self.accumulated_seconds = 0.0
            self.percent = 0.0
            self._emit(0.0)
        self.playing = True
        self.last_timestamp = None

    def pause(self) -> None:
        if not self.playing:
            return
        self.playing = False
        self.last_timestamp = None

    def reset(self) -> None:
        """Pause and rewind to 0%."""
        self.pause()
        self.accumulated_seconds = 0.0
        self.percent = 0.0
        self.last_timestamp = None
        self._emit(0.0)

    def seek_to_percent(self, target: float) -> float:
        """Jump to ``target`` percent (clamped to [0, 100]).

        The change is reported once, directly. Other change notifications are
        suppressed until the next tick so a listener that reacts to the seek
        does not echo it back.
        """
        self._external_change = True
        clamped = max(0.0, min(100.0, float(target)))
        if self.total_duration > 0:
            self.accumulated_seconds = clamped / 100.0 * self.total_duration
        else:
            self.accumulated_seconds = 0.0
        self._update_percent()
        self.on_percent_change(clamped)
        return clamped

    def set_duration(self, duration: float) -> None:
        """Change the total duration, keeping the current proportional position."""
        old = self.total_duration
        if old > 0:
            progress = self.accumulated_seconds / old
            self.total_duration = duration
            self.accumulated_seconds = progress * max(0.0, duration)
        else:
            self.total_duration = duration
            self.accumulated_seconds = min(self.accumulated_seconds, max(0.0, duration))
        self._update_percent()
        self._emit(self.percent)

    def set_loop(self, loop: bool) -> None:
        self.loop = loop

    def is_playing(self) -> bool:
        return self.playing

    def is_looping(self) -> bool:
        return self.loop

    def get_percent(self) -> float:
        self._update_percent()
        return self.percent

    def get_duration(self) -> float:
        return self.total_duration


def run_realtime(
    scheduler: PlaybackScheduler,
    fps: float = DEFAULT_FPS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    max_frames: Optional[int] = None,
) -> int:
    """Drive ``scheduler`` from a real clock until it stops playing.

    Starts playback if needed. A looping scheduler only stops when paused
    from a callback or when ``max_frames`` is reached.

    Args:
        scheduler: The scheduler to pump.
        fps: Target frame rate.
        clock: Seconds source, monotonic.
        sleep: Sleep function, seconds.
        max_frames: Optional cap on ticks.

    Returns:
        Number of ticks delivered.
    """
    frame = 1.0 / fps
    scheduler.play()
    frames = 0
    while scheduler.is_playing():
        if max_frames is not None and frames >= max_frames:
            break
        started = clock()
        scheduler.tick(started)
        frames += 1
        remaining = frame - (clock() - started)
        if remaining > 0:
            sleep(remaining)
    log.debug("Realtime playback stopped after %d frames at %.2f%%", frames, scheduler.get_percent())
    return frames


# -------------------- Pose evaluation --------------------

def active_event(timeline: Sequence, seconds: float):
    """First event whose ``[start_time, end_time]`` contains ``seconds``, else the last."""
    for event in timeline:
        if event.start_time <= seconds <= event.end_time:
            return event
    return timeline[-1]


def _progress(elapsed: float, duration: float) -> float:
    if duration <= 0:
        return 1.0
    return max(0.0, min(1.0, elapsed / duration))


def travel_fraction(elapsed: float, duration: float, length: float, settings: Settings) -> float:
    """Curve parameter reached ``elapsed`` seconds into a travel event.

    Uses the motion profile when configured, else ease-in-out over the event.
    """
    if not settings.uses_motion_profile:
        return ease_in_out_quad(_progress(elapsed, duration))
    if length == 0:
        return 0.0
    profile = motion_profile(length, settings.max_velocity, settings.max_acceleration,
                             settings.max_deceleration)
    dist = profile_distance(profile, max(0.0, min(elapsed, duration)))
    return max(0.0, min(1.0, dist / max(1e-9, length)))


def calculate_robot_state(percent: float, timeline: Sequence, lines: Sequence, start_point,
                          settings: Settings) -> RobotState:
    """Robot pose at ``percent`` of the timeline.

    Headings are field-frame degrees. A segment's start is the previous
    segment (by index) end point, or ``start_point`` for the first.
    """
    if not timeline:
        return RobotState(x=start_point.x, y=start_point.y, heading=0.0)

    total = timeline[-1].end_time
    seconds = percent / 100.0 * total
    event = active_event(timeline, seconds)
    elapsed = seconds - event.start_time

    if isinstance(event, WaitEvent):
        heading = shortest_rotation(event.start_heading, event.target_heading,
                                    _progress(elapsed, event.duration))
        return RobotState(x=event.at_point.x, y=event.at_point.y, heading=heading)

    line = lines[event.line_index]
    prev = start_point if event.line_index == 0 else lines[event.line_index - 1].end_point
    points = segment_points(prev, line.control_points, line.end_point)
    fraction = travel_fraction(elapsed, event.duration, curve_length(points), settings)
    pos = curve_point(fraction, points)
    return RobotState(x=pos.x, y=pos.y, heading=heading_along(line, points, fraction))
