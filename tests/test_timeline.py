import logging
import math

import pytest
from fieldpath.models import (
    ConstantPoint,
    Line,
    LinearPoint,
    PathItem,
    Settings,
    TravelEvent,
    WaitEvent,
    WaitItem,
)
from fieldpath.timeline import (
    animation_duration_ms,
    calculate_path_time,
    default_sequence,
    format_time,
    motion_profile,
    motion_profile_time,
    profile_distance,
)

START = ConstantPoint(x=10, y=10, degrees=0)


def _straight(x, y, degrees=0, **kw):
    return Line(end_point=ConstantPoint(x=x, y=y, degrees=degrees), **kw)


def _assert_contiguous(prediction):
    events = prediction.timeline
    assert events[0].start_time == 0.0
    for prev, nxt in zip(events, events[1:]):
        assert nxt.start_time == pytest.approx(prev.end_time)
    for e in events:
        assert e.end_time == pytest.approx(e.start_time + e.duration)
    assert events[-1].end_time == pytest.approx(prediction.total_time)


# --------------------- Tests for motion_profile_time() ---------------------

def test_trapezoidal_profile_time():
    """Long enough to cruise: accel, cruise, decel phases."""
    expected = 40 / 30 + (100 - 1600 / 60 - 1600 / 60) / 40 + 40 / 30
    assert motion_profile_time(100, 40, 30, 30) == pytest.approx(expected)


def test_triangular_profile_time():
    """Too short to reach max velocity: peak = sqrt(2 L a d / (a + d))."""
    v_peak = math.sqrt(2 * 10 * 30 * 30 / 60)
    assert motion_profile_time(10, 40, 30, 30) == pytest.approx(2 * v_peak / 30)


def test_deceleration_defaults_to_acceleration():
    assert motion_profile_time(100, 40, 30) == pytest.approx(motion_profile_time(100, 40, 30, 30))


def test_asymmetric_profile():
    profile = motion_profile(100, 40, 20, 40)
    assert profile.trapezoidal
    assert profile.acc_time == pytest.approx(2.0)
    assert profile.dec_time == pytest.approx(1.0)


def test_zero_length_profile():
    assert motion_profile_time(0, 40, 30, 30) == 0.0


def test_profile_distance_covers_length():
    for length in (10, 100):
        profile = motion_profile(length, 40, 30, 30)
        assert profile_distance(profile, 0) == 0.0
        assert profile_distance(profile, profile.total_time) == pytest.approx(length)
        assert profile_distance(profile, profile.total_time / 2) == pytest.approx(length / 2)
        # Clamped past the end
        assert profile_distance(profile, profile.total_time + 5) == pytest.approx(length)


# --------------------- Tests for calculate_path_time() ---------------------

def test_single_straight_segment():
    prediction = calculate_path_time(START, [_straight(110, 10)], Settings())
    assert prediction.total_distance == pytest.approx(100.0)
    assert prediction.total_time == pytest.approx(motion_profile_time(100, 40, 30, 30))
    assert len(prediction.timeline) == 1
    event = prediction.timeline[0]
    assert isinstance(event, TravelEvent)
    assert event.line_index == 0


def test_rotation_wait_between_segments():
    """A 90 degree heading change at pi rad/s costs half a second."""
    lines = [_straight(110, 10, 0), _straight(110, 110, 90)]
    prediction = calculate_path_time(START, lines, Settings())

    kinds = [e.type for e in prediction.timeline]
    assert kinds == ["travel", "wait", "travel"]
    rotation = prediction.timeline[1]
    assert rotation.duration == pytest.approx(0.5)
    assert (rotation.start_heading, rotation.target_heading) == (0, 90)
    assert (rotation.at_point.x, rotation.at_point.y) == (110, 10)
    _assert_contiguous(prediction)


def test_first_segment_heading_overrides_start():
    """No rotation is inserted before the first path item."""
    prediction = calculate_path_time(START, [_straight(110, 10, 45)], Settings())
    assert [e.type for e in prediction.timeline] == ["travel"]


def test_small_heading_change_is_not_a_wait():
    lines = [_straight(110, 10, 0), _straight(110, 110, 0.05)]
    prediction = calculate_path_time(START, lines, Settings())
    assert [e.type for e in prediction.timeline] == ["travel", "travel"]


def test_explicit_sequence_waits_and_unknown_ids(caplog):
    lines = [_straight(110, 10, id="a"), _straight(110, 110, 0, id="b")]
    sequence = [
        PathItem(line_id="a"),
        WaitItem(name="Score", duration_ms=500),
        WaitItem(duration_ms=0),
        PathItem(line_id="missing"),
        PathItem(line_id="b"),
    ]
    with caplog.at_level(logging.DEBUG, logger="fieldpath.timeline"):
        prediction = calculate_path_time(START, lines, Settings(), sequence)

    assert [e.type for e in prediction.timeline] == ["travel", "wait", "travel"]
    wait = prediction.timeline[1]
    assert isinstance(wait, WaitEvent)
    assert wait.duration == pytest.approx(0.5)
    assert wait.name == "Score"
    assert wait.start_heading == wait.target_heading
    assert "missing" in caplog.text
    assert len(prediction.segment_times) == 2
    _assert_contiguous(prediction)


def test_sequence_can_reorder_segments():
    lines = [_straight(110, 10, id="a"), _straight(10, 10, id="b")]
    prediction = calculate_path_time(START, lines, Settings(), [PathItem(line_id="b"), PathItem(line_id="a")])
    indices = [e.line_index for e in prediction.timeline if e.type == "travel"]
    assert indices == [1, 0]
    # b starts at the start point itself
    assert prediction.segment_times[0] == 0.0


def test_segment_waits_expand_without_sequence():
    lines = [_straight(110, 10, wait_before_ms=200, wait_after_ms=300, wait_after_name="Drop")]
    prediction = calculate_path_time(START, lines, Settings())
    assert [e.type for e in prediction.timeline] == ["wait", "travel", "wait"]
    before, _, after = prediction.timeline
    assert before.wait_position == "before" and before.duration == pytest.approx(0.2)
    assert after.wait_position == "after" and after.name == "Drop"
    assert (after.at_point.x, after.at_point.y) == (110, 10)
    _assert_contiguous(prediction)


def test_default_sequence_skips_empty_waits():
    lines = [_straight(110, 10, id="a", wait_before_ms=0, wait_after_ms=-5)]
    seq = default_sequence(lines)
    assert len(seq) == 1 and seq[0].line_id == "a"


def test_fallback_without_motion_profile():
    """Without a profile the mean of the axis velocities is used."""
    settings = Settings(max_velocity=None, x_velocity=20, y_velocity=30)
    prediction = calculate_path_time(START, [_straight(110, 10)], settings)
    assert prediction.total_time == pytest.approx(100 / 25)


def test_zero_length_segment_has_zero_time():
    prediction = calculate_path_time(START, [_straight(10, 10)], Settings())
    assert prediction.total_time == 0.0
    assert prediction.timeline[0].duration == 0.0


def test_linear_heading_chain_is_contiguous():
    lines = [
        Line(end_point=LinearPoint(x=56, y=36, start_deg=90, end_deg=180)),
        Line(end_point=LinearPoint(x=100, y=36, start_deg=0, end_deg=45),
             control_points=[{"x": 80, "y": 60}]),
        _straight(100, 100, 270, wait_after_ms=1000),
    ]
    start = LinearPoint(x=56, y=8, start_deg=90, end_deg=180)
    prediction = calculate_path_time(start, lines, Settings())
    _assert_contiguous(prediction)
    assert prediction.total_time == pytest.approx(
        sum(prediction.segment_times) + sum(e.duration for e in prediction.timeline if e.type == "wait")
    )


def test_empty_path():
    prediction = calculate_path_time(START, [], Settings())
    assert prediction.total_time == 0.0
    assert prediction.timeline == []


# --------------------- Tests for formatting helpers ---------------------

def test_format_time():
    assert format_time(0) == "0.000s"
    assert format_time(-1) == "0.000s"
    assert format_time(3.9333) == "3.933s"
    assert format_time(65.25) == "1:05.250s"


def test_animation_duration_ms():
    assert animation_duration_ms(2.0) == 2000.0
    assert animation_duration_ms(2.0, speed_factor=2.0) == 1000.0


# --------------------- Tests for the package-level helper ---------------------

def test_predict_path_time_uses_default_settings():
    from fieldpath import get_default_settings, predict_path_time

    assert get_default_settings() is get_default_settings()
    prediction = predict_path_time(START, [_straight(110, 10)])
    assert prediction.total_time == pytest.approx(motion_profile_time(100, 40, 30, 30))
