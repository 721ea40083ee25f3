from .curve import CubicBezierCurve, curve_length, curve_point
from .geometry import Point2D, build_rectangle, minimum_separating_width
from .models import (
    ConstantPoint,
    Line,
    LinearPoint,
    PathItem,
    RobotState,
    Settings,
    Shape,
    TangentialPoint,
    TimePrediction,
    WaitItem,
    load_settings,
)
from .optimizer import BoundedOptimizer, ConstantHeadingSolver, SolutionPoint
from .planner import find_path_around_obstacles, is_path_clear
from .playback import PlaybackScheduler, calculate_robot_state, run_realtime
from .timeline import calculate_path_time, motion_profile_time

_default_settings = None

def get_default_settings() -> Settings:
    """Get the shared default settings instance."""
    global _default_settings
    if _default_settings is None:
        _default_settings = Settings()
    return _default_settings

def predict_path_time(start_point, lines, settings=None, sequence=None) -> TimePrediction:
    """
    Convenience function to time a path.
    Falls back to the default settings when none are given.
    """
    return calculate_path_time(start_point, lines, settings or get_default_settings(), sequence)
