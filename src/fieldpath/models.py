"""Path, settings and timeline data model.

Models mirror the editor's JSON snapshots: fields are snake_case in Python and
camelCase on the wire (``startDeg``, ``controlPoints``, ``maxVelocity``...).
All models are frozen; the core never mutates the data it is handed.

Heading variants are a tagged union on ``heading``:

- ``linear``: interpolate ``start_deg`` -> ``end_deg`` across the segment.
- ``constant``: hold ``degrees``.
- ``tangential``: follow the curve tangent, optionally ``reverse``d.
"""

from __future__ import annotations

import json
import math
import uuid
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEFAULT_ROBOT_WIDTH = 16.0
DEFAULT_ROBOT_HEIGHT = 16.0


class FieldModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class BasePoint(FieldModel):
    x: float
    y: float
    locked: bool = False


ControlPoint = BasePoint


class LinearPoint(BasePoint):
    heading: Literal["linear"] = "linear"
    start_deg: float
    end_deg: float


class ConstantPoint(BasePoint):
    heading: Literal["constant"] = "constant"
    degrees: float


class TangentialPoint(BasePoint):
    heading: Literal["tangential"] = "tangential"
    reverse: bool = False


Point = Annotated[
    Union[LinearPoint, ConstantPoint, TangentialPoint],
    Field(discriminator="heading"),
]


def _line_id() -> str:
    return f"line-{uuid.uuid4().hex[:10]}"


class Line(FieldModel):
    """One travel leg. Its start is the previous leg's end point."""

    id: str = Field(default_factory=_line_id)
    end_point: Point
    control_points: List[ControlPoint] = Field(default_factory=list, max_length=2)
    name: Optional[str] = None
    color: Optional[str] = None
    locked: bool = False
    wait_before_ms: float = 0.0
    wait_after_ms: float = 0.0
    wait_before_name: Optional[str] = None
    wait_after_name: Optional[str] = None


class PathItem(FieldModel):
    kind: Literal["path"] = "path"
    line_id: str


class WaitItem(FieldModel):
    kind: Literal["wait"] = "wait"
    id: str = Field(default_factory=lambda: f"wait-{uuid.uuid4().hex[:10]}")
    name: Optional[str] = None
    duration_ms: float
    locked: bool = False
    position: Optional[Literal["before", "after"]] = None


SequenceItem = Annotated[Union[PathItem, WaitItem], Field(discriminator="kind")]


class Shape(FieldModel):
    """User-authored static obstacle polygon."""

    id: str = Field(default_factory=lambda: f"shape-{uuid.uuid4().hex[:10]}")
    name: Optional[str] = None
    vertices: List[BasePoint]
    color: Optional[str] = None
    fill_color: Optional[str] = None


class Settings(FieldModel):
    """Motion constraints and robot footprint.

    Velocities are inches/s, accelerations inches/s^2 and ``a_velocity`` is
    rad/s. Anything used as a divisor must be positive. ``max_deceleration``
    falls back to ``max_acceleration`` when unset. ``onion_layer_spacing`` is
    the editor's footprint spacing in inches for :func:`onion_layers`.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    x_velocity: float = Field(30.0, gt=0)
    y_velocity: float = Field(30.0, gt=0)
    a_velocity: float = Field(math.pi, gt=0)
    k_friction: float = Field(0.4, ge=0)
    r_width: float = Field(DEFAULT_ROBOT_WIDTH, gt=0)
    r_height: float = Field(DEFAULT_ROBOT_HEIGHT, gt=0)
    safety_margin: float = Field(1.0, ge=0)
    max_velocity: Optional[float] = Field(40.0, gt=0)
    max_acceleration: Optional[float] = Field(30.0, gt=0)
    max_deceleration: Optional[float] = Field(30.0, gt=0)
    onion_layer_spacing: float = Field(3.0, gt=0)

    @property
    def deceleration(self) -> Optional[float]:
        return self.max_deceleration or self.max_acceleration

    @property
    def uses_motion_profile(self) -> bool:
        return self.max_velocity is not None and self.max_acceleration is not None

    @property
    def robot_radius(self) -> float:
        """Half the footprint diagonal plus the safety margin."""
        return math.hypot(self.r_width, self.r_height) / 2.0 + self.safety_margin


SETTINGS_KEYS = frozenset(
    [name for name in Settings.model_fields]
    + [f.alias for f in Settings.model_fields.values() if f.alias]
)


def load_settings(filepath: str) -> Settings:
    """Load settings from a JSON file, merged over the defaults.

    Keys may be snake_case or camelCase. Editor-only display keys are not
    accepted here; a settings file should hold motion constraints only.

    Raises:
        ValueError: On keys that are not settings.
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If a value is out of range.
    """
    with open(filepath, "r") as f:
        data = json.load(f)

    unknown = set(data.keys()) - SETTINGS_KEYS
    if unknown:
        raise ValueError(f"Unknown settings in file: {sorted(unknown)}")
    return Settings.model_validate(data)


# -------------------- Timeline / outputs --------------------

class TravelEvent(FieldModel):
    type: Literal["travel"] = "travel"
    duration: float
    start_time: float
    end_time: float
    line_index: int


class WaitEvent(FieldModel):
    type: Literal["wait"] = "wait"
    duration: float
    start_time: float
    end_time: float
    start_heading: float
    target_heading: float
    at_point: BasePoint
    name: Optional[str] = None
    wait_position: Optional[Literal["before", "after"]] = None


TimelineEvent = Annotated[Union[TravelEvent, WaitEvent], Field(discriminator="type")]


class TimePrediction(FieldModel):
    total_time: float
    segment_times: List[float]
    total_distance: float
    timeline: List[TimelineEvent]


class RobotState(FieldModel):
    x: float
    y: float
    heading: float


# -------------------- Defaults / factories --------------------

def default_start_point() -> LinearPoint:
    return LinearPoint(x=56, y=8, start_deg=90, end_deg=180)


def default_lines() -> List[Line]:
    return [Line(
        name="Path 1",
        end_point=LinearPoint(x=56, y=36, start_deg=90, end_deg=180),
    )]


def create_triangle(existing: int = 0) -> Shape:
    return Shape(
        id=f"triangle-{existing + 1}",
        vertices=[BasePoint(x=60, y=60), BasePoint(x=84, y=60), BasePoint(x=72, y=84)],
    )


def create_rectangle(existing: int = 0) -> Shape:
    return Shape(
        id=f"rectangle-{existing + 1}",
        name=f"Obstacle {existing + 1}",
        vertices=[BasePoint(x=30, y=30), BasePoint(x=60, y=30),
                  BasePoint(x=60, y=50), BasePoint(x=30, y=50)],
    )


def create_ngon(sides: int, existing: int = 0, center=(45.0, 45.0), radius: float = 15.0) -> Shape:
    """Regular polygon obstacle; ``sides`` must be at least 3."""
    if sides < 3:
        raise ValueError("An obstacle needs at least 3 sides")
    cx, cy = center
    vertices = [
        BasePoint(x=cx + radius * math.cos(2 * math.pi * i / sides),
                  y=cy + radius * math.sin(2 * math.pi * i / sides))
        for i in range(sides)
    ]
    return Shape(id=f"{sides}-gon-{existing + 1}", name=f"Obstacle {existing + 1}", vertices=vertices)
