"""
Waypoint data model shared by the pattern generators and the mission assembler.

All values are immutable once emitted; edits produce new values through
dataclasses.replace().
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, Optional, Sequence, Tuple

from .transforms import LocalCoordinate, local_distance

PREVIEW_LIMIT = 50


class WaypointType(Enum):
    TAKEOFF = "takeoff"
    SCAN = "scan"
    ORBIT = "orbit"
    SPIRAL = "spiral"
    FACADE = "facade"
    RTL = "rtl"
    CUSTOM = "custom"


class PatternType(Enum):
    GRID = "grid"
    ORBIT = "orbit"
    SPIRAL = "spiral"
    FACADE = "facade"


@dataclass(frozen=True)
class CameraDirective:
    """
    Gimbal orientation at a waypoint.

    Attributes:
        heading: Degrees counter-clockwise from local east, in [0, 360)
        pitch: Degrees, 0 = horizon, -90 = straight down
        roll: Degrees
        look_at: Optional point the camera should track instead of a fixed heading
    """
    heading: float
    pitch: float
    roll: float = 0.0
    look_at: Optional[LocalCoordinate] = None


@dataclass(frozen=True)
class Waypoint:
    position: LocalCoordinate
    type: WaypointType
    label: str
    camera: Optional[CameraDirective] = None
    speed: Optional[float] = None  # m/s override

    @property
    def altitude(self) -> float:
        return self.position.up

    def with_speed(self, speed: float) -> "Waypoint":
        return replace(self, speed=speed)


@dataclass(frozen=True)
class PathSegment:
    """
    Ordered waypoints produced by one pattern generator call.

    Attributes:
        pattern: Generator family that produced the waypoints
        waypoints: Waypoints in flight order
        parameters: Parameter object the generator was called with
        line_spacing: Distance between adjacent lines/passes, if applicable
        trigger_distance: Camera trigger distance along lines, if applicable
    """
    pattern: PatternType
    waypoints: Tuple[Waypoint, ...]
    parameters: Any = None
    line_spacing: Optional[float] = None
    trigger_distance: Optional[float] = None
    metadata: dict = field(default_factory=dict, compare=False)

    def __len__(self) -> int:
        return len(self.waypoints)

    def __iter__(self) -> Iterator[Waypoint]:
        return iter(self.waypoints)

    def __getitem__(self, index):
        return self.waypoints[index]

    @property
    def positions(self) -> Tuple[LocalCoordinate, ...]:
        return tuple(wp.position for wp in self.waypoints)

    def distance(self) -> float:
        """Flight distance along the segment in meters."""
        return path_distance(self.positions)

    def preview(self, limit: int = PREVIEW_LIMIT) -> Tuple[Waypoint, ...]:
        """
        Evenly down-sampled waypoints for display.

        The last waypoint is always kept so the preview ends where the
        segment ends.
        """
        return downsample(self.waypoints, limit)


def path_distance(positions: Sequence[LocalCoordinate]) -> float:
    """Sum of straight-line leg lengths through the given positions."""
    return sum(local_distance(a, b) for a, b in zip(positions, positions[1:]))


def downsample(items: Sequence, limit: int = PREVIEW_LIMIT) -> tuple:
    if limit < 1:
        raise ValueError(f"Preview limit must be at least 1, got {limit}")
    if len(items) <= limit:
        return tuple(items)

    step = math.ceil(len(items) / limit)
    sampled = list(items[::step])
    if (len(items) - 1) % step:
        sampled.append(items[-1])
    return tuple(sampled)


def heading_toward(position: LocalCoordinate, target: LocalCoordinate) -> float:
    """Heading in degrees from position toward target, in [0, 360)."""
    angle = math.degrees(math.atan2(target.north - position.north, target.east - position.east))
    heading = angle % 360.0
    return 0.0 if heading >= 360.0 else heading
