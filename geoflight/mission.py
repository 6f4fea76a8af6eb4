"""
Mission assembly module.

Turns generated pattern waypoints into a flyable, ordered mission:
    1. Snapshot the active reference frame
    2. Prepend a takeoff climb above the launch point (optional)
    3. Append the pattern waypoints in emitted order at cruise speed
    4. Append a return-to-launch waypoint (optional)
    5. Tag every waypoint with its geodetic position
    6. Compute total path distance and estimated flight time

The mission keeps the ReferenceFrame it was assembled in, so a later origin
change can be detected (Mission.is_stale) and the geometry re-projected.
"""

import math
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging

from .config import MissionDefaults
from .errors import EmptyPatternError, NoReferenceFrameError
from .reference_frame import OriginManager, ReferenceFrame
from .transforms import GeodeticCoordinate, LocalCoordinate, local_distance
from .waypoints import PathSegment, Waypoint, WaypointType, downsample, PREVIEW_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissionOptions:
    """
    Assembly options.

    Attributes:
        start_position: Launch point in the local frame
        include_takeoff: Prepend a climb to initial_altitude above start_position
        include_return: Append a return-to-launch at initial_altitude
        initial_altitude: Takeoff/RTL altitude in meters
        max_transit_speed: RTL speed in m/s; takeoff uses half of it
        mission_speed: Cruise speed in m/s applied to every pattern waypoint
    """
    start_position: LocalCoordinate = LocalCoordinate(0.0, 0.0, 0.0)
    include_takeoff: bool = True
    include_return: bool = True
    initial_altitude: float = 30.0
    max_transit_speed: float = 8.0
    mission_speed: float = 5.0

    def __post_init__(self):
        for name in ("max_transit_speed", "mission_speed"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value}")
        if not math.isfinite(self.initial_altitude):
            raise ValueError(f"initial_altitude must be finite, got {self.initial_altitude}")

    @classmethod
    def from_config(cls, defaults: MissionDefaults, **kwargs) -> "MissionOptions":
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in asdict(defaults).items() if k in names}
        values.update(kwargs)
        return cls(**values)


@dataclass(frozen=True)
class MissionWaypoint:
    """A mission waypoint with its sequence number and geodetic position."""
    sequence: int
    waypoint: Waypoint
    geodetic: GeodeticCoordinate

    @property
    def position(self) -> LocalCoordinate:
        return self.waypoint.position

    @property
    def type(self) -> WaypointType:
        return self.waypoint.type

    @property
    def label(self) -> str:
        return self.waypoint.label

    @property
    def speed(self) -> Optional[float]:
        return self.waypoint.speed

    def to_record(self) -> Dict[str, Any]:
        """Flat dictionary for export and telemetry correlation."""
        camera = self.waypoint.camera
        return {
            'sequence': self.sequence,
            'type': self.type.value,
            'label': self.label,
            'east': self.position.east,
            'north': self.position.north,
            'up': self.position.up,
            'latitude': self.geodetic.latitude,
            'longitude': self.geodetic.longitude,
            'altitude': self.geodetic.altitude,
            'speed': self.speed,
            'heading': camera.heading if camera else None,
            'pitch': camera.pitch if camera else None,
            'roll': camera.roll if camera else None,
        }


@dataclass(frozen=True)
class Mission:
    """
    Ordered, geodetically tagged waypoints ready for upload or display.

    Attributes:
        waypoints: Mission waypoints in flight order
        frame: Reference frame the local positions belong to
        total_distance: Path length in meters
        estimated_duration: Flight time in seconds at the waypoint speeds
    """
    waypoints: Tuple[MissionWaypoint, ...]
    frame: ReferenceFrame
    total_distance: float
    estimated_duration: float

    def __len__(self) -> int:
        return len(self.waypoints)

    def __iter__(self) -> Iterator[MissionWaypoint]:
        return iter(self.waypoints)

    def __getitem__(self, index) -> MissionWaypoint:
        return self.waypoints[index]

    @property
    def positions(self) -> Tuple[LocalCoordinate, ...]:
        return tuple(mw.position for mw in self.waypoints)

    def is_stale(self, manager: OriginManager) -> bool:
        """True if the manager's origin changed since this mission was assembled."""
        return not manager.is_current(self.frame)

    def reproject(self, target: ReferenceFrame) -> "Mission":
        """
        Re-express local positions in another frame.

        Geodetic positions, distance and duration are unchanged.
        """
        waypoints = tuple(
            replace(mw, waypoint=replace(mw.waypoint, position=self.frame.reproject(mw.position, target)))
            for mw in self.waypoints
        )
        return replace(self, waypoints=waypoints, frame=target)

    def preview(self, limit: int = PREVIEW_LIMIT) -> Tuple[MissionWaypoint, ...]:
        return downsample(self.waypoints, limit)

    def to_records(self) -> List[Dict[str, Any]]:
        return [mw.to_record() for mw in self.waypoints]


def estimate_duration(waypoints: Sequence[Waypoint], default_speed: float) -> float:
    """
    Flight time in seconds.

    Each leg is flown at the speed of the waypoint it leads to, or
    default_speed when that waypoint has no override.
    """
    duration = 0.0
    for a, b in zip(waypoints, waypoints[1:]):
        speed = b.speed if b.speed else default_speed
        duration += local_distance(a.position, b.position) / speed
    return duration


class MissionAssembler:
    """
    Wraps pattern output into a mission.

    Example usage:
        manager = OriginManager(GeodeticCoordinate(37.7749, -122.4194, 0.0))
        assembler = MissionAssembler(manager)
        mission = assembler.assemble(generator.generate(orbit_params))
        for mw in mission:
            print(mw.sequence, mw.label, mw.geodetic)
    """

    def __init__(self, frame_source: Union[ReferenceFrame, OriginManager, None]):
        self.frame_source = frame_source

    def _snapshot(self) -> ReferenceFrame:
        if isinstance(self.frame_source, OriginManager):
            return self.frame_source.frame
        if self.frame_source is None:
            raise NoReferenceFrameError("No reference frame available for mission assembly")
        return self.frame_source

    @staticmethod
    def _collect(patterns) -> List[Waypoint]:
        if isinstance(patterns, PathSegment):
            return list(patterns.waypoints)

        collected = []
        for item in patterns or ():
            if isinstance(item, PathSegment):
                collected.extend(item.waypoints)
            else:
                collected.append(item)
        return collected

    def assemble(
        self,
        patterns: Union[PathSegment, Sequence[PathSegment], Sequence[Waypoint]],
        options: Optional[MissionOptions] = None,
    ) -> Mission:
        """
        Build a mission from pattern waypoints.

        Args:
            patterns: One PathSegment, several segments flown in order, or a
                plain waypoint sequence
            options: Assembly options (defaults if None)

        Returns:
            Mission ordered [takeoff?] -> pattern waypoints -> [return-to-launch?]
        """
        options = options or MissionOptions()
        frame = self._snapshot()

        pattern_waypoints = self._collect(patterns)
        if not pattern_waypoints:
            raise EmptyPatternError("No pattern waypoints to assemble")

        start = options.start_position
        launch_hover = LocalCoordinate(start.east, start.north, options.initial_altitude)

        sequence: List[Waypoint] = []
        if options.include_takeoff:
            sequence.append(Waypoint(
                position=launch_hover,
                type=WaypointType.TAKEOFF,
                label="Takeoff",
                speed=options.max_transit_speed / 2,
            ))

        sequence.extend(wp.with_speed(options.mission_speed) for wp in pattern_waypoints)

        if options.include_return:
            sequence.append(Waypoint(
                position=launch_hover,
                type=WaypointType.RTL,
                label="Return to Home",
                speed=options.max_transit_speed,
            ))

        waypoints = tuple(
            MissionWaypoint(sequence=i, waypoint=wp, geodetic=frame.to_geodetic(wp.position))
            for i, wp in enumerate(sequence)
        )
        total_distance = sum(
            local_distance(a.position, b.position) for a, b in zip(sequence, sequence[1:])
        )
        duration = estimate_duration(sequence, options.mission_speed)

        logger.info(
            f"Assembled {len(waypoints)} waypoints ({len(pattern_waypoints)} from patterns) "
            f"in frame {frame.generation}: {total_distance:.1f} m, {duration / 60:.1f} min"
        )
        return Mission(
            waypoints=waypoints,
            frame=frame,
            total_distance=total_distance,
            estimated_duration=duration,
        )
