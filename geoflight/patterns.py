"""
Parametric flight pattern generation in the local ENU frame.

Four pattern families are supported:
    1. Grid (boustrophedon raster) over a rectangle or an arbitrary polygon
    2. Orbit around a point, optionally several stacked orbits
    3. Spiral with interpolated radius and altitude
    4. Façade scan around a building footprint

Each generator takes a frozen parameter object and returns a PathSegment.
Malformed input raises InvalidGeometryError; valid input that produces no
waypoints raises EmptyPatternError.

Conventions:
    - Angles of positions are measured counter-clockwise from local east
    - Camera headings use the same convention, normalized to [0, 360)
    - Pitch 0 is horizontal, -90 is nadir
"""

import math
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
from shapely import affinity
from shapely.geometry import LineString, Polygon
from shapely.geometry.polygon import orient

from .errors import EmptyPatternError, InvalidGeometryError
from .optics import OpticsCalculator, facade_vertical_spacing
from .transforms import LocalCoordinate
from .waypoints import (
    CameraDirective,
    PathSegment,
    PatternType,
    Waypoint,
    WaypointType,
    heading_toward,
)

logger = logging.getLogger(__name__)

NADIR_PITCH = -90.0


class CameraMode(Enum):
    """How the camera heading is chosen along orbits and spirals."""
    CENTER = "center"  # face the pattern center
    FORWARD = "forward"  # face the direction of travel
    CUSTOM = "custom"  # fixed camera_heading


class _DefaultsMixin:

    @classmethod
    def from_defaults(cls, defaults, **kwargs):
        """
        Build parameters from a PlannerConfig section plus explicit values.

        Section fields that the parameter class does not have are ignored.
        """
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in asdict(defaults).items() if k in names}
        values.update(kwargs)
        return cls(**values)


@dataclass(frozen=True)
class RectangleGridParams(_DefaultsMixin):
    """
    Rectangular survey area.

    Flight lines run parallel to the height axis and are stepped across the
    width. rotation turns the rectangle counter-clockwise about origin.
    line_spacing/trigger_distance override the camera-derived values.
    """
    origin: LocalCoordinate
    width: float
    height: float
    altitude: float
    rotation: float = 0.0
    front_overlap: float = 75.0
    side_overlap: float = 65.0
    line_spacing: Optional[float] = None
    trigger_distance: Optional[float] = None


@dataclass(frozen=True)
class PolygonGridParams(_DefaultsMixin):
    """
    Irregular survey area given by its corners.

    Lines follow the long side of the minimum rotated rectangle; clipped
    segments shorter than min_segment_length are dropped.
    """
    corners: Tuple[LocalCoordinate, ...]
    altitude: float
    front_overlap: float = 75.0
    side_overlap: float = 65.0
    line_spacing: Optional[float] = None
    trigger_distance: Optional[float] = None
    min_segment_length: float = 0.5


@dataclass(frozen=True)
class OrbitParams(_DefaultsMixin):
    center: LocalCoordinate
    radius: float
    altitude: float
    segments: int = 16
    start_angle: float = 0.0  # degrees, 0 = east, 90 = north
    end_angle: float = 360.0
    orbits: int = 1
    vertical_shift: float = 0.0  # meters added per orbit
    camera_mode: CameraMode = CameraMode.CENTER
    camera_heading: float = 0.0  # used by CameraMode.CUSTOM
    camera_pitch: float = -45.0


@dataclass(frozen=True)
class SpiralParams(_DefaultsMixin):
    center: LocalCoordinate
    start_radius: float
    end_radius: float
    start_altitude: float
    end_altitude: float
    revolutions: float = 3.0
    points_per_revolution: int = 20
    start_angle: float = 0.0
    camera_mode: CameraMode = CameraMode.FORWARD
    camera_heading: float = 0.0
    camera_pitch: float = -45.0


@dataclass(frozen=True)
class FacadeParams(_DefaultsMixin):
    """
    Building façade scan.

    Passes are flown at base_altitude, base_altitude + step, ... as long as
    the altitude does not exceed base_altitude + building_height.
    """
    corners: Tuple[LocalCoordinate, ...]
    building_height: float
    standoff: float = 5.0
    vertical_overlap: float = 20.0
    base_altitude: float = 10.0
    fallback_fov: float = 70.0  # vertical FOV used without a camera
    min_wall_length: float = 1.0
    alternate_direction: bool = True


def _require_finite(name: str, value: float) -> None:
    if value is None or not math.isfinite(value):
        raise InvalidGeometryError(f"{name} must be finite, got {value}")


def _require_positive(name: str, value: float) -> None:
    _require_finite(name, value)
    if value <= 0:
        raise InvalidGeometryError(f"{name} must be positive, got {value}")


def _forward_headings(positions: Sequence[LocalCoordinate]) -> List[float]:
    """Heading from each position toward the next; the last repeats the previous."""
    headings = [heading_toward(a, b) for a, b in zip(positions, positions[1:])]
    headings.append(headings[-1] if headings else 0.0)
    return headings


def _closed_ring(corners: Sequence[LocalCoordinate], what: str) -> List[Tuple[float, float]]:
    """Corner list as (east, north) tuples without a repeated closing corner."""
    if corners is None or len(corners) < 3:
        raise InvalidGeometryError(f"{what} needs at least 3 corners, got {0 if corners is None else len(corners)}")

    ring = [(c.east, c.north) for c in corners]
    for east, north in ring:
        _require_finite(f"{what} corner", east)
        _require_finite(f"{what} corner", north)

    if len(ring) > 3 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def facade_corners_for_footprint(
    center: LocalCoordinate,
    width: float,
    depth: Optional[float] = None,
    orientation: float = 0.0,
) -> Tuple[LocalCoordinate, ...]:
    """
    Corners of a rectangular building footprint, counter-clockwise.

    Args:
        center: Center of the building base
        width: Extent along the building's own x axis in meters
        depth: Extent along its y axis (square footprint if None)
        orientation: Counter-clockwise rotation in degrees (0 = facing east)

    Returns:
        Four corners at ground level
    """
    _require_positive("Building width", width)
    depth = width if depth is None else depth
    _require_positive("Building depth", depth)

    half_w, half_d = width / 2, depth / 2
    rot = math.radians(orientation)
    c, s = math.cos(rot), math.sin(rot)

    corners = []
    for x, y in ((-half_w, -half_d), (half_w, -half_d), (half_w, half_d), (-half_w, half_d)):
        corners.append(LocalCoordinate(
            center.east + x * c - y * s,
            center.north + x * s + y * c,
            0.0,
        ))
    return tuple(corners)


class PatternGenerator:
    """
    Generates waypoint sequences for survey patterns.

    When an OpticsCalculator is supplied, grid line spacing, trigger distance
    and façade pass spacing are derived from the camera footprint. Without
    one, grids need an explicit line_spacing and façades use the fallback
    vertical FOV.

    Example usage:
        generator = PatternGenerator(optics)
        segment = generator.generate(OrbitParams(LocalCoordinate(0, 0), 20.0, 30.0))
        for wp in segment:
            print(wp.label, wp.position)
    """

    def __init__(self, optics: Optional[OpticsCalculator] = None):
        self.optics = optics

    def generate(self, params) -> PathSegment:
        """Dispatch to the generator matching the parameter type."""
        if isinstance(params, RectangleGridParams):
            return self.generate_grid(params)
        if isinstance(params, PolygonGridParams):
            return self.generate_polygon_grid(params)
        if isinstance(params, OrbitParams):
            return self.generate_orbit(params)
        if isinstance(params, SpiralParams):
            return self.generate_spiral(params)
        if isinstance(params, FacadeParams):
            return self.generate_facade(params)
        raise TypeError(f"Unsupported pattern parameters: {type(params).__name__}")

    def _grid_spacing(self, params) -> Tuple[float, Optional[float]]:
        """Line spacing and trigger distance for a grid at params.altitude."""
        line_spacing = params.line_spacing
        trigger = params.trigger_distance

        if self.optics is not None and (line_spacing is None or trigger is None):
            spacing = self.optics.spacing(params.altitude, params.front_overlap, params.side_overlap)
            line_spacing = spacing.side if line_spacing is None else line_spacing
            trigger = spacing.forward if trigger is None else trigger

        if line_spacing is None:
            raise InvalidGeometryError("Grid line spacing needs a camera or an explicit line_spacing")
        _require_positive("Line spacing", line_spacing)
        return line_spacing, trigger

    def generate_grid(self, params: RectangleGridParams) -> PathSegment:
        """
        Boustrophedon lines over a rectangle.

        With width W and line spacing S, ceil(W/S) + 1 lines are flown at
        offsets min(k*S, W) so the far edge is always covered. Every waypoint
        is at exactly params.altitude.
        """
        _require_positive("Grid width", params.width)
        _require_positive("Grid height", params.height)
        _require_finite("Grid altitude", params.altitude)
        _require_finite("Grid rotation", params.rotation)
        spacing, trigger = self._grid_spacing(params)

        rot = math.radians(params.rotation)
        c, s = math.cos(rot), math.sin(rot)

        def to_local(x: float, y: float) -> LocalCoordinate:
            return LocalCoordinate(
                params.origin.east + x * c - y * s,
                params.origin.north + x * s + y * c,
                params.altitude,
            )

        # W/S can land just above an integer, e.g. 21 / 1.4
        line_count = math.ceil(params.width / spacing - 1e-9) + 1
        positions = []
        labels = []
        for k in range(line_count):
            x = min(k * spacing, params.width)
            ys = (0.0, params.height) if k % 2 == 0 else (params.height, 0.0)
            positions.append(to_local(x, ys[0]))
            positions.append(to_local(x, ys[1]))
            labels.extend([f"Line {k + 1} Start", f"Line {k + 1} End"])

        waypoints = self._scan_waypoints(positions, labels)
        logger.info(
            f"Grid: {line_count} lines, spacing {spacing:.2f} m, "
            f"{len(waypoints)} waypoints at {params.altitude:.1f} m"
        )
        return PathSegment(
            pattern=PatternType.GRID,
            waypoints=tuple(waypoints),
            parameters=params,
            line_spacing=spacing,
            trigger_distance=trigger,
        )

    def generate_polygon_grid(self, params: PolygonGridParams) -> PathSegment:
        """
        Boustrophedon lines clipped to a polygon.

        The polygon is rotated about its centroid so the long side of its
        minimum rotated rectangle is horizontal, swept with horizontal lines
        starting half a spacing inside the bounds, and each clipped segment is
        rotated back. Segments are ordered by line index and alternate
        direction line by line.
        """
        ring = _closed_ring(params.corners, "Grid polygon")
        _require_finite("Grid altitude", params.altitude)

        polygon = Polygon(ring)
        if not polygon.is_valid or polygon.area <= 0:
            raise InvalidGeometryError("Grid polygon is self-intersecting or has zero area")

        spacing, trigger = self._grid_spacing(params)

        theta = self._principal_angle(polygon)
        centroid = polygon.centroid
        aligned = affinity.rotate(polygon, -theta, origin=centroid)
        min_x, min_y, max_x, max_y = aligned.bounds

        positions = []
        labels = []
        line_index = 0
        dropped = 0
        y = min_y + spacing / 2
        while y < max_y:
            sweepline = LineString([(min_x - 1.0, y), (max_x + 1.0, y)])
            segments, short = self._clip_segments(sweepline.intersection(aligned), params.min_segment_length)
            dropped += short

            if segments:
                forward = line_index % 2 == 0
                if not forward:
                    segments.reverse()
                for seg_index, (x0, x1) in enumerate(segments):
                    start, end = (x0, x1) if forward else (x1, x0)
                    restored = affinity.rotate(LineString([(start, y), (end, y)]), theta, origin=centroid)
                    (e0, n0), (e1, n1) = restored.coords
                    positions.append(LocalCoordinate(e0, n0, params.altitude))
                    positions.append(LocalCoordinate(e1, n1, params.altitude))
                    suffix = f".{seg_index + 1}" if len(segments) > 1 else ""
                    labels.extend([
                        f"Line {line_index + 1}{suffix} Start",
                        f"Line {line_index + 1}{suffix} End",
                    ])
                line_index += 1
            y += spacing

        if dropped:
            logger.warning(f"Dropped {dropped} grid segments shorter than {params.min_segment_length} m")
        if not positions:
            raise EmptyPatternError(
                f"Polygon is narrower than half a line spacing ({spacing:.2f} m); no lines to fly"
            )

        waypoints = self._scan_waypoints(positions, labels)
        logger.info(
            f"Polygon grid: {line_index} lines at {theta:.1f} deg, spacing {spacing:.2f} m, "
            f"{len(waypoints)} waypoints"
        )
        return PathSegment(
            pattern=PatternType.GRID,
            waypoints=tuple(waypoints),
            parameters=params,
            line_spacing=spacing,
            trigger_distance=trigger,
            metadata={"sweep_angle": theta},
        )

    @staticmethod
    def _principal_angle(polygon: Polygon) -> float:
        """Direction in degrees of the long side of the minimum rotated rectangle."""
        coords = list(polygon.minimum_rotated_rectangle.exterior.coords)
        edges = [
            (coords[i + 1][0] - coords[i][0], coords[i + 1][1] - coords[i][1])
            for i in range(2)
        ]
        dx, dy = max(edges, key=lambda e: math.hypot(e[0], e[1]))
        return math.degrees(math.atan2(dy, dx))

    @staticmethod
    def _clip_segments(intersection, min_length: float) -> Tuple[List[Tuple[float, float]], int]:
        """(x_start, x_end) of clipped line pieces sorted by x, and the count dropped."""
        if intersection.is_empty:
            return [], 0

        parts = getattr(intersection, "geoms", [intersection])
        segments = []
        dropped = 0
        for part in parts:
            if not isinstance(part, LineString):
                continue
            if part.length < min_length:
                dropped += 1
                continue
            xs = [x for x, _ in part.coords]
            segments.append((min(xs), max(xs)))

        segments.sort()
        return segments, dropped

    @staticmethod
    def _scan_waypoints(positions: List[LocalCoordinate], labels: List[str]) -> List[Waypoint]:
        headings = _forward_headings(positions)
        return [
            Waypoint(
                position=pos,
                type=WaypointType.SCAN,
                label=label,
                camera=CameraDirective(heading=heading, pitch=NADIR_PITCH),
            )
            for pos, label, heading in zip(positions, labels, headings)
        ]

    def _camera_for(
        self,
        mode: CameraMode,
        position: LocalCoordinate,
        center: LocalCoordinate,
        forward_heading: float,
        custom_heading: float,
        pitch: float,
    ) -> CameraDirective:
        if mode is CameraMode.CENTER:
            return CameraDirective(heading=heading_toward(position, center), pitch=pitch, look_at=center)
        if mode is CameraMode.FORWARD:
            return CameraDirective(heading=forward_heading, pitch=pitch)
        return CameraDirective(heading=custom_heading % 360.0, pitch=pitch)

    def generate_orbit(self, params: OrbitParams) -> PathSegment:
        """
        Circle(s) around params.center.

        Each orbit emits segments + 1 points at angular increments of
        (end_angle - start_angle) / segments, so a full circle starts and
        ends at the same position. Orbit n flies at altitude + n * vertical_shift.
        """
        _require_positive("Orbit radius", params.radius)
        _require_finite("Orbit altitude", params.altitude)
        _require_finite("Orbit vertical shift", params.vertical_shift)
        if params.segments < 1:
            raise InvalidGeometryError(f"Orbit needs at least 1 segment, got {params.segments}")
        if params.orbits < 1:
            raise InvalidGeometryError(f"Orbit count must be at least 1, got {params.orbits}")
        sweep = params.end_angle - params.start_angle
        if not math.isfinite(sweep) or sweep == 0:
            raise InvalidGeometryError(
                f"Orbit start and end angles must differ, got {params.start_angle} and {params.end_angle}"
            )

        increment = sweep / params.segments
        center = params.center

        positions = []
        labels = []
        for orbit in range(params.orbits):
            altitude = params.altitude + orbit * params.vertical_shift
            for i in range(params.segments + 1):
                angle = math.radians(params.start_angle + i * increment)
                positions.append(LocalCoordinate(
                    center.east + params.radius * math.cos(angle),
                    center.north + params.radius * math.sin(angle),
                    altitude,
                ))
                if params.orbits == 1:
                    labels.append(f"Orbit Pt {i + 1}")
                else:
                    labels.append(f"Orbit {orbit + 1} Pt {i + 1}")

        forward = _forward_headings(positions)
        waypoints = [
            Waypoint(
                position=pos,
                type=WaypointType.ORBIT,
                label=label,
                camera=self._camera_for(
                    params.camera_mode, pos, center, heading, params.camera_heading, params.camera_pitch
                ),
            )
            for pos, label, heading in zip(positions, labels, forward)
        ]

        logger.info(
            f"Orbit: {params.orbits} x {params.segments} segments, radius {params.radius:.1f} m, "
            f"{len(waypoints)} waypoints"
        )
        return PathSegment(pattern=PatternType.ORBIT, waypoints=tuple(waypoints), parameters=params)

    def generate_spiral(self, params: SpiralParams) -> PathSegment:
        """
        Spiral around params.center.

        revolutions * points_per_revolution steps are taken; the angle advances
        by 360 / points_per_revolution each step while radius and altitude are
        interpolated linearly, reaching end_radius and end_altitude on the last
        point.
        """
        _require_finite("Spiral start radius", params.start_radius)
        _require_finite("Spiral end radius", params.end_radius)
        if params.start_radius < 0 or params.end_radius < 0:
            raise InvalidGeometryError("Spiral radii must not be negative")
        if params.start_radius == 0 and params.end_radius == 0:
            raise InvalidGeometryError("Spiral needs a non-zero start or end radius")
        _require_finite("Spiral start altitude", params.start_altitude)
        _require_finite("Spiral end altitude", params.end_altitude)
        _require_positive("Spiral revolutions", params.revolutions)
        if params.points_per_revolution < 1:
            raise InvalidGeometryError(
                f"Spiral needs at least 1 point per revolution, got {params.points_per_revolution}"
            )

        total = int(round(params.revolutions * params.points_per_revolution))
        if total < 1:
            raise EmptyPatternError(
                f"{params.revolutions} revolutions at {params.points_per_revolution} points each is less than one step"
            )

        center = params.center
        t = np.linspace(0.0, 1.0, total + 1)
        radii = params.start_radius + (params.end_radius - params.start_radius) * t
        altitudes = params.start_altitude + (params.end_altitude - params.start_altitude) * t
        angles = np.deg2rad(params.start_angle + np.arange(total + 1) * 360.0 / params.points_per_revolution)

        positions = [
            LocalCoordinate(
                center.east + float(r * np.cos(a)),
                center.north + float(r * np.sin(a)),
                float(alt),
            )
            for r, a, alt in zip(radii, angles, altitudes)
        ]

        forward = _forward_headings(positions)
        waypoints = [
            Waypoint(
                position=pos,
                type=WaypointType.SPIRAL,
                label=f"Spiral Pt {i + 1}",
                camera=self._camera_for(
                    params.camera_mode, pos, center, heading, params.camera_heading, params.camera_pitch
                ),
            )
            for i, (pos, heading) in enumerate(zip(positions, forward))
        ]

        logger.info(
            f"Spiral: {params.revolutions} revolutions, radius {params.start_radius:.1f}->{params.end_radius:.1f} m, "
            f"{len(waypoints)} waypoints"
        )
        return PathSegment(pattern=PatternType.SPIRAL, waypoints=tuple(waypoints), parameters=params)

    def facade_step(self, params: FacadeParams) -> float:
        """Vertical distance between façade passes for the configured camera."""
        if self.optics is not None:
            return self.optics.facade_vertical_spacing(params.standoff, params.vertical_overlap)
        return facade_vertical_spacing(params.standoff, params.fallback_fov, params.vertical_overlap)

    def generate_facade(self, params: FacadeParams) -> PathSegment:
        """
        Horizontal passes along every wall, stacked vertically.

        The footprint is oriented counter-clockwise so each wall's outward
        normal is on the right of its direction of travel. Waypoints sit
        params.standoff meters out from the wall ends with the camera facing
        the wall. Walls shorter than min_wall_length are skipped.
        """
        ring = _closed_ring(params.corners, "Building footprint")
        _require_finite("Building height", params.building_height)
        if params.building_height < 0:
            raise InvalidGeometryError(f"Building height must not be negative, got {params.building_height}")
        _require_positive("Standoff distance", params.standoff)
        _require_finite("Base altitude", params.base_altitude)
        for index, (start, end) in enumerate(zip(ring, ring[1:] + ring[:1])):
            if start == end:
                raise InvalidGeometryError(f"Wall {index + 1} has zero length (repeated corner)")

        footprint = Polygon(ring)
        if footprint.area <= 0:
            raise InvalidGeometryError("Building footprint has zero area")
        ring = list(orient(footprint, sign=1.0).exterior.coords)[:-1]

        step = self.facade_step(params)
        pass_count = int(math.floor(params.building_height / step + 1e-9)) + 1
        altitudes = [params.base_altitude + k * step for k in range(pass_count)]

        waypoints = []
        walls_scanned = 0
        for wall, (start, end) in enumerate(zip(ring, ring[1:] + ring[:1])):
            dx, dy = end[0] - start[0], end[1] - start[1]
            length = math.hypot(dx, dy)
            if length < params.min_wall_length:
                logger.warning(f"Skipping wall {wall + 1}: {length:.2f} m is shorter than {params.min_wall_length} m")
                continue

            normal_e, normal_n = dy / length, -dx / length
            offset_e, offset_n = normal_e * params.standoff, normal_n * params.standoff
            inward = heading_toward(LocalCoordinate(normal_e, normal_n), LocalCoordinate(0.0, 0.0))
            camera = CameraDirective(heading=inward, pitch=0.0)

            for k, altitude in enumerate(altitudes):
                a = LocalCoordinate(start[0] + offset_e, start[1] + offset_n, altitude)
                b = LocalCoordinate(end[0] + offset_e, end[1] + offset_n, altitude)
                if params.alternate_direction and k % 2 == 1:
                    a, b = b, a
                label = f"Wall {wall + 1} Pass {k + 1}"
                waypoints.append(Waypoint(a, WaypointType.FACADE, f"{label} Start", camera))
                waypoints.append(Waypoint(b, WaypointType.FACADE, f"{label} End", camera))
            walls_scanned += 1

        if not waypoints:
            raise EmptyPatternError(f"Every wall is shorter than {params.min_wall_length} m")

        logger.info(
            f"Facade: {walls_scanned} walls x {pass_count} passes, step {step:.2f} m, "
            f"{len(waypoints)} waypoints"
        )
        return PathSegment(
            pattern=PatternType.FACADE,
            waypoints=tuple(waypoints),
            parameters=params,
            line_spacing=step,
        )
