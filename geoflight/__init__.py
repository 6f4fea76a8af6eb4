"""
Geoflight Package

Drone flight planning in a takeoff-centric local frame: converts between
geodetic and local East-North-Up coordinates and generates camera-aware
survey patterns (grids, orbits, spirals, façade scans) ready for upload.

Coordinate System Chain:
    Geodetic (WGS84) → ECEF → Local ENU (origin = takeoff point)

Conventions:
    - Local positions in meters (east, north, up) from the active origin
    - Headings in degrees counter-clockwise from east, [0, 360)
    - Camera pitch 0 = horizon, -90 = nadir
    - Optics in millimeters, GSD in cm/pixel

Supported Patterns:
    - Boustrophedon grid over rectangles and polygons
    - Single or stacked orbits
    - Spirals with radius and altitude interpolation
    - Façade scans around building footprints
"""

from .errors import (
    ErrorKind,
    GeoflightError,
    NoReferenceFrameError,
    InvalidGeometryError,
    InvalidOpticsInputError,
    EmptyPatternError,
)
from .transforms import (
    GeodeticCoordinate,
    LocalCoordinate,
    GeodeticTransform,
    CoordinateFormat,
    haversine_distance,
    local_distance,
)
from .reference_frame import ReferenceFrame, OriginManager
from .config import CameraProfile, LensProfile, HardwareCatalog, PlannerConfig
from .optics import OpticsInput, OpticsCalculator, DOFResult, Footprint, Spacing, FacadeParameters
from .waypoints import Waypoint, WaypointType, CameraDirective, PathSegment, PatternType
from .patterns import (
    PatternGenerator,
    CameraMode,
    RectangleGridParams,
    PolygonGridParams,
    OrbitParams,
    SpiralParams,
    FacadeParams,
    facade_corners_for_footprint,
)
from .mission import MissionAssembler, MissionOptions, Mission, MissionWaypoint
from .features import SceneObject, import_features, export_features

__version__ = "1.0.0"
__all__ = [
    "ErrorKind",
    "GeoflightError",
    "NoReferenceFrameError",
    "InvalidGeometryError",
    "InvalidOpticsInputError",
    "EmptyPatternError",
    "GeodeticCoordinate",
    "LocalCoordinate",
    "GeodeticTransform",
    "CoordinateFormat",
    "haversine_distance",
    "local_distance",
    "ReferenceFrame",
    "OriginManager",
    "CameraProfile",
    "LensProfile",
    "HardwareCatalog",
    "PlannerConfig",
    "OpticsInput",
    "OpticsCalculator",
    "DOFResult",
    "Footprint",
    "Spacing",
    "FacadeParameters",
    "Waypoint",
    "WaypointType",
    "CameraDirective",
    "PathSegment",
    "PatternType",
    "PatternGenerator",
    "CameraMode",
    "RectangleGridParams",
    "PolygonGridParams",
    "OrbitParams",
    "SpiralParams",
    "FacadeParams",
    "facade_corners_for_footprint",
    "MissionAssembler",
    "MissionOptions",
    "Mission",
    "MissionWaypoint",
    "SceneObject",
    "import_features",
    "export_features",
]
