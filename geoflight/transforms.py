"""
Coordinate transformation module for flight planning.

This module handles the conversions between the three frames used by the
planner:
    1. Geodetic (WGS84 latitude, longitude, ellipsoidal height)
    2. ECEF (geocentric Cartesian)
    3. Local ENU (East-North-Up tangent plane anchored at an origin)

Coordinate System Definitions:
    - ECEF: Earth-Centered, Earth-Fixed (X towards 0°lon, Y towards 90°E, Z towards North Pole)
    - ENU: East-North-Up (local tangent plane at the origin)

Accuracy:
    ENU is a tangent-plane frame. Round trips geodetic -> local -> geodetic
    reproduce the input to better than 1e-6 degrees and 1e-3 m within 500 km
    of the origin. Latitude/longitude are not range-checked; callers supply
    sane values.
"""

import numpy as np
from typing import Tuple, Union
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# WGS84 ellipsoid parameters
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_F = 1 / 298.257223563  # Flattening
WGS84_B = WGS84_A * (1 - WGS84_F)  # Semi-minor axis
WGS84_E2 = 2 * WGS84_F - WGS84_F ** 2  # First eccentricity squared
WGS84_EP2 = WGS84_E2 / (1 - WGS84_E2)  # Second eccentricity squared

# Spherical radius used for great-circle distances
EARTH_RADIUS = 6378137.0


@dataclass(frozen=True)
class GeodeticCoordinate:
    """
    Position on the WGS84 ellipsoid.

    Attributes:
        latitude: Geodetic latitude in degrees
        longitude: Longitude in degrees
        altitude: Height in meters (ellipsoidal, or above the origin when the
            origin itself is given at altitude 0)
    """
    latitude: float
    longitude: float
    altitude: float = 0.0


@dataclass(frozen=True)
class LocalCoordinate:
    """
    Position in a local East-North-Up frame, in meters.

    Only meaningful together with the ReferenceFrame that produced it.
    """
    east: float
    north: float
    up: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.east, self.north, self.up], dtype=np.float64)

    @classmethod
    def from_array(cls, values) -> "LocalCoordinate":
        return cls(float(values[0]), float(values[1]), float(values[2]))

    def offset(self, east: float = 0.0, north: float = 0.0, up: float = 0.0) -> "LocalCoordinate":
        """Return a new coordinate displaced by the given amounts."""
        return LocalCoordinate(self.east + east, self.north + north, self.up + up)


class CoordinateFormat(Enum):
    """Display styles for latitude/longitude strings."""
    DECIMAL = "dd"
    DMS = "dms"
    DDM = "ddm"


class GeodeticTransform:
    """
    Pure conversions between geodetic, ECEF and local ENU coordinates.

    The transformation chain is:
        Geodetic -> ECEF -> (difference with origin) -> ENU

    and the inverse:
        ENU -> (rotate back, add origin) -> ECEF -> Geodetic
    """

    @staticmethod
    def geodetic_to_ecef(
        lat: float, lon: float, h: float
    ) -> np.ndarray:
        """
        Convert geodetic coordinates (WGS84) to ECEF.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            h: Ellipsoidal height in meters

        Returns:
            ECEF coordinates as (X, Y, Z) in meters
        """
        lat_rad = np.deg2rad(lat)
        lon_rad = np.deg2rad(lon)

        # Radius of curvature in the prime vertical
        N = WGS84_A / np.sqrt(1 - WGS84_E2 * np.sin(lat_rad) ** 2)

        X = (N + h) * np.cos(lat_rad) * np.cos(lon_rad)
        Y = (N + h) * np.cos(lat_rad) * np.sin(lon_rad)
        Z = (N * (1 - WGS84_E2) + h) * np.sin(lat_rad)

        return np.array([X, Y, Z])

    @staticmethod
    def ecef_to_geodetic(ecef: np.ndarray) -> GeodeticCoordinate:
        """
        Convert ECEF coordinates to geodetic (WGS84) with Bowring's method.

        The auxiliary angle theta = atan2(z*a, p*b) gives a closed-form
        latitude without iteration:
            lat = atan2(z + e'^2 * b * sin^3(theta), p - e^2 * a * cos^3(theta))

        Height is computed as p*cos(lat) + z*sin(lat) - a*sqrt(1 - e^2 sin^2(lat)),
        which stays finite at the poles.

        Args:
            ecef: (X, Y, Z) in meters

        Returns:
            GeodeticCoordinate with latitude/longitude in degrees
        """
        x, y, z = (float(v) for v in ecef)

        p = np.hypot(x, y)
        theta = np.arctan2(z * WGS84_A, p * WGS84_B)

        lon = np.arctan2(y, x)
        lat = np.arctan2(
            z + WGS84_EP2 * WGS84_B * np.sin(theta) ** 3,
            p - WGS84_E2 * WGS84_A * np.cos(theta) ** 3,
        )

        sin_lat = np.sin(lat)
        height = p * np.cos(lat) + z * sin_lat - WGS84_A * np.sqrt(1 - WGS84_E2 * sin_lat ** 2)

        return GeodeticCoordinate(
            latitude=float(np.rad2deg(lat)),
            longitude=float(np.rad2deg(lon)),
            altitude=float(height),
        )

    @staticmethod
    def ecef_to_enu_rotation(lat: float, lon: float) -> np.ndarray:
        """
        Compute rotation matrix from ECEF to local ENU frame.

        Args:
            lat: Origin latitude in degrees
            lon: Origin longitude in degrees

        Returns:
            3x3 rotation matrix from ECEF to ENU
        """
        lat_rad = np.deg2rad(lat)
        lon_rad = np.deg2rad(lon)

        clat, slat = np.cos(lat_rad), np.sin(lat_rad)
        clon, slon = np.cos(lon_rad), np.sin(lon_rad)

        # Row 1: East direction in ECEF
        # Row 2: North direction in ECEF
        # Row 3: Up direction in ECEF
        return np.array([
            [-slon, clon, 0],
            [-slat * clon, -slat * slon, clat],
            [clat * clon, clat * slon, slat]
        ])

    @classmethod
    def to_ecef(cls, geodetic: GeodeticCoordinate) -> np.ndarray:
        return cls.geodetic_to_ecef(geodetic.latitude, geodetic.longitude, geodetic.altitude)

    @classmethod
    def from_ecef(cls, ecef: np.ndarray) -> GeodeticCoordinate:
        return cls.ecef_to_geodetic(ecef)

    @classmethod
    def to_local(
        cls, geodetic: GeodeticCoordinate, origin: GeodeticCoordinate
    ) -> LocalCoordinate:
        """
        Convert a geodetic position to ENU relative to an origin.

        Args:
            geodetic: Point to convert
            origin: Geodetic origin of the local frame

        Returns:
            LocalCoordinate in meters
        """
        delta_ecef = cls.to_ecef(geodetic) - cls.to_ecef(origin)
        R_enu_ecef = cls.ecef_to_enu_rotation(origin.latitude, origin.longitude)
        return LocalCoordinate.from_array(R_enu_ecef @ delta_ecef)

    @classmethod
    def to_geodetic(
        cls, local: LocalCoordinate, origin: GeodeticCoordinate
    ) -> GeodeticCoordinate:
        """
        Convert an ENU position relative to an origin back to geodetic.

        Args:
            local: Point in the local frame
            origin: Geodetic origin of the local frame

        Returns:
            GeodeticCoordinate
        """
        # Rotation from ENU to ECEF (transpose of ECEF to ENU)
        R_ecef_enu = cls.ecef_to_enu_rotation(origin.latitude, origin.longitude).T
        ecef = cls.to_ecef(origin) + R_ecef_enu @ local.as_array()
        return cls.ecef_to_geodetic(ecef)

    @staticmethod
    def format(
        latitude: float,
        longitude: float,
        style: Union[CoordinateFormat, str] = CoordinateFormat.DECIMAL,
    ) -> Tuple[str, str]:
        """
        Format a latitude/longitude pair for display.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees
            style: 'dd' (decimal), 'dms' (degrees minutes seconds) or
                'ddm' (degrees decimal minutes)

        Returns:
            Tuple of (latitude string, longitude string)
        """
        style = CoordinateFormat(style)

        if style is CoordinateFormat.DMS:
            return _format_dms(latitude, "NS"), _format_dms(longitude, "EW")
        if style is CoordinateFormat.DDM:
            return _format_ddm(latitude, "NS"), _format_ddm(longitude, "EW")
        return f"{latitude:.6f}°", f"{longitude:.6f}°"


def _format_dms(value: float, hemispheres: str) -> str:
    direction = hemispheres[0] if value >= 0 else hemispheres[1]
    total_seconds = round(abs(value) * 3600, 2)
    degrees = int(total_seconds // 3600)
    minutes = int((total_seconds - degrees * 3600) // 60)
    seconds = total_seconds - degrees * 3600 - minutes * 60
    return f"{degrees}° {minutes}' {seconds:.2f}\" {direction}"


def _format_ddm(value: float, hemispheres: str) -> str:
    direction = hemispheres[0] if value >= 0 else hemispheres[1]
    total_minutes = round(abs(value) * 60, 4)
    degrees = int(total_minutes // 60)
    minutes = total_minutes - degrees * 60
    return f"{degrees}° {minutes:.4f}' {direction}"


def local_distance(a: LocalCoordinate, b: LocalCoordinate) -> float:
    """Straight-line distance between two points of the same local frame."""
    return float(np.linalg.norm(b.as_array() - a.as_array()))


def haversine_distance(a: GeodeticCoordinate, b: GeodeticCoordinate) -> float:
    """
    Great-circle distance between two geodetic points in meters.

    Uses a sphere of radius EARTH_RADIUS and ignores altitude.
    """
    lat1, lat2 = np.deg2rad(a.latitude), np.deg2rad(b.latitude)
    dlat = lat2 - lat1
    dlon = np.deg2rad(b.longitude - a.longitude)

    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return float(2 * EARTH_RADIUS * np.arctan2(np.sqrt(h), np.sqrt(1 - h)))


def validate_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    Validate that a matrix is a proper rotation matrix.

    A proper rotation matrix must:
        1. Be orthogonal: R @ R.T = I
        2. Have determinant = +1 (not a reflection)

    Args:
        R: 3x3 matrix to validate
        tol: Numerical tolerance

    Returns:
        True if R is a valid rotation matrix
    """
    if R.shape != (3, 3):
        return False

    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False

    return bool(np.isclose(np.linalg.det(R), 1.0, atol=tol))
