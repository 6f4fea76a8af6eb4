"""
Takeoff-centric reference frame.

Missions are planned in meters from the launch point. A ReferenceFrame is an
immutable value binding a geodetic origin to the local ENU frame; the
OriginManager holds the single active frame for a planning session.

Concurrency:
    set_origin() is the only mutator and must be called by the session owner.
    Readers may convert freely between origin changes. Geometry that outlives
    a single computation should be stored together with the ReferenceFrame (or
    its generation) it was produced in, and re-projected with
    ReferenceFrame.reproject() when the origin changes.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional
import logging

import numpy as np

from .errors import NoReferenceFrameError
from .transforms import GeodeticCoordinate, GeodeticTransform, LocalCoordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceFrame:
    """
    Local ENU frame anchored at a geodetic origin (the takeoff point).

    Attributes:
        origin: Geodetic origin; local (0, 0, 0) maps to this point
        generation: Counter distinguishing successive frames of one session
    """
    origin: GeodeticCoordinate
    generation: int = 0
    _origin_ecef: np.ndarray = field(init=False, repr=False, compare=False)
    _rotation: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_origin_ecef", GeodeticTransform.to_ecef(self.origin))
        object.__setattr__(
            self,
            "_rotation",
            GeodeticTransform.ecef_to_enu_rotation(self.origin.latitude, self.origin.longitude),
        )

    def to_local(self, geodetic: GeodeticCoordinate) -> LocalCoordinate:
        """Convert a geodetic position into this frame."""
        delta_ecef = GeodeticTransform.to_ecef(geodetic) - self._origin_ecef
        return LocalCoordinate.from_array(self._rotation @ delta_ecef)

    def to_geodetic(self, local: LocalCoordinate) -> GeodeticCoordinate:
        """Convert a position of this frame back to geodetic."""
        ecef = self._origin_ecef + self._rotation.T @ local.as_array()
        return GeodeticTransform.from_ecef(ecef)

    def reproject(self, local: LocalCoordinate, target: "ReferenceFrame") -> LocalCoordinate:
        """
        Re-express a coordinate of this frame in another frame.

        Args:
            local: Coordinate produced in this frame
            target: Frame to express it in

        Returns:
            Equivalent LocalCoordinate relative to target.origin
        """
        if target.origin == self.origin:
            return local
        return target.to_local(self.to_geodetic(local))


class OriginManager:
    """
    Holds the single active ReferenceFrame of a planning session.

    Example usage:
        manager = OriginManager()
        manager.set_origin(GeodeticCoordinate(37.7749, -122.4194, 0.0))
        local = manager.global_to_local(GeodeticCoordinate(37.7750, -122.4194, 0.0))
    """

    def __init__(self, origin: Optional[GeodeticCoordinate] = None):
        self._lock = threading.Lock()
        self._frame: Optional[ReferenceFrame] = None
        self._generation = 0
        if origin is not None:
            self.set_origin(origin)

    def set_origin(self, origin: GeodeticCoordinate) -> Optional[GeodeticCoordinate]:
        """
        Replace the active origin.

        Args:
            origin: New takeoff point

        Returns:
            The previous origin, or None if none was set
        """
        with self._lock:
            previous = self._frame.origin if self._frame is not None else None
            self._generation += 1
            generation = self._generation
            self._frame = ReferenceFrame(origin=origin, generation=generation)

        logger.info(
            f"Reference frame {generation} set at "
            f"({origin.latitude:.7f}, {origin.longitude:.7f}, {origin.altitude:.2f} m)"
        )
        return previous

    def has_origin(self) -> bool:
        return self._frame is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def frame(self) -> ReferenceFrame:
        """Snapshot of the active frame."""
        frame = self._frame
        if frame is None:
            raise NoReferenceFrameError("No takeoff origin has been set")
        return frame

    def is_current(self, frame: ReferenceFrame) -> bool:
        """True if the given snapshot is still the active frame."""
        return self._frame is not None and frame.generation == self._frame.generation

    def local_to_global(self, local: LocalCoordinate) -> GeodeticCoordinate:
        return self.frame.to_geodetic(local)

    def global_to_local(self, geodetic: GeodeticCoordinate) -> LocalCoordinate:
        return self.frame.to_local(geodetic)
