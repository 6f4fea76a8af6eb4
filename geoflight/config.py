"""
Configuration module for flight planning.

Handles the camera/lens hardware catalog and the planner defaults, both
loaded from YAML files.
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple
import logging

from .errors import InvalidOpticsInputError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "hardware_catalog.yaml"

# Common f-stops offered by lens aperture rings
COMMON_F_STOPS = (
    1.0, 1.1, 1.2, 1.4, 1.8, 2.0, 2.2, 2.5, 2.8, 3.2, 3.5, 4.0,
    4.5, 5.0, 5.6, 6.3, 7.1, 8.0, 9.0, 10, 11, 13, 14, 16, 18, 20, 22, 32,
)


@dataclass(frozen=True)
class CameraProfile:
    """Camera body / sensor parameters."""
    id: str
    sensor_width: float  # mm
    sensor_height: float  # mm
    image_width: int  # pixels
    image_height: int  # pixels
    sensor_type: str  # e.g. 'Full Frame', 'APS-C', 'Medium Format', '1-inch'
    brand: str = ""
    model: str = ""
    megapixels: float = 0.0
    compatible_lens_mounts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LensProfile:
    """
    Lens parameters.

    Prime lenses only set focal_length. Zoom lenses also set focal_length_max
    and the effective focal length is interpolated from a zoom position.
    """
    id: str
    focal_length: float  # mm (shortest focal length for zooms)
    max_aperture: float  # widest aperture (smallest f-number)
    min_aperture: float  # narrowest aperture (largest f-number)
    brand: str = ""
    model: str = ""
    lens_mount: str = ""
    focal_length_max: Optional[float] = None  # mm, zoom lenses only

    @property
    def is_zoom(self) -> bool:
        return self.focal_length_max is not None

    def effective_focal_length(self, zoom_position: float = 0.5) -> float:
        """
        Focal length in mm at a zoom position between 0 (wide) and 1 (tele).

        Prime lenses ignore the zoom position.
        """
        if not 0.0 <= zoom_position <= 1.0:
            raise InvalidOpticsInputError(
                f"Zoom position must be within [0, 1], got {zoom_position}"
            )
        if self.focal_length_max is None:
            return self.focal_length
        return self.focal_length + (self.focal_length_max - self.focal_length) * zoom_position

    def f_stops(self) -> List[float]:
        """Common f-stops available within this lens's aperture range."""
        return [
            stop for stop in COMMON_F_STOPS
            if self.max_aperture <= stop <= self.min_aperture
        ]


class HardwareCatalog:
    """
    Camera and lens catalog keyed by id.

    Example YAML structure:
        cameras:
          - id: sony-a7r-iv
            brand: Sony
            model: Alpha A7R IV
            sensor_type: Full Frame
            sensor_width: 35.7
            sensor_height: 23.8
            image_width: 9504
            image_height: 6336
            compatible_lens_mounts: [Sony-E]
        lenses:
          - id: sony-e-50mm-f1.8
            focal_length: 50
            max_aperture: 1.8
            min_aperture: 22
            lens_mount: Sony-E
    """

    def __init__(self, cameras: List[CameraProfile], lenses: List[LensProfile]):
        self._cameras: Dict[str, CameraProfile] = {c.id: c for c in cameras}
        self._lenses: Dict[str, LensProfile] = {lens.id: lens for lens in lenses}

    @property
    def cameras(self) -> List[CameraProfile]:
        return list(self._cameras.values())

    @property
    def lenses(self) -> List[LensProfile]:
        return list(self._lenses.values())

    def camera(self, camera_id: str) -> CameraProfile:
        try:
            return self._cameras[camera_id]
        except KeyError:
            raise KeyError(f"Unknown camera id: {camera_id}") from None

    def lens(self, lens_id: str) -> LensProfile:
        try:
            return self._lenses[lens_id]
        except KeyError:
            raise KeyError(f"Unknown lens id: {lens_id}") from None

    def compatible_lenses(self, camera_id: str) -> List[LensProfile]:
        """Lenses whose mount is accepted by the given camera."""
        mounts = set(self.camera(camera_id).compatible_lens_mounts)
        return [lens for lens in self._lenses.values() if lens.lens_mount in mounts]

    @classmethod
    def default(cls) -> "HardwareCatalog":
        """Load the catalog bundled with the package."""
        return cls.from_yaml(str(DEFAULT_CATALOG_PATH))

    @classmethod
    def from_yaml(cls, catalog_path: str) -> "HardwareCatalog":
        """
        Load a catalog from a YAML file.

        Args:
            catalog_path: Path to the YAML catalog

        Returns:
            HardwareCatalog with all cameras and lenses
        """
        path = Path(catalog_path)
        if not path.exists():
            raise FileNotFoundError(f"Hardware catalog not found: {catalog_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        cameras = [
            CameraProfile(
                id=str(cam['id']),
                sensor_width=float(cam['sensor_width']),
                sensor_height=float(cam['sensor_height']),
                image_width=int(cam['image_width']),
                image_height=int(cam['image_height']),
                sensor_type=cam.get('sensor_type', ''),
                brand=cam.get('brand', ''),
                model=cam.get('model', ''),
                megapixels=float(cam.get('megapixels', 0.0)),
                compatible_lens_mounts=tuple(cam.get('compatible_lens_mounts', [])),
            )
            for cam in data.get('cameras', [])
        ]

        lenses = []
        for lens in data.get('lenses', []):
            focal_max = lens.get('focal_length_max')
            lenses.append(LensProfile(
                id=str(lens['id']),
                focal_length=float(lens['focal_length']),
                max_aperture=float(lens['max_aperture']),
                min_aperture=float(lens['min_aperture']),
                brand=lens.get('brand', ''),
                model=lens.get('model', ''),
                lens_mount=lens.get('lens_mount', ''),
                focal_length_max=float(focal_max) if focal_max is not None else None,
            ))

        logger.info(f"Loaded {len(cameras)} cameras and {len(lenses)} lenses from {catalog_path}")
        return cls(cameras, lenses)

    def to_yaml(self, catalog_path: str) -> None:
        """Save the catalog to a YAML file."""
        cameras = []
        for cam in self._cameras.values():
            entry = asdict(cam)
            entry['compatible_lens_mounts'] = list(cam.compatible_lens_mounts)
            cameras.append(entry)

        lenses = []
        for lens in self._lenses.values():
            entry = asdict(lens)
            if entry['focal_length_max'] is None:
                del entry['focal_length_max']
            lenses.append(entry)

        with open(catalog_path, 'w') as f:
            yaml.dump({'cameras': cameras, 'lenses': lenses}, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Hardware catalog saved to {catalog_path}")


@dataclass
class MissionDefaults:
    """Takeoff / return-to-launch defaults for assembled missions."""
    initial_altitude: float = 30.0  # meters above the origin
    max_transit_speed: float = 8.0  # m/s, takeoff climbs at half this speed
    mission_speed: float = 5.0  # m/s cruise over pattern waypoints
    include_takeoff: bool = True
    include_return: bool = True


@dataclass
class GridDefaults:
    front_overlap: float = 75.0  # percent, along a flight line
    side_overlap: float = 65.0  # percent, between adjacent lines
    min_segment_length: float = 0.5  # meters, shorter clipped segments are dropped


@dataclass
class OrbitDefaults:
    segments: int = 16
    camera_pitch: float = -45.0  # degrees, -90 = straight down


@dataclass
class FacadeDefaults:
    standoff: float = 5.0  # meters from the wall
    vertical_overlap: float = 20.0  # percent
    base_altitude: float = 10.0  # altitude of the first pass
    fallback_fov: float = 70.0  # degrees, used when no camera is selected
    min_wall_length: float = 1.0  # meters, shorter walls are skipped


@dataclass
class PlannerConfig:
    """
    Planner-wide defaults.

    Attributes:
        mission: Takeoff/RTL and speed defaults
        grid: Overlap defaults for grid surveys
        orbit: Orbit defaults
        facade: Façade scan defaults
        catalog_path: Optional hardware catalog file (bundled catalog if None)
    """
    mission: MissionDefaults = field(default_factory=MissionDefaults)
    grid: GridDefaults = field(default_factory=GridDefaults)
    orbit: OrbitDefaults = field(default_factory=OrbitDefaults)
    facade: FacadeDefaults = field(default_factory=FacadeDefaults)
    catalog_path: Optional[str] = None

    def load_catalog(self) -> HardwareCatalog:
        if self.catalog_path:
            return HardwareCatalog.from_yaml(self.catalog_path)
        return HardwareCatalog.default()

    @classmethod
    def from_yaml(cls, config_path: str) -> "PlannerConfig":
        """
        Load configuration from a YAML file.

        Every section is optional; missing keys keep their defaults.

        Example YAML structure:
            mission:
              initial_altitude: 30.0
              max_transit_speed: 8.0
              mission_speed: 5.0
              include_takeoff: true
              include_return: true
            grid:
              front_overlap: 75
              side_overlap: 65
            orbit:
              segments: 16
              camera_pitch: -45
            facade:
              standoff: 5.0
              vertical_overlap: 20
              base_altitude: 10.0
            catalog: "hardware_catalog.yaml"
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loading configuration from {config_path}")

        mission = _section(MissionDefaults, data.get('mission', {}))
        grid = _section(GridDefaults, data.get('grid', {}))
        orbit = _section(OrbitDefaults, data.get('orbit', {}))
        facade = _section(FacadeDefaults, data.get('facade', {}))

        # Resolve catalog path relative to config file location
        catalog_path = data.get('catalog')
        if catalog_path:
            catalog_path = str(path.parent / catalog_path)

        return cls(
            mission=mission,
            grid=grid,
            orbit=orbit,
            facade=facade,
            catalog_path=catalog_path,
        )

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        data: Dict[str, Any] = {
            'mission': asdict(self.mission),
            'grid': asdict(self.grid),
            'orbit': asdict(self.orbit),
            'facade': asdict(self.facade),
        }
        if self.catalog_path:
            data['catalog'] = self.catalog_path

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")


def _section(section_cls, values: Dict[str, Any]):
    known = set(section_cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown {section_cls.__name__} keys: {sorted(unknown)}")
    return section_cls(**values)
