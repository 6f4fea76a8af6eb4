"""
Camera optics module for survey planning.

Computes the quantities that drive flight pattern spacing from camera and
lens parameters:
    - Field of view: FOV = 2 * atan(sensor / (2 * f))
    - Ground sample distance: GSD [cm/px] = d * 100 * sensor_w / (f * image_w)
    - Footprint on the ground: GSD scaled by image dimensions
    - Depth of field (thin lens): hyperfocal H = f^2 / (N * c),
        near = s (H - f) / (H + s - 2f)
        far  = s (H - f) / (H - s), unbounded when s >= H

Units:
    Sensor dimensions, focal lengths and circles of confusion in millimeters,
    distances in meters, GSD in centimeters per pixel.

Every function either returns a finite value (or math.inf for an unbounded
DOF limit) or raises InvalidOpticsInputError; NaN is never returned.
"""

import math
from dataclasses import dataclass
from typing import Optional
import logging

from .config import CameraProfile, LensProfile, HardwareCatalog
from .errors import InvalidOpticsInputError

logger = logging.getLogger(__name__)

M_PER_FT = 0.3048
SQUARE_METERS_PER_HECTARE = 10000.0
FULL_FRAME_DIAGONAL_MM = math.hypot(36.0, 24.0)
FULL_FRAME_COC_MM = 0.03


def _require_positive(name: str, value: float) -> float:
    if value is None or not math.isfinite(value) or value <= 0:
        raise InvalidOpticsInputError(f"{name} must be a positive finite number, got {value}")
    return value


def _require_non_negative(name: str, value: float) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        raise InvalidOpticsInputError(f"{name} must be a non-negative finite number, got {value}")
    return value


def _require_overlap(name: str, overlap: float) -> float:
    if overlap is None or not math.isfinite(overlap) or not 0 <= overlap < 100:
        raise InvalidOpticsInputError(f"{name} must be within [0, 100) percent, got {overlap}")
    return overlap


@dataclass(frozen=True)
class Footprint:
    """Ground coverage of a single image, in meters."""
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class Spacing:
    """Distance between consecutive images along and across flight lines."""
    forward: float  # meters between shots along a line
    side: float  # meters between adjacent lines


@dataclass(frozen=True)
class DOFResult:
    """
    Depth of field at a focus distance.

    far_limit and total_dof are math.inf exactly when the focus distance is
    at or beyond the hyperfocal distance.
    """
    focus_distance: float  # m
    hyperfocal: float  # m
    near_limit: float  # m
    far_limit: float  # m, may be inf
    total_dof: float  # m, may be inf
    circle_of_confusion: float  # mm

    @property
    def is_unbounded(self) -> bool:
        return math.isinf(self.far_limit)

    def in_focus_description(self, feet: bool = False) -> str:
        """Human readable in-focus range, e.g. 'From 2.27m to infinity'."""
        unit = "ft" if feet else "m"
        scale = 1 / M_PER_FT if feet else 1.0
        near = f"{self.near_limit * scale:.2f}{unit}"
        if self.is_unbounded:
            return f"From {near} to infinity"
        return f"From {near} to {self.far_limit * scale:.2f}{unit}"


@dataclass(frozen=True)
class PhotogrammetryParameters:
    """Survey figures for one altitude and overlap setting."""
    altitude: float
    gsd: float  # cm/px
    footprint: Footprint
    spacing: Spacing
    area_coverage: float  # m^2 per image
    effective_area_coverage: float  # m^2 of new ground per image
    images_per_hectare: float


@dataclass(frozen=True)
class FacadeParameters:
    """Façade scan figures for one standoff and overlap setting."""
    standoff: float
    gsd: float  # cm/px on the wall
    footprint: Footprint  # wall area covered by one image
    vertical_spacing: float
    camera_pitch: float  # degrees, aimed at mid-height
    pass_count: int  # passes needed to cover the building height


def field_of_view(focal_length_mm: float, sensor_dimension_mm: float) -> float:
    """
    Angle of view across one sensor dimension.

    Args:
        focal_length_mm: Focal length in mm
        sensor_dimension_mm: Sensor width or height in mm

    Returns:
        Field of view in degrees
    """
    _require_positive("Focal length", focal_length_mm)
    _require_positive("Sensor dimension", sensor_dimension_mm)
    return math.degrees(2 * math.atan(sensor_dimension_mm / (2 * focal_length_mm)))


def ground_sample_distance(
    distance_m: float,
    focal_length_mm: float,
    sensor_width_mm: float,
    image_width_px: int,
) -> float:
    """
    Ground sample distance for a camera at a given distance from the subject.

    Args:
        distance_m: Distance to the subject (altitude for nadir images) in meters
        focal_length_mm: Focal length in mm
        sensor_width_mm: Sensor width in mm
        image_width_px: Image width in pixels

    Returns:
        GSD in cm/pixel
    """
    _require_non_negative("Distance", distance_m)
    _require_positive("Focal length", focal_length_mm)
    _require_positive("Sensor width", sensor_width_mm)
    _require_positive("Image width", image_width_px)
    return (distance_m * 100 * sensor_width_mm) / (focal_length_mm * image_width_px)


def altitude_for_gsd(
    target_gsd_cm: float,
    focal_length_mm: float,
    sensor_width_mm: float,
    image_width_px: int,
) -> float:
    """Distance in meters at which the camera reaches the target GSD (cm/px)."""
    _require_positive("Target GSD", target_gsd_cm)
    _require_positive("Focal length", focal_length_mm)
    _require_positive("Sensor width", sensor_width_mm)
    _require_positive("Image width", image_width_px)
    return (target_gsd_cm * focal_length_mm * image_width_px) / (sensor_width_mm * 100)


def circle_of_confusion(sensor_type: Optional[str], sensor_width_mm: float) -> float:
    """
    Acceptable circle of confusion for a sensor class.

    Empirical tiers, checked in order:
        Medium Format           -> sensor_width / 1500
        Full Frame or >= 35 mm  -> 0.03
        APS-C or 20-35 mm       -> 0.02
        1-inch or 10-20 mm      -> 0.011
        anything smaller        -> 0.005

    Args:
        sensor_type: Catalog sensor type tag
        sensor_width_mm: Sensor width in mm

    Returns:
        Circle of confusion in mm
    """
    _require_positive("Sensor width", sensor_width_mm)

    if sensor_type == "Medium Format":
        return sensor_width_mm / 1500
    if sensor_type == "Full Frame" or sensor_width_mm >= 35:
        return 0.03
    if sensor_type == "APS-C" or 20 <= sensor_width_mm < 35:
        return 0.02
    if sensor_type == "1-inch" or 10 <= sensor_width_mm < 20:
        return 0.011
    return 0.005


def crop_factor(sensor_width_mm: float, sensor_height_mm: float) -> float:
    """Ratio of the full frame (36 x 24 mm) diagonal to this sensor's diagonal."""
    _require_positive("Sensor width", sensor_width_mm)
    _require_positive("Sensor height", sensor_height_mm)
    return FULL_FRAME_DIAGONAL_MM / math.hypot(sensor_width_mm, sensor_height_mm)


def circle_of_confusion_from_crop(crop: float) -> float:
    """
    Circle of confusion in mm scaled from the 0.03 mm full frame standard.

    Continuous alternative to the tiered circle_of_confusion lookup.
    """
    _require_positive("Crop factor", crop)
    return FULL_FRAME_COC_MM / crop


def hyperfocal_distance(focal_length_mm: float, aperture: float, coc_mm: float) -> float:
    """
    Hyperfocal distance in meters.

    Args:
        focal_length_mm: Focal length in mm
        aperture: f-number
        coc_mm: Circle of confusion in mm
    """
    _require_positive("Focal length", focal_length_mm)
    _require_positive("Aperture", aperture)
    _require_positive("Circle of confusion", coc_mm)
    return (focal_length_mm * focal_length_mm) / (aperture * coc_mm) / 1000


def near_limit(
    focus_distance_m: float, focal_length_mm: float, aperture: float, coc_mm: float
) -> float:
    """Nearest acceptably sharp distance in meters."""
    _require_positive("Focus distance", focus_distance_m)
    hyperfocal = hyperfocal_distance(focal_length_mm, aperture, coc_mm)
    focal_m = focal_length_mm / 1000

    denominator = hyperfocal + focus_distance_m - 2 * focal_m
    if denominator <= 0:
        raise InvalidOpticsInputError(
            f"Hyperfocal distance {hyperfocal:.4f} m is shorter than twice the focal length"
        )
    return (focus_distance_m * (hyperfocal - focal_m)) / denominator


def far_limit(
    focus_distance_m: float, focal_length_mm: float, aperture: float, coc_mm: float
) -> float:
    """Farthest acceptably sharp distance in meters, math.inf at or beyond hyperfocal."""
    _require_positive("Focus distance", focus_distance_m)
    hyperfocal = hyperfocal_distance(focal_length_mm, aperture, coc_mm)

    if focus_distance_m >= hyperfocal:
        return math.inf

    focal_m = focal_length_mm / 1000
    return (focus_distance_m * (hyperfocal - focal_m)) / (hyperfocal - focus_distance_m)


def total_dof(near: float, far: float) -> float:
    """Depth of field in meters, math.inf if the far limit is unbounded."""
    if math.isinf(far):
        return math.inf
    return far - near


def depth_of_field(
    focus_distance_m: float, focal_length_mm: float, aperture: float, coc_mm: float
) -> DOFResult:
    """Compute every DOF figure at once."""
    near = near_limit(focus_distance_m, focal_length_mm, aperture, coc_mm)
    far = far_limit(focus_distance_m, focal_length_mm, aperture, coc_mm)
    return DOFResult(
        focus_distance=focus_distance_m,
        hyperfocal=hyperfocal_distance(focal_length_mm, aperture, coc_mm),
        near_limit=near,
        far_limit=far,
        total_dof=total_dof(near, far),
        circle_of_confusion=coc_mm,
    )


def footprint(
    camera: CameraProfile,
    lens: LensProfile,
    altitude_m: float,
    zoom_position: float = 0.5,
) -> Footprint:
    """
    Ground footprint of one image taken from altitude_m.

    Both dimensions use the GSD derived from the sensor width, so pixels are
    assumed square.
    """
    gsd_m = ground_sample_distance(
        altitude_m,
        lens.effective_focal_length(zoom_position),
        camera.sensor_width,
        camera.image_width,
    ) / 100
    _require_positive("Image height", camera.image_height)
    return Footprint(width=gsd_m * camera.image_width, height=gsd_m * camera.image_height)


def image_spacing(footprint_dimension_m: float, overlap_percent: float) -> float:
    """
    Distance between images for a given overlap.

    Args:
        footprint_dimension_m: Footprint width or height in meters
        overlap_percent: Overlap between consecutive images, 0-100 (exclusive)

    Returns:
        Spacing in meters
    """
    _require_positive("Footprint dimension", footprint_dimension_m)
    _require_overlap("Overlap", overlap_percent)
    return footprint_dimension_m * (1 - overlap_percent / 100)


def waypoint_spacing(fp: Footprint, forward_overlap: float, side_overlap: float) -> Spacing:
    """Forward spacing from footprint width, side spacing from footprint height."""
    return Spacing(
        forward=image_spacing(fp.width, forward_overlap),
        side=image_spacing(fp.height, side_overlap),
    )


def facade_vertical_spacing(
    standoff_m: float, vertical_fov_deg: float, overlap_percent: float
) -> float:
    """
    Vertical step between façade passes.

    step = 2 * standoff * tan(FOV / 2) * (1 - overlap / 100)
    """
    _require_positive("Standoff distance", standoff_m)
    _require_positive("Vertical field of view", vertical_fov_deg)
    if vertical_fov_deg >= 180:
        raise InvalidOpticsInputError(f"Field of view must be below 180 degrees, got {vertical_fov_deg}")
    _require_overlap("Vertical overlap", overlap_percent)
    return 2 * standoff_m * math.tan(math.radians(vertical_fov_deg) / 2) * (1 - overlap_percent / 100)


def facade_camera_pitch(building_height_m: float, standoff_m: float) -> float:
    """Gimbal pitch in degrees aiming at mid-height of a façade (negative is down)."""
    _require_positive("Standoff distance", standoff_m)
    return -math.degrees(math.atan2(building_height_m / 2, standoff_m))


@dataclass(frozen=True)
class OpticsInput:
    """
    A camera/lens pair with the selected aperture and zoom position.

    Raises InvalidOpticsInputError on construction if the combination cannot
    produce finite optics figures.
    """
    camera: CameraProfile
    lens: LensProfile
    aperture: float
    zoom_position: float = 0.5

    def __post_init__(self):
        _require_positive("Sensor width", self.camera.sensor_width)
        _require_positive("Sensor height", self.camera.sensor_height)
        _require_positive("Image width", self.camera.image_width)
        _require_positive("Image height", self.camera.image_height)
        _require_positive("Focal length", self.lens.focal_length)
        _require_positive("Aperture", self.aperture)
        if not self.lens.max_aperture - 1e-9 <= self.aperture <= self.lens.min_aperture + 1e-9:
            raise InvalidOpticsInputError(
                f"Aperture f/{self.aperture} outside lens range "
                f"f/{self.lens.max_aperture}-f/{self.lens.min_aperture}"
            )
        self.lens.effective_focal_length(self.zoom_position)

    @classmethod
    def from_catalog(
        cls,
        catalog: HardwareCatalog,
        camera_id: str,
        lens_id: str,
        aperture: float,
        zoom_position: float = 0.5,
    ) -> "OpticsInput":
        return cls(catalog.camera(camera_id), catalog.lens(lens_id), aperture, zoom_position)

    @property
    def focal_length(self) -> float:
        return self.lens.effective_focal_length(self.zoom_position)

    @property
    def circle_of_confusion(self) -> float:
        return circle_of_confusion(self.camera.sensor_type, self.camera.sensor_width)


class OpticsCalculator:
    """
    Optics figures for one camera/lens/aperture selection.

    Example usage:
        catalog = HardwareCatalog.default()
        optics = OpticsCalculator(OpticsInput.from_catalog(catalog, "sony-a7r-iv", "sony-e-50mm-f1.8", 8.0))
        optics.footprint(80.0)
        optics.depth_of_field(80.0)
    """

    def __init__(self, optics_input: OpticsInput):
        self.input = optics_input
        self.camera = optics_input.camera
        self.focal_length = optics_input.focal_length
        self.aperture = optics_input.aperture
        self.coc = optics_input.circle_of_confusion

        logger.debug(
            f"Optics: {self.camera.id} with {optics_input.lens.id} at {self.focal_length:.2f} mm "
            f"f/{self.aperture}, CoC {self.coc:.4f} mm"
        )

    @property
    def horizontal_fov(self) -> float:
        return field_of_view(self.focal_length, self.camera.sensor_width)

    @property
    def vertical_fov(self) -> float:
        return field_of_view(self.focal_length, self.camera.sensor_height)

    @property
    def hyperfocal(self) -> float:
        return hyperfocal_distance(self.focal_length, self.aperture, self.coc)

    def gsd(self, distance_m: float) -> float:
        return ground_sample_distance(
            distance_m, self.focal_length, self.camera.sensor_width, self.camera.image_width
        )

    def altitude_for_gsd(self, target_gsd_cm: float) -> float:
        return altitude_for_gsd(
            target_gsd_cm, self.focal_length, self.camera.sensor_width, self.camera.image_width
        )

    def footprint(self, altitude_m: float) -> Footprint:
        return footprint(self.camera, self.input.lens, altitude_m, self.input.zoom_position)

    def spacing(self, altitude_m: float, forward_overlap: float, side_overlap: float) -> Spacing:
        return waypoint_spacing(self.footprint(altitude_m), forward_overlap, side_overlap)

    def depth_of_field(self, focus_distance_m: float) -> DOFResult:
        return depth_of_field(focus_distance_m, self.focal_length, self.aperture, self.coc)

    def facade_vertical_spacing(self, standoff_m: float, overlap_percent: float) -> float:
        return facade_vertical_spacing(standoff_m, self.vertical_fov, overlap_percent)

    def photogrammetry_parameters(
        self, altitude_m: float, forward_overlap: float, side_overlap: float
    ) -> PhotogrammetryParameters:
        """GSD, footprint, spacing and image density for a nadir survey."""
        fp = self.footprint(altitude_m)
        spacing = waypoint_spacing(fp, forward_overlap, side_overlap)
        effective = spacing.forward * spacing.side

        return PhotogrammetryParameters(
            altitude=altitude_m,
            gsd=self.gsd(altitude_m),
            footprint=fp,
            spacing=spacing,
            area_coverage=fp.area,
            effective_area_coverage=effective,
            images_per_hectare=SQUARE_METERS_PER_HECTARE / effective,
        )

    def facade_parameters(
        self, building_height_m: float, standoff_m: float, vertical_overlap: float
    ) -> FacadeParameters:
        """
        GSD, footprint, pass spacing and pitch for scanning a façade.

        pass_count = ceil(building_height / vertical_spacing), zero for a
        zero-height building.
        """
        _require_non_negative("Building height", building_height_m)
        spacing = self.facade_vertical_spacing(standoff_m, vertical_overlap)

        return FacadeParameters(
            standoff=standoff_m,
            gsd=self.gsd(standoff_m),
            footprint=self.footprint(standoff_m),
            vertical_spacing=spacing,
            camera_pitch=facade_camera_pitch(building_height_m, standoff_m),
            pass_count=math.ceil(building_height_m / spacing - 1e-9),
        )
