"""
Tests for camera optics module.

These tests verify:
    - Field of view and ground sample distance
    - Circle of confusion tiers
    - Depth of field, including the unbounded far limit
    - Footprint and image spacing
    - Rejection of degenerate inputs
"""

import math

import pytest

from geoflight.config import CameraProfile, HardwareCatalog, LensProfile
from geoflight.errors import ErrorKind, InvalidOpticsInputError
from geoflight.optics import (
    DOFResult,
    Footprint,
    OpticsCalculator,
    OpticsInput,
    altitude_for_gsd,
    circle_of_confusion,
    circle_of_confusion_from_crop,
    crop_factor,
    depth_of_field,
    facade_camera_pitch,
    facade_vertical_spacing,
    far_limit,
    field_of_view,
    footprint,
    ground_sample_distance,
    hyperfocal_distance,
    image_spacing,
    near_limit,
    total_dof,
    waypoint_spacing,
)


@pytest.fixture
def full_frame_camera():
    return CameraProfile(
        id="test-ff",
        sensor_width=35.7,
        sensor_height=23.8,
        image_width=9504,
        image_height=6336,
        sensor_type="Full Frame",
    )


@pytest.fixture
def fifty_mm():
    return LensProfile(id="test-50", focal_length=50.0, max_aperture=1.8, min_aperture=22.0)


@pytest.fixture
def calculator(full_frame_camera, fifty_mm):
    return OpticsCalculator(OpticsInput(full_frame_camera, fifty_mm, aperture=8.0))


class TestFieldOfView:

    def test_fifty_mm_full_frame(self):
        assert field_of_view(50.0, 36.0) == pytest.approx(math.degrees(2 * math.atan(0.36)))

    def test_equal_sensor_and_double_focal(self):
        """sensor == 2f gives exactly 90 degrees."""
        assert field_of_view(10.0, 20.0) == pytest.approx(90.0)

    @pytest.mark.parametrize("focal,sensor", [(0, 36), (-24, 36), (24, 0), (float("nan"), 36), (24, float("inf"))])
    def test_invalid(self, focal, sensor):
        with pytest.raises(InvalidOpticsInputError) as exc_info:
            field_of_view(focal, sensor)
        assert exc_info.value.kind is ErrorKind.INVALID_OPTICS_INPUT


class TestGroundSampleDistance:

    def test_known_value(self):
        # 100 m * 100 * 35.7 mm / (50 mm * 9504 px)
        assert ground_sample_distance(100, 50, 35.7, 9504) == pytest.approx(0.751262626, rel=1e-8)

    def test_scales_linearly_with_distance(self):
        assert ground_sample_distance(200, 50, 35.7, 9504) == pytest.approx(
            2 * ground_sample_distance(100, 50, 35.7, 9504)
        )

    def test_altitude_for_gsd_inverts(self):
        gsd = ground_sample_distance(83.0, 24, 23.5, 6000)
        assert altitude_for_gsd(gsd, 24, 23.5, 6000) == pytest.approx(83.0)

    def test_zero_distance(self):
        assert ground_sample_distance(0, 50, 35.7, 9504) == 0.0

    def test_invalid(self):
        with pytest.raises(InvalidOpticsInputError):
            ground_sample_distance(100, 0, 35.7, 9504)
        with pytest.raises(InvalidOpticsInputError):
            ground_sample_distance(-1, 50, 35.7, 9504)
        with pytest.raises(InvalidOpticsInputError):
            ground_sample_distance(100, 50, 35.7, 0)


class TestCircleOfConfusion:

    @pytest.mark.parametrize("sensor_type,width,expected", [
        ("Medium Format", 53.4, 53.4 / 1500),
        ("Full Frame", 35.7, 0.03),
        ("", 36.0, 0.03),
        ("APS-C", 23.5, 0.02),
        ("", 23.5, 0.02),
        ("", 20.0, 0.02),
        ("1-inch", 13.2, 0.011),
        ("", 10.0, 0.011),
        ("1/2-inch", 6.3, 0.005),
        (None, 9.99, 0.005),
    ])
    def test_tiers(self, sensor_type, width, expected):
        assert circle_of_confusion(sensor_type, width) == pytest.approx(expected)

    def test_tiers_checked_in_order(self):
        """The full frame tier matches before the APS-C tag and width tiers."""
        assert circle_of_confusion("APS-C", 36.0) == 0.03
        assert circle_of_confusion("Full Frame", 6.0) == 0.03

    def test_from_crop_factor(self):
        assert crop_factor(36.0, 24.0) == pytest.approx(1.0)
        assert circle_of_confusion_from_crop(1.0) == pytest.approx(0.03)

        crop = crop_factor(23.5, 15.6)
        assert crop == pytest.approx(math.hypot(36, 24) / math.hypot(23.5, 15.6))
        assert circle_of_confusion_from_crop(crop) == pytest.approx(0.03 / crop)

    def test_from_crop_factor_invalid(self):
        with pytest.raises(InvalidOpticsInputError):
            circle_of_confusion_from_crop(0.0)
        with pytest.raises(InvalidOpticsInputError):
            crop_factor(23.5, -1.0)


class TestDepthOfField:
    """Tests for hyperfocal, near and far limits."""

    def test_hyperfocal(self):
        # 24^2 / (8 * 0.03) / 1000
        assert hyperfocal_distance(24, 8, 0.03) == pytest.approx(2.4)

    def test_wide_angle_beyond_hyperfocal(self):
        """24 mm f/8 full frame focused at 50 m: everything from ~2.27 m is sharp."""
        result = depth_of_field(50.0, 24, 8, 0.03)

        assert result.hyperfocal == pytest.approx(2.4)
        assert math.isinf(result.far_limit)
        assert math.isinf(result.total_dof)
        assert result.is_unbounded
        # 50 * (2.4 - 0.024) / (2.4 + 50 - 0.048)
        assert result.near_limit == pytest.approx(2.269254, rel=1e-6)

    def test_finite_case(self):
        result = depth_of_field(5.0, 50, 8, 0.03)

        assert not result.is_unbounded
        assert result.far_limit > 5.0 > result.near_limit > 0
        assert result.total_dof == pytest.approx(result.far_limit - result.near_limit)

    @pytest.mark.parametrize("focal,aperture,coc", [
        (24, 8, 0.03), (50, 2.8, 0.03), (80, 11, 0.0356), (8.8, 4, 0.011), (4.5, 2.8, 0.005),
    ])
    def test_infinity_law(self, focal, aperture, coc):
        hyperfocal = hyperfocal_distance(focal, aperture, coc)

        for focus in [0.5, hyperfocal * 0.5, hyperfocal * 0.99, hyperfocal, hyperfocal * 1.01, 1000.0]:
            if focus <= focal / 1000:
                continue
            far = far_limit(focus, focal, aperture, coc)
            near = near_limit(focus, focal, aperture, coc)
            if focus >= hyperfocal:
                assert math.isinf(far)
                assert math.isinf(total_dof(near, far))
            else:
                assert math.isfinite(far)
                assert math.isfinite(total_dof(near, far))
                assert far > focus > near > 0

    def test_in_focus_description(self):
        result = depth_of_field(50.0, 24, 8, 0.03)
        assert result.in_focus_description() == "From 2.27m to infinity"

        bounded = DOFResult(5.0, 10.0, 3.38, 9.57, 6.19, 0.03)
        assert bounded.in_focus_description() == "From 3.38m to 9.57m"

    @pytest.mark.parametrize("focus,focal,aperture,coc", [
        (10, 0, 8, 0.03),
        (10, 24, 0, 0.03),
        (10, 24, -8, 0.03),
        (10, 24, 8, 0),
        (0, 24, 8, 0.03),
        (float("nan"), 24, 8, 0.03),
    ])
    def test_invalid(self, focus, focal, aperture, coc):
        with pytest.raises(InvalidOpticsInputError):
            depth_of_field(focus, focal, aperture, coc)


class TestFootprintAndSpacing:

    def test_footprint(self, full_frame_camera, fifty_mm):
        fp = footprint(full_frame_camera, fifty_mm, 100.0)

        # 100 m * 35.7 / 50 across, scaled by the image aspect ratio down
        assert fp.width == pytest.approx(71.4)
        assert fp.height == pytest.approx(47.6)

    def test_image_spacing(self):
        assert image_spacing(71.4, 75) == pytest.approx(17.85)
        assert image_spacing(47.6, 0) == pytest.approx(47.6)

    @pytest.mark.parametrize("overlap", [100, 120, -5, float("nan")])
    def test_image_spacing_invalid_overlap(self, overlap):
        with pytest.raises(InvalidOpticsInputError):
            image_spacing(50.0, overlap)

    def test_waypoint_spacing(self):
        spacing = waypoint_spacing(Footprint(80.0, 60.0), 75, 50)

        assert spacing.forward == pytest.approx(20.0)
        assert spacing.side == pytest.approx(30.0)

    def test_facade_vertical_spacing(self):
        expected = 2 * 5 * math.tan(math.radians(35)) * 0.8
        assert facade_vertical_spacing(5, 70, 20) == pytest.approx(expected)

        with pytest.raises(InvalidOpticsInputError):
            facade_vertical_spacing(0, 70, 20)
        with pytest.raises(InvalidOpticsInputError):
            facade_vertical_spacing(5, 180, 20)

    def test_facade_camera_pitch(self):
        assert facade_camera_pitch(20, 10) == pytest.approx(-45.0)
        assert facade_camera_pitch(0, 10) == pytest.approx(0.0)


class TestOpticsInput:

    def test_aperture_outside_lens_range(self, full_frame_camera, fifty_mm):
        with pytest.raises(InvalidOpticsInputError):
            OpticsInput(full_frame_camera, fifty_mm, aperture=1.4)
        with pytest.raises(InvalidOpticsInputError):
            OpticsInput(full_frame_camera, fifty_mm, aperture=32)

    def test_invalid_zoom_position(self, full_frame_camera, fifty_mm):
        with pytest.raises(InvalidOpticsInputError):
            OpticsInput(full_frame_camera, fifty_mm, aperture=8, zoom_position=1.5)

    def test_degenerate_camera(self, fifty_mm):
        camera = CameraProfile("broken", 0.0, 24.0, 6000, 4000, "Full Frame")
        with pytest.raises(InvalidOpticsInputError):
            OpticsInput(camera, fifty_mm, aperture=8)

    def test_from_catalog_zoom(self):
        catalog = HardwareCatalog.default()
        optics_input = OpticsInput.from_catalog(catalog, "sony-a7r-iv", "sony-e-24-70mm-f2.8-gm", 8.0)

        assert optics_input.focal_length == pytest.approx(47.0)
        assert optics_input.circle_of_confusion == 0.03

    def test_from_catalog_unknown_id(self):
        with pytest.raises(KeyError):
            OpticsInput.from_catalog(HardwareCatalog.default(), "no-such-camera", "sony-e-50mm-f1.8", 8.0)


class TestOpticsCalculator:

    def test_fov(self, calculator):
        assert calculator.horizontal_fov == pytest.approx(field_of_view(50, 35.7))
        assert calculator.vertical_fov == pytest.approx(field_of_view(50, 23.8))

    def test_gsd_and_footprint(self, calculator):
        assert calculator.gsd(100) == pytest.approx(ground_sample_distance(100, 50, 35.7, 9504))
        assert calculator.footprint(100).width == pytest.approx(71.4)

    def test_spacing(self, calculator):
        spacing = calculator.spacing(100, 75, 65)

        assert spacing.forward == pytest.approx(71.4 * 0.25)
        assert spacing.side == pytest.approx(47.6 * 0.35)

    def test_depth_of_field(self, calculator):
        result = calculator.depth_of_field(100.0)

        assert result.circle_of_confusion == 0.03
        assert result.hyperfocal == pytest.approx(calculator.hyperfocal)
        assert result.is_unbounded

    def test_facade_spacing_uses_vertical_fov(self, calculator):
        # tan(atan(23.8 / 100)) == 0.238
        assert calculator.facade_vertical_spacing(5, 20) == pytest.approx(2 * 5 * 0.238 * 0.8)

    def test_photogrammetry_parameters(self, calculator):
        params = calculator.photogrammetry_parameters(100, 75, 65)

        assert params.area_coverage == pytest.approx(71.4 * 47.6)
        assert params.effective_area_coverage == pytest.approx(params.spacing.forward * params.spacing.side)
        assert params.images_per_hectare == pytest.approx(10000 / params.effective_area_coverage)

    def test_facade_parameters(self, calculator):
        params = calculator.facade_parameters(10.0, 5.0, 20)

        assert params.vertical_spacing == pytest.approx(2 * 5 * 0.238 * 0.8)
        # ceil(10 / 1.904)
        assert params.pass_count == 6
        assert params.camera_pitch == pytest.approx(-45.0)
        assert params.gsd == pytest.approx(calculator.gsd(5.0))
        assert params.footprint.width == pytest.approx(3.57)
        assert params.footprint.height == pytest.approx(2.38)

    def test_facade_pass_count_edges(self, calculator):
        spacing = calculator.facade_vertical_spacing(5.0, 20)

        assert calculator.facade_parameters(0.0, 5.0, 20).pass_count == 0
        assert calculator.facade_parameters(3 * spacing, 5.0, 20).pass_count == 3
        with pytest.raises(InvalidOpticsInputError):
            calculator.facade_parameters(-1.0, 5.0, 20)
