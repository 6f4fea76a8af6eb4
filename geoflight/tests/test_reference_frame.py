"""
Tests for the takeoff-centric reference frame and origin manager.
"""

import logging
import re
import threading

import pytest
from numpy.testing import assert_allclose

from geoflight.errors import ErrorKind, NoReferenceFrameError
from geoflight.reference_frame import OriginManager, ReferenceFrame
from geoflight.transforms import GeodeticCoordinate, GeodeticTransform, LocalCoordinate


ORIGIN_A = GeodeticCoordinate(37.7749, -122.4194, 0.0)
ORIGIN_B = GeodeticCoordinate(37.7800, -122.4100, 5.0)


class TestReferenceFrame:
    """Tests for the immutable frame value."""

    def test_matches_stateless_transform(self):
        frame = ReferenceFrame(ORIGIN_A)
        point = GeodeticCoordinate(37.7760, -122.4170, 25.0)

        expected = GeodeticTransform.to_local(point, ORIGIN_A)
        assert_allclose(frame.to_local(point).as_array(), expected.as_array(), atol=1e-9)

    def test_origin_is_zero(self):
        frame = ReferenceFrame(ORIGIN_B)
        assert_allclose(frame.to_local(ORIGIN_B).as_array(), [0, 0, 0], atol=1e-6)

    def test_frames_compare_by_origin_and_generation(self):
        assert ReferenceFrame(ORIGIN_A, 1) == ReferenceFrame(ORIGIN_A, 1)
        assert ReferenceFrame(ORIGIN_A, 1) != ReferenceFrame(ORIGIN_A, 2)

    def test_reproject_preserves_geodetic_position(self):
        frame_a = ReferenceFrame(ORIGIN_A, 1)
        frame_b = ReferenceFrame(ORIGIN_B, 2)
        local_a = LocalCoordinate(120.0, -45.0, 30.0)

        local_b = frame_a.reproject(local_a, frame_b)
        before = frame_a.to_geodetic(local_a)
        after = frame_b.to_geodetic(local_b)

        assert after.latitude == pytest.approx(before.latitude, abs=1e-9)
        assert after.longitude == pytest.approx(before.longitude, abs=1e-9)
        assert after.altitude == pytest.approx(before.altitude, abs=1e-4)
        assert local_b != local_a

    def test_reproject_same_origin_is_identity(self):
        local = LocalCoordinate(1.0, 2.0, 3.0)
        assert ReferenceFrame(ORIGIN_A, 1).reproject(local, ReferenceFrame(ORIGIN_A, 5)) is local


class TestOriginManager:
    """Tests for origin replacement and the no-origin error."""

    def test_no_origin(self):
        manager = OriginManager()

        assert not manager.has_origin()
        with pytest.raises(NoReferenceFrameError) as exc_info:
            manager.local_to_global(LocalCoordinate(0, 0, 0))
        assert exc_info.value.kind is ErrorKind.NO_REFERENCE_FRAME
        assert "NoReferenceFrame" in str(exc_info.value)

        with pytest.raises(NoReferenceFrameError):
            manager.global_to_local(ORIGIN_A)

    def test_set_origin_returns_previous(self):
        manager = OriginManager()

        assert manager.set_origin(ORIGIN_A) is None
        assert manager.has_origin()
        assert manager.set_origin(ORIGIN_B) == ORIGIN_A
        assert manager.frame.origin == ORIGIN_B

    def test_generation_increments(self):
        manager = OriginManager(ORIGIN_A)
        first = manager.frame

        manager.set_origin(ORIGIN_B)
        second = manager.frame

        assert second.generation == first.generation + 1
        assert manager.generation == second.generation
        assert not manager.is_current(first)
        assert manager.is_current(second)

    def test_round_trip_through_manager(self):
        manager = OriginManager(ORIGIN_A)
        point = GeodeticCoordinate(37.7755, -122.4188, 12.0)

        back = manager.local_to_global(manager.global_to_local(point))
        assert back.latitude == pytest.approx(point.latitude, abs=1e-9)
        assert back.longitude == pytest.approx(point.longitude, abs=1e-9)
        assert back.altitude == pytest.approx(point.altitude, abs=1e-4)

    def test_snapshot_survives_origin_change(self):
        """A retained frame snapshot still converts in its own frame."""
        manager = OriginManager(ORIGIN_A)
        snapshot = manager.frame
        local = snapshot.to_local(GeodeticCoordinate(37.7760, -122.4194, 0.0))

        manager.set_origin(ORIGIN_B)

        back = snapshot.to_geodetic(local)
        assert back.latitude == pytest.approx(37.7760, abs=1e-9)

    def test_concurrent_set_origin_logs_each_generation(self, caplog):
        """Every origin change logs the generation it created."""
        manager = OriginManager()
        origins = [GeodeticCoordinate(37.77 + i * 1e-4, -122.42, 0.0) for i in range(32)]

        with caplog.at_level(logging.INFO, logger="geoflight.reference_frame"):
            threads = [threading.Thread(target=manager.set_origin, args=(o,)) for o in origins]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        logged = [
            int(re.match(r"Reference frame (\d+) set", record.getMessage()).group(1))
            for record in caplog.records
            if record.name == "geoflight.reference_frame"
        ]
        assert sorted(logged) == list(range(1, 33))
        assert manager.generation == 32
