"""Tests for the orientation estimator."""

import json
import math
import pytest
import numpy as np

from compass_fusion.core.config import Config, FusionMode
from compass_fusion.core.errors import DegenerateInputError
from compass_fusion.core.euler import EulerAngles
from compass_fusion.core.types import SensorChannel, SensorSample
from compass_fusion.fusion.estimator import (
    OrientationEstimator,
    compute_heading,
    display_rotation,
)


class TestComputeHeading:
    """Tests for the heading formula."""

    @pytest.mark.parametrize("alpha,expected", [
        (0.0, 0),
        (0.1, 359),
        (359.9, 0),
        (90.0, 270),
        (270.0, 90),
        (180.0, 180),
        (360.0, 0),
        (-90.0, 90),
        (10.5, 349),
    ])
    def test_heading(self, alpha, expected):
        """Heading is (360 - alpha) mod 360, floored."""
        assert compute_heading(alpha) == expected

    def test_range(self):
        """Heading is always in [0, 360)."""
        for alpha in np.linspace(-720, 720, 1441):
            assert 0 <= compute_heading(float(alpha)) < 360


class TestDisplayRotation:
    """Tests for the screen orientation compensation."""

    def test_zero_screen_angle(self):
        """No screen rotation: matrix equals the estimate's."""
        e = EulerAngles(30.0, 10.0, 5.0)
        np.testing.assert_allclose(
            display_rotation(e).to_array(),
            e.to_rotation_matrix().to_array(),
            atol=1e-12,
        )

    def test_screen_angle_subtracts_yaw(self):
        """Landscape screen turns the displayed yaw back."""
        m = display_rotation(EulerAngles(100.0, 0.0, 0.0), 90.0)
        assert EulerAngles.from_rotation_matrix(m).alpha == pytest.approx(10.0)


class TestOrientationEstimator:
    """Tests for OrientationEstimator."""

    def test_initial_state(self):
        """New estimator is at zero with heading 0."""
        est = OrientationEstimator()
        assert est.mode is FusionMode.COMPLEMENTARY
        assert est.heading == 0
        assert est.euler == EulerAngles()
        assert est.snapshot.timestamp_us is None
        assert est.rotation_matrix.is_orthonormal()

    def test_field_along_y_is_north(self, make_config, flat_accelerometer, north_field):
        """Flat device, field along +y: heading 0."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update(flat_accelerometer)
        snapshot = est.update(north_field)

        assert snapshot is not None
        assert est.euler.alpha == pytest.approx(0.0, abs=1e-9)
        assert est.heading == 0

    def test_field_along_x(self, make_config, flat_accelerometer):
        """Flat device, field (20, 0, -40): alpha 90, heading 270."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update_accelerometer(0.0, 0.0, 9.81, 1_000_000)
        est.update_magnetometer(20.0, 0.0, -40.0, 1_000_000)

        assert est.euler.alpha == pytest.approx(90.0)
        assert est.heading == 270

    def test_magnetometer_without_gravity(self, make_config):
        """Magnetometer before any accelerometer sample changes nothing."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update_magnetometer(20.0, 0.0, -40.0, 1_000_000)

        assert est.euler == EulerAngles()
        assert est.heading == 0

    def test_non_driver_sample_is_cached(self, make_config, flat_accelerometer):
        """Samples from other channels do not publish a snapshot."""
        est = OrientationEstimator(make_config(FusionMode.COMPLEMENTARY))
        before = est.snapshot

        assert est.update(flat_accelerometer) is None
        assert est.snapshot is before
        assert est.stats.driver_updates == 0

    def test_degenerate_input_keeps_estimate(self, make_config, flat_accelerometer):
        """Field parallel to gravity is counted and skipped."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update(flat_accelerometer)
        est.update(SensorSample.magnetometer(20.0, 0.0, -40.0, 1_100_000))
        before = est.snapshot

        result = est.update(SensorSample.magnetometer(0.0, 0.0, -40.0, 1_200_000))

        assert result is None
        assert est.snapshot is before
        assert est.euler.alpha == pytest.approx(90.0)
        assert est.stats.degenerate_updates == 1

    def test_free_fall_is_degenerate(self, make_config, north_field):
        """Zero gravity cannot be normalized."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update_accelerometer(0.0, 0.0, 0.0, 1_000_000)
        assert est.update(north_field) is None
        assert est.stats.degenerate_updates == 1

    def test_determinant_threshold_from_config(self, make_config, flat_accelerometer, north_field):
        """The configured determinant threshold guards the display rotation."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER, min_determinant=2.0))
        before = est.snapshot
        est.update(flat_accelerometer)

        assert est.update(north_field) is None
        assert est.stats.degenerate_updates == 1
        assert est.snapshot is before
        assert est.heading == 0

    def test_screen_orientation_failure_keeps_angle(self, make_config):
        """A rejected screen change leaves the published snapshot alone."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE, min_determinant=2.0))
        before = est.snapshot

        with pytest.raises(DegenerateInputError):
            est.set_screen_orientation(90.0)

        assert est.snapshot is before
        assert est.heading == 0

    def test_non_finite_sample_rejected(self, make_config):
        """NaN samples never reach the filters."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        result = est.update_gyroscope(float("nan"), 0.0, 0.0, 1_000_000)

        assert result is None
        assert est.stats.rejected_samples == 1
        assert est.stats.driver_updates == 0
        assert est.euler.is_finite()

    def test_backwards_timestamp_rejected(self, make_config):
        """A sample older than the last one on its channel is dropped."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        est.update_gyroscope(0.0, 0.0, 0.0, 2_000_000)
        assert est.update_gyroscope(0.0, 0.0, 1.0, 1_000_000) is None
        assert est.stats.rejected_samples == 1

    def test_gyroscope_integration(self, make_config):
        """First driving sample has dt = 0, later ones integrate."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        rate = math.radians(10.5)

        est.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        assert est.euler.alpha == pytest.approx(0.0)

        est.update_gyroscope(0.0, 0.0, rate, 2_000_000)
        assert est.euler.alpha == pytest.approx(10.5)
        assert est.heading == 349

        est.update_gyroscope(0.0, 0.0, rate, 3_000_000)
        assert est.euler.alpha == pytest.approx(21.0)

    def test_max_dt_clamps_gap(self, make_config):
        """A gap longer than max_dt_s is integrated as max_dt_s."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE, max_dt_s=0.1))
        rate = math.radians(10.0)

        est.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        est.update_gyroscope(0.0, 0.0, rate, 3_000_000)

        assert est.euler.alpha == pytest.approx(1.0)

    def test_unbounded_dt_by_default(self, make_config):
        """Without max_dt_s a long gap is integrated in full."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        rate = math.radians(10.0)

        est.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        est.update_gyroscope(0.0, 0.0, rate, 3_000_000)

        assert est.euler.alpha == pytest.approx(20.0)

    def test_accelerometer_mode(self, make_config):
        """Accelerometer mode updates on every accelerometer sample."""
        est = OrientationEstimator(make_config(FusionMode.ACCELEROMETER))
        snapshot = est.update_accelerometer(0.0, 9.81, 0.0, 1_000_000)

        assert snapshot is not None
        assert est.euler.beta == pytest.approx(90.0)
        assert est.euler.alpha == pytest.approx(0.0)

    def test_complementary_before_accelerometer(self, make_config):
        """Missing accelerometer data is read as zero, not an error."""
        est = OrientationEstimator(make_config(FusionMode.COMPLEMENTARY, weight=0.5))
        snapshot = est.update_gyroscope(0.0, 0.0, 0.0, 1_000_000)

        assert snapshot is not None
        assert est.euler == EulerAngles(0.0, 0.0, 0.0)

    @pytest.mark.parametrize("mode", [FusionMode.COMPLEMENTARY, FusionMode.KALMAN])
    def test_stationary_device(self, make_config, stationary_samples, mode):
        """A still, flat device stays level."""
        est = OrientationEstimator(make_config(mode))
        for sample in stationary_samples:
            est.update(sample)

        assert est.stats.driver_updates == 50
        assert est.stats.rejected_samples == 0
        assert abs(est.euler.beta) < 0.5
        assert abs(est.euler.gamma) < 0.5

    def test_screen_orientation(self, make_config):
        """Screen orientation rotates the displayed heading only."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        rate = math.radians(10.5)
        est.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        est.update_gyroscope(0.0, 0.0, rate, 2_000_000)

        snapshot = est.set_screen_orientation(90.0)

        assert snapshot.heading == 79
        assert snapshot.display_euler.alpha == pytest.approx(280.5)
        assert est.euler.alpha == pytest.approx(10.5)

    def test_screen_orientation_from_config(self, make_config):
        """Configured screen angle applies from the first snapshot."""
        cfg = make_config(FusionMode.GYROSCOPE)
        cfg.display.screen_orientation_deg = 90.5
        est = OrientationEstimator(cfg)
        assert est.heading == 90

    def test_snapshots_are_immutable(self, make_config):
        """Each update publishes a new snapshot; old ones keep their values."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        est.update_gyroscope(0.0, 0.0, math.radians(10.5), 1_000_000)
        first = est.snapshot

        est.update_gyroscope(0.0, 0.0, math.radians(10.5), 2_000_000)

        assert est.snapshot is not first
        assert first.euler.alpha == pytest.approx(0.0)
        assert first.timestamp_us == 1_000_000
        with pytest.raises(AttributeError):
            first.heading = 5

    def test_snapshot_to_dict_is_json(self, make_config, flat_accelerometer, north_field):
        """Snapshot dictionaries serialize to JSON."""
        est = OrientationEstimator(make_config(FusionMode.MAGNETOMETER))
        est.update(flat_accelerometer)
        snapshot = est.update(north_field)

        data = json.loads(json.dumps(snapshot.to_dict()))

        assert data["mode"] == "magnetometer"
        assert data["heading"] == 0
        assert data["timestamp_us"] == 1_000_000
        assert len(data["rotation"]) == 9

    def test_snapshot_quaternion_matches_rotation(self, make_config):
        """Quaternion and matrix in a snapshot describe the same rotation."""
        est = OrientationEstimator(make_config(FusionMode.ACCELEROMETER))
        snapshot = est.update_accelerometer(2.0, 3.0, 9.0, 1_000_000)

        from compass_fusion.core.rotation import RotationMatrix
        np.testing.assert_allclose(
            RotationMatrix.from_quaternion(snapshot.quaternion).to_array(),
            snapshot.rotation,
            atol=1e-9,
        )

    def test_reset(self, make_config):
        """Reset forgets the estimate, caches and timestamps."""
        est = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        rate = math.radians(10.0)
        est.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        est.update_gyroscope(0.0, 0.0, rate, 2_000_000)

        est.reset()

        assert est.euler == EulerAngles()
        assert est.heading == 0
        assert est.stats.total_samples == 0

        # Older timestamps are accepted again and the first dt is zero.
        est.update_gyroscope(0.0, 0.0, rate, 500_000)
        assert est.euler.alpha == pytest.approx(0.0)
        assert est.stats.rejected_samples == 0

    def test_instances_are_independent(self, make_config):
        """Two estimators share no state."""
        a = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        b = OrientationEstimator(make_config(FusionMode.GYROSCOPE))
        rate = math.radians(10.0)

        a.update_gyroscope(0.0, 0.0, rate, 1_000_000)
        a.update_gyroscope(0.0, 0.0, rate, 2_000_000)
        b.update_gyroscope(0.0, 0.0, rate, 1_500_000)

        assert a.euler.alpha == pytest.approx(10.0)
        assert b.euler.alpha == pytest.approx(0.0)
        assert b.stats.total_samples == 1

    def test_monitor_records_accepted_samples(self, stationary_samples):
        """Rate monitor sees every accepted sample per channel."""
        est = OrientationEstimator(Config())
        for sample in stationary_samples:
            est.update(sample)

        stats = est.monitor.get_stats(SensorChannel.ACCELEROMETER)
        assert stats.sample_count == 50
        assert stats.effective_rate_hz == pytest.approx(50.0)
        assert stats.dropped_samples == 0

    def test_monitoring_disabled(self, make_config):
        """No monitor when monitoring is off."""
        est = OrientationEstimator(make_config(FusionMode.KALMAN))
        assert est.monitor is None
