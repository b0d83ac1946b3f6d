"""
Test suite for the CTRV motion model and angle/coordinate utilities.

Tests cover:
- Angle normalization
- Polar/Cartesian conversions
- CTRV propagation in the turning and straight-line branches
- Process noise injection

Author: Sensor Fusion Project
"""

import pytest
import numpy as np
import numpy.testing as npt

from ..motion_models import (
    CTRVModel, ModelParameters, normalize_angle,
    polar_to_cartesian, cartesian_to_polar
)


class TestNormalizeAngle:
    """Test angle wrapping into (-pi, pi]."""

    def test_angle_in_range_unchanged(self):
        """Angles already in range are returned exactly."""
        for angle in [0.0, 0.5, -0.5, 3.0, -3.0, np.pi]:
            assert normalize_angle(angle) == angle

    def test_minus_pi_maps_to_pi(self):
        """The lower bound is excluded."""
        assert normalize_angle(-np.pi) == pytest.approx(np.pi)

    def test_wraps_large_angles(self):
        """Angles outside the interval are shifted by multiples of 2*pi."""
        assert normalize_angle(3 * np.pi / 2) == pytest.approx(-np.pi / 2)
        assert normalize_angle(-3 * np.pi / 2) == pytest.approx(np.pi / 2)
        assert normalize_angle(7.0) == pytest.approx(7.0 - 2 * np.pi)
        assert normalize_angle(-20.0) == pytest.approx(-20.0 + 6 * np.pi)

    def test_random_angles_property(self, random_seed):
        """Result lies in (-pi, pi] and differs from input by k * 2*pi."""
        angles = np.random.uniform(-100.0, 100.0, 1000)
        wrapped = normalize_angle(angles)

        assert np.all(wrapped > -np.pi)
        assert np.all(wrapped <= np.pi)

        turns = (angles - wrapped) / (2 * np.pi)
        npt.assert_allclose(turns, np.round(turns), atol=1e-9)

    def test_array_input_returns_array(self):
        """Arrays are normalized element-wise."""
        result = normalize_angle(np.array([0.0, 4.0, -4.0]))

        assert isinstance(result, np.ndarray)
        npt.assert_allclose(result, [0.0, 4.0 - 2 * np.pi, -4.0 + 2 * np.pi])

    def test_scalar_input_returns_float(self):
        assert isinstance(normalize_angle(1.0), float)

    def test_non_finite_raises(self):
        """NaN and infinity cannot be wrapped."""
        with pytest.raises(ValueError):
            normalize_angle(np.nan)
        with pytest.raises(ValueError):
            normalize_angle(np.inf)


class TestCoordinateConversions:
    """Test polar/Cartesian conversions."""

    def test_polar_to_cartesian(self):
        x, y = polar_to_cartesian(5.0, 0.0)
        assert x == pytest.approx(5.0)
        assert y == pytest.approx(0.0)

        x, y = polar_to_cartesian(2.0, np.pi / 2)
        assert x == pytest.approx(0.0, abs=1e-12)
        assert y == pytest.approx(2.0)

    def test_cartesian_to_polar(self):
        range_val, azimuth, range_rate = cartesian_to_polar(3.0, 4.0, 3.0, 4.0)

        assert range_val == pytest.approx(5.0)
        assert azimuth == pytest.approx(np.arctan2(4.0, 3.0))
        assert range_rate == pytest.approx(5.0)

    def test_cartesian_to_polar_at_origin(self):
        """Range rate is zero at the origin instead of dividing by zero."""
        range_val, azimuth, range_rate = cartesian_to_polar(0.0, 0.0, 1.0, 1.0)

        assert range_val == 0.0
        assert range_rate == 0.0

    def test_round_trip(self):
        range_val, azimuth, _ = cartesian_to_polar(-2.0, 1.5)
        x, y = polar_to_cartesian(range_val, azimuth)

        assert x == pytest.approx(-2.0)
        assert y == pytest.approx(1.5)


class TestModelParameters:
    """Test CTRV model parameters."""

    def test_defaults(self):
        params = ModelParameters()

        assert params.std_a == 0.8
        assert params.std_yawdd == 0.6
        assert params.min_yaw_rate == 1e-4

    def test_invalid_noise_rejected(self):
        with pytest.raises(ValueError):
            ModelParameters(std_a=0.0)
        with pytest.raises(ValueError):
            ModelParameters(std_yawdd=-1.0)

    def test_process_noise_covariance(self):
        model = CTRVModel(ModelParameters(std_a=2.0, std_yawdd=0.5))

        npt.assert_array_almost_equal(model.get_process_noise_covariance(), np.diag([4.0, 0.25]))


class TestCTRVModel:
    """Test CTRV state propagation."""

    @pytest.fixture
    def model(self):
        return CTRVModel()

    def test_dimensions(self, model):
        assert model.state_dim == 5
        assert model.augmented_dim == 7

    def test_straight_line_motion(self, model):
        """Zero turn rate moves along the heading."""
        state = np.array([1.0, 2.0, 2.0, np.pi / 2, 0.0])

        predicted = model.predict_state(state, 1.5)

        npt.assert_array_almost_equal(predicted, [1.0, 5.0, 2.0, np.pi / 2, 0.0])

    def test_turning_motion(self, model):
        """Quarter turn at unit speed follows the circular arc."""
        state = np.array([0.0, 0.0, 1.0, 0.0, np.pi / 2])

        predicted = model.predict_state(state, 1.0)

        radius = 2.0 / np.pi
        npt.assert_array_almost_equal(predicted, [radius, radius, 1.0, np.pi / 2, np.pi / 2])

    def test_small_turn_rate_uses_straight_line(self, model):
        """Turn rates below the threshold use the straight-line equations."""
        state = np.array([0.0, 0.0, 10.0, 0.3, 5e-5])

        predicted = model.predict_state(state, 2.0)

        assert predicted[0] == pytest.approx(20.0 * np.cos(0.3))
        assert predicted[1] == pytest.approx(20.0 * np.sin(0.3))
        assert predicted[3] == pytest.approx(0.3 + 1e-4)

    def test_turning_and_straight_branches_agree_near_threshold(self, model):
        """Both branches give nearly the same position just above the threshold."""
        straight = model.predict_state(np.array([0.0, 0.0, 5.0, 1.0, 0.0]), 0.1)
        turning = model.predict_state(np.array([0.0, 0.0, 5.0, 1.0, 2e-4]), 0.1)

        npt.assert_allclose(turning[:2], straight[:2], atol=1e-4)

    def test_speed_and_turn_rate_constant_without_noise(self, model):
        state = np.array([3.0, -1.0, 4.0, 0.7, 0.25])

        predicted = model.predict_state(state, 0.8)

        assert predicted[2] == state[2]
        assert predicted[4] == state[4]

    def test_longitudinal_acceleration_noise(self, model):
        """Acceleration noise moves position along the heading and changes speed."""
        state = np.zeros(5)

        predicted = model.predict_state(state, 2.0, noise=np.array([1.0, 0.0]))

        npt.assert_array_almost_equal(predicted, [2.0, 0.0, 2.0, 0.0, 0.0])

    def test_yaw_acceleration_noise(self, model):
        """Yaw acceleration noise changes heading and turn rate."""
        state = np.zeros(5)

        predicted = model.predict_state(state, 2.0, noise=np.array([0.0, 0.5]))

        npt.assert_array_almost_equal(predicted, [0.0, 0.0, 0.0, 1.0, 1.0])

    def test_yaw_is_normalized(self, model):
        state = np.array([0.0, 0.0, 0.0, 3.1, 1.0])

        predicted = model.predict_state(state, 1.0)

        assert predicted[3] == pytest.approx(4.1 - 2 * np.pi)

    def test_zero_dt_leaves_state_unchanged(self, model, sample_state):
        predicted = model.predict_state(sample_state, 0.0, noise=np.array([0.3, -0.2]))

        npt.assert_array_almost_equal(predicted, sample_state, decimal=12)

    def test_negative_dt_rejected(self, model, sample_state):
        with pytest.raises(ValueError):
            model.predict_state(sample_state, -0.1)

    def test_predict_sigma_points_shape(self, model):
        sigma_points = np.zeros((7, 15))
        sigma_points[2] = 1.0

        predicted = model.predict_sigma_points(sigma_points, 0.1)

        assert predicted.shape == (5, 15)
        npt.assert_array_almost_equal(predicted[0], np.full(15, 0.1))

    def test_predict_sigma_points_matches_per_column(self, model, random_seed):
        """Vectorized propagation matches propagating each column alone."""
        sigma_points = np.random.normal(0.0, 1.0, (7, 15))
        sigma_points[4, :3] = 0.0  # exercise the straight-line branch

        predicted = model.predict_sigma_points(sigma_points, 0.3)

        for i in range(15):
            column = model.predict_state(sigma_points[:5, i], 0.3, noise=sigma_points[5:, i])
            npt.assert_array_almost_equal(predicted[:, i], column)

    def test_wrong_shape_rejected(self, model):
        with pytest.raises(ValueError):
            model.predict_sigma_points(np.zeros((5, 15)), 0.1)
