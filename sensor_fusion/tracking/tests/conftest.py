"""
Pytest configuration and shared fixtures for tracking tests.

This module provides common fixtures and configuration used across
all tracking system tests.
"""

import pytest
import numpy as np
from typing import List

from ...config_loader import FilterConfig
from ..kalman_filters import UnscentedKalmanFilter
from ..measurement import MeasurementPackage, SensorType
from ..motion_models import CTRVModel, cartesian_to_polar


@pytest.fixture
def random_seed():
    """Set random seed for reproducible tests."""
    np.random.seed(42)
    return 42


@pytest.fixture
def default_config():
    """Filter configuration with the built-in tuning."""
    return FilterConfig()


@pytest.fixture
def ukf(default_config):
    """Uninitialized filter with default configuration."""
    return UnscentedKalmanFilter(default_config)


@pytest.fixture
def sample_state():
    """Sample CTRV state [px, py, v, yaw, yaw_rate]."""
    return np.array([5.7441, 1.3800, 2.2049, 0.5015, 0.3528])


@pytest.fixture
def sample_covariance():
    """Sample 5x5 state covariance."""
    return np.array([
        [0.0043, -0.0013, 0.0030, -0.0022, -0.0020],
        [-0.0013, 0.0077, 0.0011, 0.0071, 0.0060],
        [0.0030, 0.0011, 0.0054, 0.0007, 0.0008],
        [-0.0022, 0.0071, 0.0007, 0.0098, 0.0100],
        [-0.0020, 0.0060, 0.0008, 0.0100, 0.0123]
    ])


@pytest.fixture
def make_measurement():
    """Factory for measurement packages with timestamps in seconds."""
    def _make(sensor_type: SensorType, values, t_seconds: float = 0.0) -> MeasurementPackage:
        return MeasurementPackage(sensor_type, int(round(t_seconds * 1e6)), np.asarray(values, float))
    return _make


@pytest.fixture
def ctrv_trajectory():
    """Generate a noise-free constant turn trajectory."""
    def _generate(initial_state=(10.0, 5.0, 3.0, 0.5, 0.1), num_points: int = 100,
                  dt: float = 0.05) -> List[np.ndarray]:
        """
        Propagate the true state with the CTRV model.

        Args:
            initial_state: True initial state
            num_points: Number of trajectory points
            dt: Time step

        Returns:
            List of true states, one per time step
        """
        model = CTRVModel()
        states = [np.asarray(initial_state, dtype=float)]
        for _ in range(num_points - 1):
            states.append(model.predict_state(states[-1], dt))
        return states

    return _generate


@pytest.fixture
def radar_measurements_of():
    """Convert true states to noise-free radar measurement packages."""
    def _convert(states: List[np.ndarray], dt: float = 0.05) -> List[MeasurementPackage]:
        packages = []
        for i, state in enumerate(states):
            px, py, v, yaw = state[:4]
            z = cartesian_to_polar(px, py, v * np.cos(yaw), v * np.sin(yaw))
            packages.append(MeasurementPackage(SensorType.RADAR, int(round(i * dt * 1e6)), np.array(z)))
        return packages

    return _convert


@pytest.fixture
def assert_positive_definite():
    """Utility to assert matrix is positive definite."""
    def _check_positive_definite(matrix: np.ndarray, tolerance: float = 0.0):
        """Check if matrix is positive definite."""
        eigenvals = np.linalg.eigvalsh(0.5 * (matrix + matrix.T))
        assert np.all(eigenvals > tolerance), f"Matrix is not positive definite. Min eigenvalue: {np.min(eigenvals)}"
        return True

    return _check_positive_definite


@pytest.fixture
def assert_symmetric():
    """Utility to assert matrix is symmetric."""
    def _check_symmetric(matrix: np.ndarray, tolerance: float = 1e-12):
        """Check if matrix is symmetric."""
        assert np.allclose(matrix, matrix.T, atol=tolerance), "Matrix is not symmetric"
        return True

    return _check_symmetric


# Pytest configuration
def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    for item in items:
        if "convergence" in item.nodeid:
            item.add_marker(pytest.mark.slow)
        if "integration" in item.nodeid or "scenario" in item.nodeid:
            item.add_marker(pytest.mark.integration)
