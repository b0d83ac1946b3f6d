"""
Constant Turn Rate and Velocity (CTRV) motion model and angle utilities.

The CTRV model describes an object moving at constant speed while turning at
a constant yaw rate. Its state vector is:

    [px, py, v, yaw, yaw_rate]

Process noise enters as longitudinal acceleration (nu_a) and yaw acceleration
(nu_yawdd), which is why the model operates on augmented sigma points:

    [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ..constants import (
    STATE_DIM, AUGMENTED_DIM, PX, PY, V, YAW, YAW_RATE,
    TWO_PI, NoiseDefaults, NumericalLimits
)


def normalize_angle(angle: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Wrap an angle (or array of angles) into (-pi, pi].

    Angles already inside the interval are returned unchanged; others are
    shifted by an integer multiple of 2*pi.

    Args:
        angle: Angle in radians

    Returns:
        Wrapped angle with the same shape as the input
    """
    angle = np.asarray(angle, dtype=np.float64)
    if not np.all(np.isfinite(angle)):
        raise ValueError(f"Cannot normalize non-finite angle: {angle}")

    wrapped = np.mod(angle + np.pi, TWO_PI) - np.pi
    wrapped = np.where(wrapped <= -np.pi, wrapped + TWO_PI, wrapped)
    wrapped = np.where((angle > np.pi) | (angle <= -np.pi), wrapped, angle)

    if wrapped.ndim == 0:
        return float(wrapped)
    return wrapped


def polar_to_cartesian(range_val: float, azimuth: float) -> Tuple[float, float]:
    """
    Convert a polar position to 2D Cartesian coordinates

    Args:
        range_val: Range in meters
        azimuth: Azimuth (bearing) in radians

    Returns:
        (x, y) in meters
    """
    return range_val * np.cos(azimuth), range_val * np.sin(azimuth)


def cartesian_to_polar(x: float, y: float, vx: float = 0, vy: float = 0) -> Tuple[float, float, float]:
    """
    Convert a 2D Cartesian position and velocity to radar coordinates

    Args:
        x, y: Cartesian position
        vx, vy: Cartesian velocity (optional)

    Returns:
        (range, azimuth, range_rate) in (m, rad, m/s)
    """
    range_val = np.sqrt(x**2 + y**2)
    azimuth = np.arctan2(y, x)

    if range_val > 0:
        range_rate = (x * vx + y * vy) / range_val
    else:
        range_rate = 0.0

    return range_val, azimuth, range_rate


@dataclass(frozen=True)
class ModelParameters:
    """Parameters for the CTRV motion model"""
    std_a: float = NoiseDefaults.STD_A
    std_yawdd: float = NoiseDefaults.STD_YAWDD
    min_yaw_rate: float = NumericalLimits.MIN_YAW_RATE

    def __post_init__(self):
        if self.std_a <= 0 or self.std_yawdd <= 0:
            raise ValueError("Process noise standard deviations must be positive")
        if self.min_yaw_rate <= 0:
            raise ValueError("min_yaw_rate must be positive")


class CTRVModel:
    """
    Constant Turn Rate and Velocity motion model

    Propagates augmented sigma points through the nonlinear CTRV kinematics.
    Turn rates with magnitude at or below ``min_yaw_rate`` use the
    straight-line equations to avoid dividing by a near-zero turn rate.
    """

    def __init__(self, params: Optional[ModelParameters] = None):
        self.params = params or ModelParameters()

    @property
    def state_dim(self) -> int:
        return STATE_DIM

    @property
    def augmented_dim(self) -> int:
        return AUGMENTED_DIM

    def get_process_noise_covariance(self) -> np.ndarray:
        """
        Covariance of the two noise channels appended to the state

        Returns:
            2x2 diagonal matrix diag(std_a^2, std_yawdd^2)
        """
        return np.diag([self.params.std_a**2, self.params.std_yawdd**2])

    def predict_sigma_points(self, sigma_points_aug: np.ndarray, dt: float) -> np.ndarray:
        """
        Propagate augmented sigma points forward by dt

        Args:
            sigma_points_aug: Augmented sigma points, shape (7, n_sigma)
            dt: Elapsed time in seconds (must be non-negative)

        Returns:
            Predicted sigma points, shape (5, n_sigma), yaw normalized
        """
        if dt < 0:
            raise ValueError(f"Time step must be non-negative, got {dt}")

        sigma_points_aug = np.asarray(sigma_points_aug, dtype=np.float64)
        if sigma_points_aug.ndim != 2 or sigma_points_aug.shape[0] != AUGMENTED_DIM:
            raise ValueError(
                f"Augmented sigma points must have shape ({AUGMENTED_DIM}, n), "
                f"got {sigma_points_aug.shape}"
            )

        px, py, v, yaw, yawd, nu_a, nu_yawdd = sigma_points_aug

        turning = np.abs(yawd) > self.params.min_yaw_rate
        # Placeholder turn rate for straight-line columns, discarded by np.where
        safe_yawd = np.where(turning, yawd, 1.0)
        yaw_end = yaw + yawd * dt

        px_p = np.where(
            turning,
            px + v / safe_yawd * (np.sin(yaw_end) - np.sin(yaw)),
            px + v * dt * np.cos(yaw)
        )
        py_p = np.where(
            turning,
            py + v / safe_yawd * (np.cos(yaw) - np.cos(yaw_end)),
            py + v * dt * np.sin(yaw)
        )

        half_dt2 = 0.5 * dt * dt

        predicted = np.empty((STATE_DIM, sigma_points_aug.shape[1]))
        predicted[PX] = px_p + half_dt2 * nu_a * np.cos(yaw)
        predicted[PY] = py_p + half_dt2 * nu_a * np.sin(yaw)
        predicted[V] = v + nu_a * dt
        predicted[YAW] = normalize_angle(yaw_end + half_dt2 * nu_yawdd)
        predicted[YAW_RATE] = yawd + nu_yawdd * dt

        return predicted

    def predict_state(self, state: np.ndarray, dt: float,
                      noise: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Propagate a single state vector forward by dt

        Args:
            state: State vector [px, py, v, yaw, yaw_rate]
            dt: Elapsed time in seconds
            noise: Optional [nu_a, nu_yawdd] realization (default: zero)

        Returns:
            Predicted state vector
        """
        augmented = np.zeros(AUGMENTED_DIM)
        augmented[:STATE_DIM] = state
        if noise is not None:
            augmented[STATE_DIM:] = noise

        return self.predict_sigma_points(augmented.reshape(-1, 1), dt)[:, 0]
