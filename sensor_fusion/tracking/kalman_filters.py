"""
Unscented Kalman Filter for lidar/radar fusion with the CTRV motion model.

This module provides:
- Sigma point weights and augmented sigma point generation
- The unscented transform used to recover means and covariances
- The radar measurement model (range, bearing, range rate)
- UnscentedKalmanFilter, which fuses asynchronous lidar and radar measurements

Author: Sensor Fusion Project
"""

import logging
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from ..config_loader import FilterConfig
from ..constants import (
    STATE_DIM, AUGMENTED_DIM, N_SIGMA_POINTS, LIDAR_DIM, RADAR_DIM,
    PX, PY, V, YAW, PHI, NumericalLimits
)
from .measurement import MeasurementPackage, SensorType
from .motion_models import (
    CTRVModel, ModelParameters, normalize_angle, polar_to_cartesian
)

logger = logging.getLogger(__name__)


# ============================================================================
# FILTER EXCEPTIONS
# ============================================================================

class FilterError(Exception):
    """Base exception for filter faults"""
    pass

class ConfigurationFault(FilterError):
    """Raised when a covariance that must be positive definite is not"""
    pass

class DegenerateGeometryFault(FilterError):
    """Raised when a predicted radar range collapses to zero"""
    def __init__(self, column: int, range_val: float):
        self.column = column
        self.range_val = range_val
        super().__init__(
            f"Predicted range {range_val:.3g} m of sigma point {column} is degenerate"
        )

class SensorMismatchError(FilterError):
    """Raised when an update receives a measurement from the other sensor"""
    def __init__(self, expected: SensorType, received: SensorType):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expected {expected.name} measurement, received {received.name}"
        )

class FilterStateError(FilterError):
    """Raised when an operation is not allowed in the current filter state"""
    pass


class FilterState(Enum):
    """Lifecycle of a filter instance."""
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


# ============================================================================
# UNSCENTED TRANSFORM PRIMITIVES
# ============================================================================

def compute_sigma_weights(alpha: float, beta: float, kappa: float,
                          n_aug: int = AUGMENTED_DIM) -> Tuple[float, np.ndarray, np.ndarray]:
    """
    Compute the spread parameter and sigma point weights.

    Args:
        alpha: Spread of sigma points
        beta: Prior knowledge parameter (2 is optimal for Gaussian)
        kappa: Secondary scaling parameter
        n_aug: Dimension of the augmented state

    Returns:
        (lambda, mean weights, covariance weights)
    """
    lambda_val = alpha**2 * (n_aug + kappa) - n_aug
    n_sigma = 2 * n_aug + 1

    Wm = np.full(n_sigma, 1.0 / (2 * (n_aug + lambda_val)))
    Wm[0] = lambda_val / (n_aug + lambda_val)

    Wc = Wm.copy()
    Wc[0] = Wm[0] + (1 - alpha**2 + beta)

    return lambda_val, Wm, Wc


def generate_augmented_sigma_points(x: np.ndarray, P: np.ndarray, Q: np.ndarray,
                                    lambda_val: float) -> np.ndarray:
    """
    Generate sigma points for the state augmented with process noise.

    Args:
        x: State vector (5,)
        P: State covariance (5, 5)
        Q: Process noise covariance of the appended noise channels
        lambda_val: Spread parameter

    Returns:
        Augmented sigma points, shape (7, 15). Column 0 is the mean, columns
        1..7 and 8..14 are the mean plus and minus the scaled square root
        columns.

    Raises:
        ConfigurationFault: If the augmented covariance is not positive definite
    """
    n_x = len(x)
    n_aug = n_x + len(Q)

    x_aug = np.zeros(n_aug)
    x_aug[:n_x] = x

    P_aug = np.zeros((n_aug, n_aug))
    P_aug[:n_x, :n_x] = P
    P_aug[n_x:, n_x:] = Q

    try:
        L = np.linalg.cholesky(P_aug)
    except np.linalg.LinAlgError as e:
        raise ConfigurationFault(
            f"Augmented covariance is not positive definite: {e}"
        ) from e

    scaled = np.sqrt(lambda_val + n_aug) * L

    sigma_points = np.empty((n_aug, 2 * n_aug + 1))
    sigma_points[:, 0] = x_aug
    sigma_points[:, 1:n_aug + 1] = x_aug[:, None] + scaled
    sigma_points[:, n_aug + 1:] = x_aug[:, None] - scaled

    return sigma_points


def unscented_transform(sigma_points: np.ndarray, Wm: np.ndarray, Wc: np.ndarray,
                        angle_index: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recover mean and covariance from propagated sigma points.

    The mean is accumulated as offsets from the center point so that the large
    negative center weight of a small alpha does not cancel catastrophically.
    The covariance sums the off-center points' deviations from the center
    point, which keeps it positive semi-definite for any alpha and equals the
    full weighted sum when the transform is linear.

    Args:
        sigma_points: Sigma points, one per column, shape (n, 15)
        Wm: Mean weights
        Wc: Covariance weights
        angle_index: Row holding an angle to normalize (yaw or bearing)

    Returns:
        Mean and covariance
    """
    center = sigma_points[:, 0]

    offsets = sigma_points[:, 1:] - center[:, None]
    if angle_index is not None:
        offsets[angle_index] = normalize_angle(offsets[angle_index])

    mean = center + offsets @ Wm[1:]
    if angle_index is not None:
        mean[angle_index] = normalize_angle(mean[angle_index])

    cov = (offsets * Wc[1:]) @ offsets.T
    cov = 0.5 * (cov + cov.T)

    return mean, cov


def cross_covariance(sigma_points_x: np.ndarray, sigma_points_z: np.ndarray,
                     Wc: np.ndarray, x_angle_index: int = YAW,
                     z_angle_index: int = PHI) -> np.ndarray:
    """Weighted cross covariance of state and measurement deviations from their center points."""
    dx = sigma_points_x[:, 1:] - sigma_points_x[:, :1]
    dx[x_angle_index] = normalize_angle(dx[x_angle_index])

    dz = sigma_points_z[:, 1:] - sigma_points_z[:, :1]
    dz[z_angle_index] = normalize_angle(dz[z_angle_index])

    return (dx * Wc[1:]) @ dz.T


def radar_measurement_model(sigma_points: np.ndarray) -> np.ndarray:
    """
    Transform predicted state sigma points into radar measurement space.

    Args:
        sigma_points: Predicted sigma points, shape (5, n)

    Returns:
        Measurement sigma points [rho, phi, rho_dot], shape (3, n)

    Raises:
        DegenerateGeometryFault: If a predicted range is at or below the
            minimum range after clamping px
    """
    px = sigma_points[PX].copy()
    py = sigma_points[PY]
    v = sigma_points[V]
    yaw = sigma_points[YAW]

    # Only px is guarded; the sensor's forward axis is assumed to be x
    px[np.abs(px) < NumericalLimits.MIN_PX] = NumericalLimits.PX_CLAMP

    rho = np.hypot(px, py)
    degenerate = np.flatnonzero(rho <= NumericalLimits.MIN_RANGE)
    if degenerate.size:
        column = int(degenerate[0])
        raise DegenerateGeometryFault(column, float(rho[column]))

    Zsig = np.empty((RADAR_DIM, sigma_points.shape[1]))
    Zsig[0] = rho
    Zsig[1] = np.arctan2(py, px)
    Zsig[2] = (px * np.cos(yaw) * v + py * np.sin(yaw) * v) / rho

    return Zsig


def _cholesky(matrix: np.ndarray, name: str):
    """Factor a symmetric positive definite matrix or raise ConfigurationFault."""
    try:
        return cho_factor(matrix, lower=True)
    except np.linalg.LinAlgError as e:
        raise ConfigurationFault(f"{name} is not positive definite: {e}") from e


def compute_gain(cross_cov: np.ndarray, S: np.ndarray) -> np.ndarray:
    """
    Kalman gain K = cross_cov @ inv(S) via a Cholesky solve.

    Args:
        cross_cov: State/measurement cross covariance (n_x, n_z)
        S: Innovation covariance (n_z, n_z)

    Returns:
        Kalman gain (n_x, n_z)
    """
    factor = _cholesky(S, "Innovation covariance")
    return cho_solve(factor, cross_cov.T).T


def compute_nis(innovation: np.ndarray, innovation_cov: np.ndarray) -> float:
    """
    Compute Normalized Innovation Squared (NIS) for filter evaluation.

    Args:
        innovation: Innovation vector
        innovation_cov: Innovation covariance matrix

    Returns:
        NIS value
    """
    factor = _cholesky(innovation_cov, "Innovation covariance")
    return float(innovation @ cho_solve(factor, innovation))


# ============================================================================
# FILTER
# ============================================================================

class UnscentedKalmanFilter:
    """
    Unscented Kalman Filter fusing lidar and radar with the CTRV model.

    The filter starts UNINITIALIZED. The first measurement sets the position
    (speed, yaw and yaw rate start at zero) and moves the filter to TRACKING.
    Every later measurement triggers a prediction over the elapsed time
    followed by the update for the measurement's sensor, unless that sensor
    is disabled in the configuration.

    Attributes:
        x: State estimate [px, py, v, yaw, yaw_rate]
        P: State covariance
        Xsig_pred: Predicted sigma points from the last prediction
        Wm, Wc: Mean and covariance weights
        nis: Normalized innovation squared of the last update
    """

    def __init__(self, config: Optional[FilterConfig] = None):
        """
        Initialize Unscented Kalman Filter.

        Args:
            config: Filter configuration; defaults to the built-in tuning
        """
        self.config = config or FilterConfig()
        self.noise = self.config.noise

        self.model = CTRVModel(ModelParameters(
            std_a=self.noise.std_a, std_yawdd=self.noise.std_yawdd
        ))
        self.Q = self.model.get_process_noise_covariance()

        self.dim_x = self.model.state_dim
        self.dim_aug = self.model.augmented_dim
        self.n_sigma = N_SIGMA_POINTS

        ukf = self.config.ukf
        self.lambda_, self.Wm, self.Wc = compute_sigma_weights(
            ukf.alpha, ukf.beta, ukf.kappa, self.dim_aug
        )
        self.Wm.setflags(write=False)
        self.Wc.setflags(write=False)

        # Lidar observes position directly
        self.H_lidar = np.zeros((LIDAR_DIM, STATE_DIM))
        self.H_lidar[0, PX] = 1.0
        self.H_lidar[1, PY] = 1.0
        self.R_lidar = self.noise.lidar_covariance
        self.R_radar = self.noise.radar_covariance

        self.reset()

    def reset(self) -> None:
        """Return to the uninitialized state with the configured covariance."""
        self.state = FilterState.UNINITIALIZED

        self.x = np.zeros(self.dim_x)
        self.P = self.config.initial_covariance_matrix()
        self.Xsig_pred = np.zeros((self.dim_x, self.n_sigma))

        # Innovation of the last update
        self.y: Optional[np.ndarray] = None
        self.S: Optional[np.ndarray] = None
        self.K: Optional[np.ndarray] = None
        self.nis: Optional[float] = None

        self.time_us: Optional[int] = None
        self.last_measurement: Optional[MeasurementPackage] = None

    @property
    def is_initialized(self) -> bool:
        return self.state is FilterState.TRACKING

    @property
    def use_laser(self) -> bool:
        return self.config.sensors.use_laser

    @property
    def use_radar(self) -> bool:
        return self.config.sensors.use_radar

    def _require_tracking(self, operation: str) -> None:
        if self.state is not FilterState.TRACKING:
            raise FilterStateError(f"Cannot {operation} before the filter is initialized")

    def initialize(self, measurement: MeasurementPackage) -> None:
        """
        Initialize the state from the first measurement.

        Radar measurements are converted from polar to Cartesian position.
        Speed, yaw and yaw rate start at zero. The enable switches are not
        consulted: any sensor may initialize the filter.

        Args:
            measurement: First measurement package
        """
        if self.state is FilterState.TRACKING:
            raise FilterStateError("Filter is already initialized; call reset() first")

        z = measurement.raw_measurements
        if measurement.sensor_type is SensorType.RADAR:
            px, py = polar_to_cartesian(z[0], z[1])
        else:
            px, py = z[0], z[1]

        self.x = np.array([px, py, 0.0, 0.0, 0.0])
        self.time_us = measurement.timestamp
        self.last_measurement = measurement
        self.state = FilterState.TRACKING

        logger.debug(
            f"Initialized from {measurement.sensor_type.name} at t={measurement.timestamp}: "
            f"px={px:.3f}, py={py:.3f}"
        )

    def process_measurement(self, measurement: MeasurementPackage) -> bool:
        """
        Process one measurement: initialize, or predict and update.

        Args:
            measurement: Measurement package from lidar or radar

        Returns:
            True if a measurement update was applied

        Raises:
            ValueError: If the timestamp precedes the last processed one. The
                caller must deliver records in time order; the filter is left
                unchanged.
        """
        if self.state is FilterState.UNINITIALIZED:
            self.initialize(measurement)
            return False

        dt = measurement.elapsed_since(self.time_us)
        self.predict(dt)

        updated = False
        if measurement.sensor_type is SensorType.RADAR and self.use_radar:
            try:
                updated = self.update_radar(measurement)
            except DegenerateGeometryFault as e:
                logger.warning(
                    f"Skipping radar update at t={measurement.timestamp}: {e}"
                )
        elif measurement.sensor_type is SensorType.LASER and self.use_laser:
            updated = self.update_lidar(measurement)
        else:
            logger.debug(
                f"Ignoring {measurement.sensor_type.name} measurement (sensor disabled)"
            )

        self.last_measurement = measurement
        self.time_us = measurement.timestamp

        return updated

    def predict(self, dt: float) -> None:
        """
        Predict sigma points, the state, and the state covariance.

        Args:
            dt: Time since the last measurement in seconds

        Raises:
            ValueError: If dt is negative
            ConfigurationFault: If the covariance is not positive definite
        """
        self._require_tracking("predict")

        sigma_points_aug = generate_augmented_sigma_points(
            self.x, self.P, self.Q, self.lambda_
        )
        Xsig_pred = self.model.predict_sigma_points(sigma_points_aug, dt)
        x, P = unscented_transform(Xsig_pred, self.Wm, self.Wc, angle_index=YAW)

        self.Xsig_pred = Xsig_pred
        self.x = x
        self.P = P

    def update_lidar(self, measurement: MeasurementPackage) -> bool:
        """
        Update the state with a lidar position measurement.

        Lidar observes position linearly, so the standard Kalman equations are
        used with the covariance update in Joseph form.

        Args:
            measurement: LASER measurement package

        Returns:
            True when the update was applied
        """
        self._require_tracking("update")
        if measurement.sensor_type is not SensorType.LASER:
            raise SensorMismatchError(SensorType.LASER, measurement.sensor_type)

        H = self.H_lidar
        y = measurement.raw_measurements - H @ self.x
        S = H @ self.P @ H.T + self.R_lidar
        K = compute_gain(self.P @ H.T, S)

        I_KH = np.eye(self.dim_x) - K @ H
        P = I_KH @ self.P @ I_KH.T + K @ self.R_lidar @ K.T

        self.x = self.x + K @ y
        self.P = 0.5 * (P + P.T)
        self._store_innovation(y, S, K)

        return True

    def update_radar(self, measurement: MeasurementPackage) -> bool:
        """
        Update the state with a radar measurement using the unscented transform.

        Args:
            measurement: RADAR measurement package [rho, phi, rho_dot]

        Returns:
            True when the update was applied

        Raises:
            DegenerateGeometryFault: If a predicted sigma point sits at the
                sensor origin; state and covariance are left untouched
        """
        self._require_tracking("update")
        if measurement.sensor_type is not SensorType.RADAR:
            raise SensorMismatchError(SensorType.RADAR, measurement.sensor_type)

        Zsig = radar_measurement_model(self.Xsig_pred)
        z_pred, S = unscented_transform(Zsig, self.Wm, self.Wc, angle_index=PHI)
        S = S + self.R_radar

        Tc = cross_covariance(self.Xsig_pred, Zsig, self.Wc)
        K = compute_gain(Tc, S)

        y = measurement.raw_measurements - z_pred
        y[PHI] = normalize_angle(y[PHI])

        P = self.P - K @ S @ K.T

        self.x = self.x + K @ y
        self.x[YAW] = normalize_angle(self.x[YAW])
        self.P = 0.5 * (P + P.T)
        self._store_innovation(y, S, K)

        return True

    def _store_innovation(self, y: np.ndarray, S: np.ndarray, K: np.ndarray) -> None:
        self.y = y
        self.S = S
        self.K = K
        self.nis = compute_nis(y, S)
