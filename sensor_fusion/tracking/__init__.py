"""
Lidar/radar fusion tracking module

This module provides an Unscented Kalman Filter for estimating the position,
speed, heading and turn rate of a single object from asynchronous lidar and
radar measurements, together with the CTRV motion model it relies on and
metrics for evaluating its accuracy and consistency.

Motion model:
- Constant Turn Rate and Velocity (CTRV) - state [px, py, v, yaw, yaw_rate]

Sensors:
- Lidar (LASER) - Cartesian position [px, py]
- Radar (RADAR) - range, bearing and range rate [rho, phi, rho_dot]
"""

from .measurement import (
    SensorType,
    MeasurementPackage,
)

from .motion_models import (
    CTRVModel,
    ModelParameters,
    normalize_angle,
    polar_to_cartesian,
    cartesian_to_polar,
)

from .kalman_filters import (
    # Filter and lifecycle
    UnscentedKalmanFilter,
    FilterState,

    # Exceptions
    FilterError,
    ConfigurationFault,
    DegenerateGeometryFault,
    SensorMismatchError,
    FilterStateError,

    # Unscented transform primitives
    compute_sigma_weights,
    generate_augmented_sigma_points,
    unscented_transform,
    cross_covariance,
    radar_measurement_model,
    compute_gain,
    compute_nis,
)

from .metrics import (
    FilterPerformance,
    state_to_cartesian,
    calculate_rmse,
    nis_threshold,
)

__all__ = [
    'SensorType',
    'MeasurementPackage',

    'CTRVModel',
    'ModelParameters',
    'normalize_angle',
    'polar_to_cartesian',
    'cartesian_to_polar',

    'UnscentedKalmanFilter',
    'FilterState',
    'FilterError',
    'ConfigurationFault',
    'DegenerateGeometryFault',
    'SensorMismatchError',
    'FilterStateError',
    'compute_sigma_weights',
    'generate_augmented_sigma_points',
    'unscented_transform',
    'cross_covariance',
    'radar_measurement_model',
    'compute_gain',
    'compute_nis',

    'FilterPerformance',
    'state_to_cartesian',
    'calculate_rmse',
    'nis_threshold',
]

__version__ = "1.0.0"
