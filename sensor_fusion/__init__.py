"""
Sensor Fusion Package

Unscented Kalman Filter tracking of a single object from lidar and radar
measurements using the Constant Turn Rate and Velocity (CTRV) motion model.

Main Components:
- tracking: UKF, CTRV motion model, measurement records and metrics
- config_loader: YAML filter configuration
- data_loader: Measurement log parsing and writing
- simulation: Synthetic CTRV scenarios with noisy lidar/radar measurements

Example Usage:
    from sensor_fusion import UnscentedKalmanFilter, load_measurements

    ukf = UnscentedKalmanFilter()
    for measurement in load_measurements("data/obj_pose-laser-radar-synthetic-input.txt"):
        ukf.process_measurement(measurement)
        print(ukf.x)
"""

__version__ = "1.0.0"

from .config_loader import (
    ConfigLoader,
    FilterConfig,
    NoiseParameters,
    SensorConfig,
    UKFParameters,
    ScenarioSettings,
    load_filter_config,
)
from .tracking import (
    UnscentedKalmanFilter,
    FilterState,
    MeasurementPackage,
    SensorType,
    FilterPerformance,
    FilterError,
    ConfigurationFault,
    DegenerateGeometryFault,
    SensorMismatchError,
    FilterStateError,
)
from .data_loader import (
    load_measurements,
    save_measurements,
    parse_measurement_line,
    format_measurement_line,
    MeasurementParseError,
)

__all__ = [
    'ConfigLoader',
    'FilterConfig',
    'NoiseParameters',
    'SensorConfig',
    'UKFParameters',
    'ScenarioSettings',
    'load_filter_config',
    'UnscentedKalmanFilter',
    'FilterState',
    'MeasurementPackage',
    'SensorType',
    'FilterPerformance',
    'FilterError',
    'ConfigurationFault',
    'DegenerateGeometryFault',
    'SensorMismatchError',
    'FilterStateError',
    'load_measurements',
    'save_measurements',
    'parse_measurement_line',
    'format_measurement_line',
    'MeasurementParseError',
]

# Package-level configuration
import logging

# Applications configure handlers (see run_scenario.py); the package only logs
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
