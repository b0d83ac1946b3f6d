"""
Measurement records consumed by the fusion filter.

A measurement package carries the sensor that produced it, the timestamp in
microseconds and the raw measurement vector whose layout depends on the sensor:
- LASER: [px, py] in meters
- RADAR: [rho, phi, rho_dot] in meters, radians and meters/second
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import numpy as np
import numpy.typing as npt

from ..constants import LIDAR_DIM, RADAR_DIM, MICROSECONDS_PER_SECOND


class SensorType(Enum):
    """Enumeration of supported sensor types."""
    LASER = "L"
    RADAR = "R"

    @property
    def measurement_dim(self) -> int:
        """Length of the raw measurement vector for this sensor."""
        return LIDAR_DIM if self is SensorType.LASER else RADAR_DIM


@dataclass
class MeasurementPackage:
    """
    Represents one timestamped sensor measurement.

    Attributes:
        sensor_type: Sensor that produced the measurement
        timestamp: Time of measurement in microseconds
        raw_measurements: Measurement vector, 2 values for LASER, 3 for RADAR
        ground_truth: Optional true [px, py, vx, vy] for accuracy scoring
    """

    sensor_type: SensorType
    timestamp: int
    raw_measurements: npt.NDArray[np.float64]
    ground_truth: Optional[npt.NDArray[np.float64]] = None

    def __post_init__(self):
        """Validate measurement data after initialization."""
        if not isinstance(self.sensor_type, SensorType):
            self.sensor_type = SensorType(self.sensor_type)
        self.timestamp = int(self.timestamp)
        self.raw_measurements = np.asarray(self.raw_measurements, dtype=np.float64)

        if self.ground_truth is not None:
            self.ground_truth = np.asarray(self.ground_truth, dtype=np.float64)

        expected = self.sensor_type.measurement_dim
        if self.raw_measurements.shape != (expected,):
            raise ValueError(
                f"{self.sensor_type.name} measurement must have {expected} values, "
                f"got shape {self.raw_measurements.shape}"
            )
        if not np.all(np.isfinite(self.raw_measurements)):
            raise ValueError("Measurement values must be finite")

    @property
    def timestamp_seconds(self) -> float:
        return self.timestamp / MICROSECONDS_PER_SECOND

    def elapsed_since(self, timestamp_us: int) -> float:
        """Seconds elapsed between an earlier timestamp and this measurement."""
        return (self.timestamp - timestamp_us) / MICROSECONDS_PER_SECOND
