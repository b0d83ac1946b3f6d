"""
Synthetic CTRV scenarios for exercising the fusion filter

Generates a ground-truth trajectory of an object moving with constant speed
and turn rate, then samples interleaved lidar and radar measurements with
Gaussian noise drawn from the configured sensor standard deviations.

Author: Sensor Fusion Project
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from ..config_loader import NoiseParameters, ScenarioSettings
from ..constants import MICROSECONDS_PER_SECOND, STATE_DIM, PX, PY, V, YAW
from ..tracking.measurement import MeasurementPackage, SensorType
from ..tracking.motion_models import CTRVModel, cartesian_to_polar, normalize_angle

logger = logging.getLogger(__name__)


@dataclass
class TruthSample:
    """Ground truth at one time step"""
    timestamp: int
    state: np.ndarray

    @property
    def cartesian(self) -> np.ndarray:
        """[px, py, vx, vy] of the true state"""
        v, yaw = self.state[V], self.state[YAW]
        return np.array([self.state[PX], self.state[PY], v * np.cos(yaw), v * np.sin(yaw)])


@dataclass
class CTRVScenario:
    """
    Synthetic single-object scenario

    Attributes:
        initial_state: True initial state [px, py, v, yaw, yaw_rate]
        duration: Scenario length in seconds
        time_step: Time between measurements in seconds
        noise: Sensor noise used to corrupt measurements
        sensor_pattern: Sensors cycled through, one per time step
        start_timestamp: Timestamp of the first sample in microseconds
        seed: Random seed for measurement noise
    """

    initial_state: Sequence[float] = (0.6, 0.6, 5.2, 0.0, 0.1)
    duration: float = 20.0
    time_step: float = 0.05
    noise: NoiseParameters = field(default_factory=NoiseParameters)
    sensor_pattern: Sequence[SensorType] = (SensorType.LASER, SensorType.RADAR)
    start_timestamp: int = 1477010443000000
    seed: Optional[int] = 42
    add_noise: bool = True

    def __post_init__(self):
        self.initial_state = np.asarray(self.initial_state, dtype=np.float64)
        if self.initial_state.shape != (STATE_DIM,):
            raise ValueError(f"initial_state must have {STATE_DIM} entries")
        if self.time_step <= 0:
            raise ValueError("time_step must be positive")
        if self.duration < 0:
            raise ValueError("duration must be non-negative")
        if not self.sensor_pattern:
            raise ValueError("sensor_pattern must name at least one sensor")

        self.model = CTRVModel()
        self.rng = np.random.default_rng(self.seed)

    @classmethod
    def from_settings(cls, settings: ScenarioSettings,
                      noise: Optional[NoiseParameters] = None) -> "CTRVScenario":
        """Build a scenario from the configuration file section"""
        return cls(
            initial_state=settings.initial_state,
            duration=settings.duration,
            time_step=settings.time_step,
            noise=noise or NoiseParameters(),
            seed=settings.seed
        )

    @property
    def n_steps(self) -> int:
        return int(round(self.duration / self.time_step)) + 1

    def generate_truth(self) -> List[TruthSample]:
        """Propagate the true state through the noise-free CTRV model"""
        truth = []
        state = self.initial_state.copy()
        step_us = int(round(self.time_step * MICROSECONDS_PER_SECOND))

        for step in range(self.n_steps):
            if step > 0:
                state = self.model.predict_state(state, self.time_step)
            truth.append(TruthSample(self.start_timestamp + step * step_us, state.copy()))

        return truth

    def measure(self, sample: TruthSample, sensor_type: SensorType) -> MeasurementPackage:
        """Create a (noisy) measurement of a truth sample"""
        px, py, vx, vy = sample.cartesian

        if sensor_type is SensorType.LASER:
            z = np.array([px, py])
            std = np.array([self.noise.std_laspx, self.noise.std_laspy])
        else:
            z = np.array(cartesian_to_polar(px, py, vx, vy))
            std = np.array([self.noise.std_radr, self.noise.std_radphi, self.noise.std_radrd])

        if self.add_noise:
            z = z + self.rng.normal(0.0, std)
        if sensor_type is SensorType.RADAR:
            z[1] = normalize_angle(z[1])

        return MeasurementPackage(sensor_type, sample.timestamp, z, sample.cartesian)

    def generate(self) -> List[MeasurementPackage]:
        """
        Generate the full measurement sequence

        Returns:
            Measurement packages with ground truth attached, one per time step
        """
        truth = self.generate_truth()
        pattern = list(self.sensor_pattern)

        measurements = [
            self.measure(sample, pattern[i % len(pattern)])
            for i, sample in enumerate(truth)
        ]

        logger.debug(
            f"Generated {len(measurements)} measurements over {self.duration}s "
            f"(pattern {[s.name for s in pattern]})"
        )
        return measurements
