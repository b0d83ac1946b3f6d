"""
Accuracy and consistency metrics for the fusion filter.

RMSE compares Cartesian estimates [px, py, vx, vy] against ground truth.
NIS (normalized innovation squared) checks filter consistency: for a
well-tuned filter it follows a chi-squared distribution with as many degrees
of freedom as the measurement has components.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence
import numpy as np
from scipy import stats

from ..constants import PX, PY, V, YAW, NIS_CONFIDENCE
from .measurement import SensorType


def state_to_cartesian(state: np.ndarray) -> np.ndarray:
    """
    Convert a CTRV state to Cartesian position and velocity

    Args:
        state: [px, py, v, yaw, yaw_rate]

    Returns:
        [px, py, vx, vy]
    """
    v, yaw = state[V], state[YAW]
    return np.array([state[PX], state[PY], v * np.cos(yaw), v * np.sin(yaw)])


def calculate_rmse(estimates: Sequence[np.ndarray],
                   ground_truth: Sequence[np.ndarray]) -> np.ndarray:
    """
    Root mean squared error per component

    Args:
        estimates: Estimated vectors
        ground_truth: True vectors, same length and shape as estimates

    Returns:
        RMSE vector
    """
    if len(estimates) == 0:
        raise ValueError("Cannot compute RMSE of an empty estimate list")
    if len(estimates) != len(ground_truth):
        raise ValueError(
            f"Estimate count {len(estimates)} does not match ground truth count {len(ground_truth)}"
        )

    estimates = np.asarray(estimates, dtype=np.float64)
    ground_truth = np.asarray(ground_truth, dtype=np.float64)
    if estimates.shape != ground_truth.shape:
        raise ValueError(
            f"Estimate shape {estimates.shape} does not match ground truth shape {ground_truth.shape}"
        )

    return np.sqrt(np.mean((estimates - ground_truth)**2, axis=0))


def nis_threshold(dof: int, confidence: float = NIS_CONFIDENCE) -> float:
    """Chi-squared bound that a consistent NIS exceeds with probability 1 - confidence."""
    return float(stats.chi2.ppf(confidence, dof))


@dataclass
class FilterPerformance:
    """
    Accumulates filter output for accuracy and consistency evaluation.

    Estimates are stored in Cartesian form so they can be compared with
    ground truth recorded as [px, py, vx, vy].
    """

    estimates: List[np.ndarray] = field(default_factory=list)
    ground_truth: List[np.ndarray] = field(default_factory=list)
    nis_values: Dict[SensorType, List[float]] = field(
        default_factory=lambda: {sensor: [] for sensor in SensorType}
    )

    def add_estimate(self, state: np.ndarray, truth: np.ndarray) -> None:
        """Record a state estimate with its ground truth."""
        self.estimates.append(state_to_cartesian(state))
        self.ground_truth.append(np.asarray(truth, dtype=np.float64)[:4])

    def add_nis(self, sensor_type: SensorType, nis: float) -> None:
        self.nis_values[sensor_type].append(float(nis))

    def rmse(self) -> np.ndarray:
        return calculate_rmse(self.estimates, self.ground_truth)

    def nis_exceedance(self, sensor_type: SensorType,
                       confidence: float = NIS_CONFIDENCE) -> float:
        """
        Fraction of NIS values above the chi-squared bound

        A consistent filter gives roughly 1 - confidence; much more means the
        noise is underestimated, much less means it is overestimated.
        """
        values = self.nis_values[sensor_type]
        if not values:
            return 0.0
        threshold = nis_threshold(sensor_type.measurement_dim, confidence)
        return float(np.mean(np.asarray(values) > threshold))

    def summary(self) -> Dict[str, object]:
        """Summary dictionary for reporting"""
        result: Dict[str, object] = {'n_estimates': len(self.estimates)}
        if self.estimates:
            result['rmse'] = self.rmse().tolist()
        for sensor in SensorType:
            values = self.nis_values[sensor]
            result[f'nis_{sensor.name.lower()}_count'] = len(values)
            if values:
                result[f'nis_{sensor.name.lower()}_mean'] = float(np.mean(values))
                result[f'nis_{sensor.name.lower()}_exceedance'] = self.nis_exceedance(sensor)
        return result
