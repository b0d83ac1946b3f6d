"""
Input Validation Module for Filter Configuration

This module validates noise parameters, unscented transform parameters and
initial covariances before a filter is built, so that inconsistent tuning is
reported up front instead of surfacing later as a failed Cholesky factorization.
"""

import numpy as np
from typing import Any, Dict, List, Sequence
from dataclasses import dataclass

from .constants import STATE_DIM, AUGMENTED_DIM


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class ValidationError(Exception):
    """Base exception for validation errors"""
    pass

class ParameterOutOfRangeError(ValidationError):
    """Raised when a parameter is outside acceptable range"""
    def __init__(self, param_name: str, value: float, min_val: float, max_val: float):
        self.param_name = param_name
        self.value = value
        self.min_val = min_val
        self.max_val = max_val
        super().__init__(
            f"{param_name} = {value} is outside valid range [{min_val}, {max_val}]"
        )


# ============================================================================
# VALIDATION RESULTS
# ============================================================================

@dataclass
class ValidationResult:
    """Container for validation results"""
    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def add_error(self, message: str):
        """Add an error message"""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        """Add a warning message"""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult"):
        """Fold another result into this one"""
        for message in other.errors:
            self.add_error(message)
        self.warnings.extend(other.warnings)

    def raise_if_invalid(self):
        """Raise exception if validation failed"""
        if not self.is_valid:
            raise ValidationError("\n".join(self.errors))


# ============================================================================
# PARAMETER VALIDATORS
# ============================================================================

class FilterConfigValidator:
    """Validates UKF configuration parameters"""

    @staticmethod
    def validate_std(name: str, value: float, strict: bool = True) -> ValidationResult:
        """
        Validate a noise standard deviation

        Args:
            name: Parameter name for error messages
            value: Standard deviation
            strict: If True, raise exception on failure

        Returns:
            ValidationResult
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        if not np.isfinite(value):
            result.add_error(f"{name} must be finite, got {value}")
        elif value <= 0:
            if strict:
                raise ParameterOutOfRangeError(name, value, 0.0, np.inf)
            result.add_error(f"{name} must be positive, got {value}")
        elif value > 100:
            result.add_warning(f"{name} = {value} is unusually large")

        if strict and not result.is_valid:
            result.raise_if_invalid()

        return result

    @staticmethod
    def validate_noise(noise: Dict[str, float], strict: bool = True) -> ValidationResult:
        """Validate every standard deviation in a noise parameter mapping"""
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        for name, value in noise.items():
            result.merge(FilterConfigValidator.validate_std(name, value, strict=strict))

        # Physically implausible process noise for road vehicles
        if noise.get('std_a', 0.0) > 30:
            result.add_warning("Longitudinal acceleration noise exceeds 3 g")

        return result

    @staticmethod
    def validate_ukf_parameters(alpha: float, beta: float, kappa: float,
                                strict: bool = True) -> ValidationResult:
        """
        Validate sigma point spread parameters

        The scaling factor lambda + n_aug = alpha^2 * (n_aug + kappa) must be
        positive for the sigma point spread to be real.
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        if not alpha > 0:
            if strict:
                raise ParameterOutOfRangeError('alpha', alpha, 0.0, 1.0)
            result.add_error(f"alpha must be positive, got {alpha}")
        elif alpha > 1:
            result.add_warning(f"alpha = {alpha} spreads sigma points beyond one sigma")

        if AUGMENTED_DIM + kappa <= 0:
            result.add_error(
                f"kappa = {kappa} makes n_aug + kappa non-positive (n_aug = {AUGMENTED_DIM})"
            )

        if beta < 0:
            result.add_warning(f"beta = {beta} is negative; 2 is optimal for Gaussian priors")

        if strict and not result.is_valid:
            result.raise_if_invalid()

        return result

    @staticmethod
    def validate_covariance(covariance: Any, strict: bool = True) -> ValidationResult:
        """
        Validate an initial state covariance

        Accepts either a diagonal given as a sequence of 5 variances or a full
        5x5 matrix. The matrix must be symmetric positive definite.
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        P = np.asarray(covariance, dtype=np.float64)
        if P.shape == (STATE_DIM,):
            P = np.diag(P)

        if P.shape != (STATE_DIM, STATE_DIM):
            result.add_error(
                f"Initial covariance must be a {STATE_DIM}-vector or "
                f"{STATE_DIM}x{STATE_DIM} matrix, got shape {P.shape}"
            )
        elif not np.all(np.isfinite(P)):
            result.add_error("Initial covariance contains non-finite values")
        elif not np.allclose(P, P.T):
            result.add_error("Initial covariance is not symmetric")
        else:
            eigenvals = np.linalg.eigvalsh(P)
            if np.min(eigenvals) <= 0:
                result.add_error(
                    f"Initial covariance is not positive definite "
                    f"(min eigenvalue {np.min(eigenvals):.3g})"
                )

        if strict and not result.is_valid:
            result.raise_if_invalid()

        return result

    @staticmethod
    def validate_complete_config(config: Dict[str, Any]) -> ValidationResult:
        """
        Validate a configuration dictionary as produced by ``FilterConfig.to_dict``

        Never raises; all problems are collected in the result.
        """
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        result.merge(FilterConfigValidator.validate_noise(config.get('noise', {}), strict=False))

        ukf = config.get('ukf', {})
        result.merge(FilterConfigValidator.validate_ukf_parameters(
            ukf.get('alpha', 0.0), ukf.get('beta', 0.0), ukf.get('kappa', 0.0), strict=False
        ))

        if 'initial_covariance' in config:
            result.merge(FilterConfigValidator.validate_covariance(
                config['initial_covariance'], strict=False
            ))

        sensors = config.get('sensors', {})
        if not sensors.get('use_laser', True) and not sensors.get('use_radar', True):
            result.add_warning("Both sensors are disabled; the filter will only predict")

        return result


def validate_timestamps(timestamps: Sequence[int]) -> ValidationResult:
    """
    Check that a measurement stream is ordered in time

    Decreasing timestamps are reported as errors, repeated ones as warnings.
    """
    result = ValidationResult(is_valid=True, errors=[], warnings=[])

    for index in range(1, len(timestamps)):
        if timestamps[index] < timestamps[index - 1]:
            result.add_error(
                f"Timestamp at index {index} ({timestamps[index]}) precedes "
                f"previous ({timestamps[index - 1]})"
            )
        elif timestamps[index] == timestamps[index - 1]:
            result.add_warning(f"Repeated timestamp {timestamps[index]} at index {index}")

    return result
