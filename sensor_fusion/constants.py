"""
Filter Constants and Default Tuning for Lidar/Radar Fusion

This module contains the state layout, default noise parameters, UKF spread
parameters and numerical thresholds used throughout the sensor fusion package.
"""

import numpy as np
from dataclasses import dataclass


# ============================================================================
# STATE LAYOUT
# ============================================================================

# CTRV state: [px, py, v, yaw, yaw_rate]
STATE_DIM = 5

# Augmented state adds longitudinal and yaw acceleration noise
AUGMENTED_DIM = STATE_DIM + 2

# Number of sigma points (2 * n_aug + 1)
N_SIGMA_POINTS = 2 * AUGMENTED_DIM + 1

# State vector indices
PX, PY, V, YAW, YAW_RATE = range(STATE_DIM)

# Measurement dimensions
LIDAR_DIM = 2  # [px, py]
RADAR_DIM = 3  # [rho, phi, rho_dot]

# Radar measurement indices
RHO, PHI, RHO_DOT = range(RADAR_DIM)

# Timestamps are delivered in microseconds
MICROSECONDS_PER_SECOND = 1e6

TWO_PI = 2.0 * np.pi


# ============================================================================
# DEFAULT NOISE PARAMETERS
# ============================================================================

@dataclass
class NoiseDefaults:
    """Standard deviations used when no configuration is given"""

    # Process noise
    STD_A = 0.8  # m/s² longitudinal acceleration
    STD_YAWDD = 0.6  # rad/s² yaw acceleration

    # Lidar (values from the sensor manufacturer)
    STD_LASPX = 0.15  # m
    STD_LASPY = 0.15  # m

    # Radar (values from the sensor manufacturer)
    STD_RADR = 0.3  # m
    STD_RADPHI = 0.03  # rad
    STD_RADRD = 0.3  # m/s


# ============================================================================
# UNSCENTED TRANSFORM PARAMETERS
# ============================================================================

@dataclass
class UKFDefaults:
    """Sigma point spread parameters"""

    ALPHA = 0.001  # Spread of sigma points around the mean
    BETA = 2.0  # Optimal for Gaussian priors
    KAPPA = 0.0  # Secondary scaling

    # Initial state covariance diagonal
    INITIAL_COVARIANCE = (1.0, 1.0, 1.0, 1.0, 1.0)


# ============================================================================
# NUMERICAL THRESHOLDS
# ============================================================================

@dataclass
class NumericalLimits:
    """Guards against division by near-zero quantities"""

    # Below this turn rate the straight-line CTRV branch is used
    MIN_YAW_RATE = 1e-4  # rad/s

    # Radar: px closer than this to zero is clamped to PX_CLAMP
    MIN_PX = 1e-6  # m
    PX_CLAMP = 1e-5  # m

    # Radar: a predicted range at or below this is degenerate
    MIN_RANGE = 1e-5  # m


# ============================================================================
# CONSISTENCY CHECKS
# ============================================================================

# Confidence used for the NIS chi-squared bound
NIS_CONFIDENCE = 0.95
