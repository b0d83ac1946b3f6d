"""
Simulation module for synthetic fusion scenarios.

Provides ground-truth CTRV trajectories and noisy lidar/radar measurement
sequences for exercising and evaluating the filter.
"""

from .scenario import CTRVScenario, TruthSample

__all__ = [
    'CTRVScenario',
    'TruthSample',
]
