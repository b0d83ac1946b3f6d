#!/usr/bin/env python3
"""
Tests for synthetic CTRV scenarios and end-to-end filtering
"""

from pathlib import Path

import pytest
import numpy as np

from sensor_fusion import FilterConfig, NoiseParameters, SensorType, UnscentedKalmanFilter
from sensor_fusion.config_loader import ConfigLoader, ScenarioSettings
from sensor_fusion.simulation import CTRVScenario
from sensor_fusion.tracking.metrics import FilterPerformance

CONFIG_DIR = Path(__file__).parent.parent / 'configs'


def test_truth_follows_ctrv():
    scenario = CTRVScenario(initial_state=(0.0, 0.0, 2.0, 0.0, 0.0), duration=1.0, time_step=0.1)

    truth = scenario.generate_truth()

    assert len(truth) == 11
    assert truth[-1].timestamp - truth[0].timestamp == 1_000_000
    np.testing.assert_allclose(truth[-1].state, [2.0, 0.0, 2.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(truth[-1].cartesian, [2.0, 0.0, 2.0, 0.0], atol=1e-12)


def test_sensor_pattern_alternates():
    measurements = CTRVScenario(duration=0.5).generate()

    assert len(measurements) == 11
    assert [m.sensor_type for m in measurements[:4]] == [
        SensorType.LASER, SensorType.RADAR, SensorType.LASER, SensorType.RADAR
    ]
    assert all(m.ground_truth is not None for m in measurements)


def test_noise_free_measurements_match_truth():
    scenario = CTRVScenario(duration=1.0, add_noise=False)

    for m in scenario.generate():
        px, py, vx, vy = m.ground_truth
        if m.sensor_type is SensorType.LASER:
            np.testing.assert_allclose(m.raw_measurements, [px, py])
        else:
            rho = np.hypot(px, py)
            np.testing.assert_allclose(
                m.raw_measurements, [rho, np.arctan2(py, px), (px * vx + py * vy) / rho]
            )


def test_seed_reproducible():
    a = CTRVScenario(duration=1.0, seed=7).generate()
    b = CTRVScenario(duration=1.0, seed=7).generate()
    c = CTRVScenario(duration=1.0, seed=8).generate()

    np.testing.assert_array_equal(a[3].raw_measurements, b[3].raw_measurements)
    assert not np.array_equal(a[3].raw_measurements, c[3].raw_measurements)


def test_measurement_noise_level():
    noise = NoiseParameters(std_laspx=0.5, std_laspy=0.5)
    scenario = CTRVScenario(duration=50.0, noise=noise, sensor_pattern=(SensorType.LASER,))

    errors = np.array([m.raw_measurements - m.ground_truth[:2] for m in scenario.generate()])

    assert np.std(errors[:, 0]) == pytest.approx(0.5, rel=0.1)
    assert abs(np.mean(errors[:, 1])) < 0.1


def test_from_settings():
    settings = ScenarioSettings(duration=2.0, time_step=0.1, initial_state=(1, 2, 3, 0, 0), seed=3)

    scenario = CTRVScenario.from_settings(settings)

    assert scenario.n_steps == 21
    np.testing.assert_array_equal(scenario.initial_state, [1.0, 2.0, 3.0, 0.0, 0.0])


@pytest.mark.parametrize("kwargs", [
    {'initial_state': (1.0, 2.0)},
    {'time_step': 0.0},
    {'duration': -1.0},
    {'sensor_pattern': ()},
])
def test_invalid_scenarios(kwargs):
    with pytest.raises(ValueError):
        CTRVScenario(**kwargs)


def test_fused_tracking_accuracy():
    """Lidar and radar fused over the default scenario track the object closely"""
    scenario = CTRVScenario()
    ukf = UnscentedKalmanFilter(FilterConfig())
    performance = FilterPerformance()

    for m in scenario.generate():
        if ukf.process_measurement(m):
            performance.add_nis(m.sensor_type, ukf.nis)
        performance.add_estimate(ukf.x, m.ground_truth)

    rmse = performance.rmse()

    assert np.all(rmse[:2] < 0.5)
    assert np.all(rmse[2:] < 2.0)
    # Consistent tuning keeps most NIS values under the 95% bound
    assert performance.nis_exceedance(SensorType.LASER) < 0.2
    assert performance.nis_exceedance(SensorType.RADAR) < 0.2


def test_radar_only_config_keeps_covariance_positive_definite():
    """Radar-only tracking from the shipped config keeps P positive definite on every record"""
    config = ConfigLoader(CONFIG_DIR).load_config('radar_only')
    scenario = CTRVScenario.from_settings(config.scenario, config.noise)
    ukf = UnscentedKalmanFilter(config)
    performance = FilterPerformance()

    for m in scenario.generate():
        ukf.process_measurement(m)
        performance.add_estimate(ukf.x, m.ground_truth)

        assert np.linalg.eigvalsh(ukf.P).min() > 0, m.timestamp

    assert np.all(np.isfinite(performance.rmse()))
