#!/usr/bin/env python3
"""
Configurable scenario runner for the fusion filter
Loads YAML configurations, feeds measurement logs (or a synthetic scenario)
through the UKF and reports accuracy and consistency
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec

from .config_loader import ConfigLoader, FilterConfig, ScenarioSettings
from .data_loader import load_measurements
from .simulation.scenario import CTRVScenario
from .tracking.kalman_filters import UnscentedKalmanFilter, FilterError
from .tracking.measurement import MeasurementPackage, SensorType
from .tracking.metrics import FilterPerformance, nis_threshold
from .validators import ValidationError

logger = logging.getLogger(__name__)


class ScenarioRunner:
    """Run a measurement sequence through the filter"""

    def __init__(self, config: FilterConfig):
        """
        Initialize scenario runner

        Args:
            config: Filter configuration object
        """
        self.config = config
        self.ukf = UnscentedKalmanFilter(config)
        self.performance = FilterPerformance()

        # Storage for results
        self.results = {
            'timestamps': [],
            'states': [],
            'sensors': [],
            'measurements': [],
            'ground_truth': []
        }

    def run(self, measurements: Sequence[MeasurementPackage]) -> Dict:
        """
        Process every measurement in order

        Returns:
            Dictionary with per-step states and summary metrics
        """
        logger.info(f"Running config '{self.config.name}' on {len(measurements)} measurements")

        for measurement in measurements:
            updated = self.ukf.process_measurement(measurement)

            if updated and self.ukf.nis is not None:
                self.performance.add_nis(measurement.sensor_type, self.ukf.nis)

            if measurement.ground_truth is not None:
                self.performance.add_estimate(self.ukf.x, measurement.ground_truth)

            self.results['timestamps'].append(measurement.timestamp)
            self.results['states'].append(self.ukf.x.copy())
            self.results['sensors'].append(measurement.sensor_type)
            self.results['measurements'].append(measurement.raw_measurements)
            self.results['ground_truth'].append(measurement.ground_truth)

        self.results['metrics'] = self.performance.summary()
        return self.results

    def save_estimates(self, path: Path) -> None:
        """Write the state estimate after every measurement as tab-separated text"""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write("# timestamp\tsensor\tpx\tpy\tv\tyaw\tyaw_rate\n")
            for timestamp, sensor, state in zip(self.results['timestamps'],
                                                self.results['sensors'],
                                                self.results['states']):
                values = "\t".join(f"{v:.6f}" for v in state)
                f.write(f"{timestamp}\t{sensor.value}\t{values}\n")
        logger.info(f"Saved estimates to {path}")

    def visualize_results(self, save_path: Optional[Path] = None) -> None:
        """Plot estimated vs true trajectory and NIS per sensor"""
        states = np.array(self.results['states'])
        truth = [gt for gt in self.results['ground_truth'] if gt is not None]

        fig = plt.figure(figsize=(14, 8))
        gs = GridSpec(2, 2, figure=fig)

        ax1 = fig.add_subplot(gs[:, 0])
        ax1.plot(states[:, 0], states[:, 1], 'b-', label='UKF estimate')
        if truth:
            truth = np.array(truth)
            ax1.plot(truth[:, 0], truth[:, 1], 'g--', label='Ground truth')

        lidar = [m for m, s in zip(self.results['measurements'], self.results['sensors'])
                 if s is SensorType.LASER]
        if lidar:
            lidar = np.array(lidar)
            ax1.scatter(lidar[:, 0], lidar[:, 1], s=6, c='r', alpha=0.5, label='Lidar')
        ax1.set_xlabel('x (m)')
        ax1.set_ylabel('y (m)')
        ax1.set_title('Trajectory')
        ax1.axis('equal')
        ax1.legend()
        ax1.grid(True, alpha=0.3)

        for row, sensor in enumerate(SensorType):
            ax = fig.add_subplot(gs[row, 1])
            values = self.performance.nis_values[sensor]
            ax.plot(values, '.-', markersize=3)
            ax.axhline(nis_threshold(sensor.measurement_dim), color='r', linestyle='--',
                       label='95% bound')
            ax.set_title(f'{sensor.name} NIS')
            ax.legend()
            ax.grid(True, alpha=0.3)

        plt.tight_layout()

        if save_path:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            logger.info(f"Saved figure to {save_path}")
        else:
            plt.show()


def build_measurements(config: FilterConfig, input_path: Optional[str]) -> List[MeasurementPackage]:
    """Load a measurement log, or simulate the config's scenario section"""
    if input_path:
        return load_measurements(input_path)

    settings = config.scenario or ScenarioSettings()
    scenario = CTRVScenario.from_settings(settings, config.noise)
    return scenario.generate()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for scenario runner"""

    parser = argparse.ArgumentParser(description='Run the lidar/radar UKF on a measurement log')
    parser.add_argument('--config', help='Filter config name or YAML path (default: built-in tuning)')
    parser.add_argument('--config-dir', default='configs', help='Directory searched for config names')
    parser.add_argument('--input', help='Measurement log; a synthetic scenario is used if omitted')
    parser.add_argument('--output', help='File to write state estimates to')
    parser.add_argument('--plot', nargs='?', const='', default=None,
                        help='Plot results, optionally saving to the given image path')
    parser.add_argument('--list', action='store_true', help='List available configs')
    parser.add_argument('--validate', action='store_true', help='Validate config without running')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    loader = ConfigLoader(args.config_dir)

    if args.list:
        logger.info("Available configs: " + ", ".join(loader.list_configs() or ["(none)"]))
        return 0

    try:
        config = loader.load_config(args.config) if args.config else FilterConfig()

        for warning in loader.validate_config(config):
            logger.warning(f"Config: {warning}")

        if args.validate:
            logger.info("Validation complete.")
            return 0

        measurements = build_measurements(config, args.input)

        runner = ScenarioRunner(config)
        results = runner.run(measurements)
    except FileNotFoundError as e:
        logger.error(f"Error: {e}")
        return 1
    except (ValueError, ValidationError, FilterError) as e:
        logger.error(f"Error running scenario: {e}")
        return 1

    metrics = results['metrics']
    if 'rmse' in metrics:
        rmse = metrics['rmse']
        logger.info(
            f"RMSE px={rmse[0]:.4f} py={rmse[1]:.4f} vx={rmse[2]:.4f} vy={rmse[3]:.4f}"
        )
    for sensor in SensorType:
        key = f'nis_{sensor.name.lower()}_exceedance'
        if key in metrics:
            logger.info(
                f"{sensor.name} NIS above 95% bound: {metrics[key]*100:.1f}% "
                f"of {metrics[f'nis_{sensor.name.lower()}_count']} updates"
            )

    if args.output:
        runner.save_estimates(Path(args.output))

    if args.plot is not None:
        runner.visualize_results(Path(args.plot) if args.plot else None)

    return 0


if __name__ == "__main__":
    sys.exit(main())
