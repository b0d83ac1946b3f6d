#!/usr/bin/env python3
"""
Configuration loader for the fusion filter
Handles YAML parsing, validation, and filter configuration objects
"""

import yaml
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple, Union
from pathlib import Path
import logging

from .constants import NoiseDefaults, UKFDefaults, STATE_DIM
from .validators import FilterConfigValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoiseParameters:
    """Process and sensor noise standard deviations"""
    std_a: float = NoiseDefaults.STD_A
    std_yawdd: float = NoiseDefaults.STD_YAWDD
    std_laspx: float = NoiseDefaults.STD_LASPX
    std_laspy: float = NoiseDefaults.STD_LASPY
    std_radr: float = NoiseDefaults.STD_RADR
    std_radphi: float = NoiseDefaults.STD_RADPHI
    std_radrd: float = NoiseDefaults.STD_RADRD

    def __post_init__(self):
        FilterConfigValidator.validate_noise(self.to_dict())

    @property
    def lidar_covariance(self) -> np.ndarray:
        return np.diag([self.std_laspx**2, self.std_laspy**2])

    @property
    def radar_covariance(self) -> np.ndarray:
        return np.diag([self.std_radr**2, self.std_radphi**2, self.std_radrd**2])

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary for serialization"""
        return {
            'std_a': self.std_a,
            'std_yawdd': self.std_yawdd,
            'std_laspx': self.std_laspx,
            'std_laspy': self.std_laspy,
            'std_radr': self.std_radr,
            'std_radphi': self.std_radphi,
            'std_radrd': self.std_radrd
        }


@dataclass(frozen=True)
class SensorConfig:
    """Sensor enable switches; disabled sensors are ignored after initialization"""
    use_laser: bool = True
    use_radar: bool = True


@dataclass(frozen=True)
class UKFParameters:
    """Unscented transform spread parameters"""
    alpha: float = UKFDefaults.ALPHA
    beta: float = UKFDefaults.BETA
    kappa: float = UKFDefaults.KAPPA

    def __post_init__(self):
        FilterConfigValidator.validate_ukf_parameters(self.alpha, self.beta, self.kappa)


@dataclass(frozen=True)
class ScenarioSettings:
    """Synthetic scenario used when no measurement log is given"""
    duration: float = 20.0
    time_step: float = 0.05
    initial_state: Tuple[float, ...] = (0.6, 0.6, 5.2, 0.0, 0.1)
    seed: Optional[int] = 42


@dataclass(frozen=True)
class FilterConfig:
    """Complete filter configuration"""
    noise: NoiseParameters = field(default_factory=NoiseParameters)
    sensors: SensorConfig = field(default_factory=SensorConfig)
    ukf: UKFParameters = field(default_factory=UKFParameters)
    initial_covariance: Tuple[float, ...] = UKFDefaults.INITIAL_COVARIANCE
    name: str = "default"
    scenario: Optional[ScenarioSettings] = None

    def __post_init__(self):
        FilterConfigValidator.validate_covariance(self.initial_covariance)

    def initial_covariance_matrix(self) -> np.ndarray:
        """Initial state covariance as a 5x5 matrix"""
        P0 = np.asarray(self.initial_covariance, dtype=np.float64)
        if P0.shape == (STATE_DIM,):
            return np.diag(P0)
        return P0.copy()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary layout used in YAML files"""
        config_dict = {
            'name': self.name,
            'noise': self.noise.to_dict(),
            'sensors': {
                'use_laser': self.sensors.use_laser,
                'use_radar': self.sensors.use_radar
            },
            'ukf': {
                'alpha': self.ukf.alpha,
                'beta': self.ukf.beta,
                'kappa': self.ukf.kappa
            },
            'initial_covariance': np.asarray(self.initial_covariance).tolist()
        }

        if self.scenario is not None:
            config_dict['scenario'] = {
                'duration': self.scenario.duration,
                'time_step': self.scenario.time_step,
                'initial_state': list(self.scenario.initial_state),
                'seed': self.scenario.seed
            }

        return config_dict


def _as_tuple(value: Any) -> Tuple:
    """Turn nested YAML lists into hashable tuples for frozen dataclasses"""
    if isinstance(value, (list, tuple)):
        return tuple(_as_tuple(v) for v in value)
    return float(value)


class ConfigLoader:
    """Load and validate filter configurations"""

    def __init__(self, config_dir: Union[str, Path] = "configs"):
        """
        Initialize configuration loader

        Args:
            config_dir: Directory containing configuration files
        """
        self.config_dir = Path(config_dir)

    def _resolve(self, config_name: Union[str, Path]) -> Path:
        """Resolve a bare name, a name without suffix or a path to a file"""
        filepath = Path(config_name)
        if filepath.exists():
            return filepath

        if filepath.suffix not in ('.yaml', '.yml'):
            filepath = filepath.with_name(filepath.name + '.yaml')

        if not filepath.is_absolute():
            candidate = self.config_dir / filepath
            if candidate.exists():
                return candidate

        return filepath

    def load_config(self, config_name: Union[str, Path]) -> FilterConfig:
        """
        Load a filter configuration from YAML

        Args:
            config_name: Name of config file (with or without .yaml) or a path

        Returns:
            FilterConfig object
        """
        filepath = self._resolve(config_name)

        if not filepath.exists():
            raise FileNotFoundError(f"Config file not found: {filepath}")

        logger.info(f"Loading config: {filepath}")

        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        return self.parse_config(config_dict, default_name=filepath.stem)

    def parse_config(self, config_dict: Dict, default_name: str = "default") -> FilterConfig:
        """Parse configuration dictionary into configuration objects"""

        noise_cfg = config_dict.get('noise', {}) or {}
        unknown = set(noise_cfg) - set(NoiseParameters().to_dict())
        if unknown:
            raise ValueError(f"Unknown noise parameters: {sorted(unknown)}")
        noise = NoiseParameters(**{k: float(v) for k, v in noise_cfg.items()})

        sensors_cfg = config_dict.get('sensors', {}) or {}
        sensors = SensorConfig(
            use_laser=bool(sensors_cfg.get('use_laser', True)),
            use_radar=bool(sensors_cfg.get('use_radar', True))
        )

        ukf_cfg = config_dict.get('ukf', {}) or {}
        ukf = UKFParameters(
            alpha=float(ukf_cfg.get('alpha', UKFDefaults.ALPHA)),
            beta=float(ukf_cfg.get('beta', UKFDefaults.BETA)),
            kappa=float(ukf_cfg.get('kappa', UKFDefaults.KAPPA))
        )

        scenario = None
        scenario_cfg = config_dict.get('scenario')
        if scenario_cfg:
            defaults = ScenarioSettings()
            seed = scenario_cfg.get('seed', defaults.seed)
            scenario = ScenarioSettings(
                duration=float(scenario_cfg.get('duration', defaults.duration)),
                time_step=float(scenario_cfg.get('time_step', defaults.time_step)),
                initial_state=_as_tuple(scenario_cfg.get('initial_state', defaults.initial_state)),
                seed=int(seed) if seed is not None else None
            )

        return FilterConfig(
            noise=noise,
            sensors=sensors,
            ukf=ukf,
            initial_covariance=_as_tuple(
                config_dict.get('initial_covariance', UKFDefaults.INITIAL_COVARIANCE)
            ),
            name=str(config_dict.get('name', default_name)),
            scenario=scenario
        )

    def list_configs(self) -> List[str]:
        """List available configuration files"""
        if not self.config_dir.exists():
            return []
        return sorted(file.stem for file in self.config_dir.glob("*.yaml"))

    def validate_config(self, config: FilterConfig) -> List[str]:
        """
        Validate filter configuration

        Returns:
            List of validation warnings
        """
        result = FilterConfigValidator.validate_complete_config(config.to_dict())
        warnings = list(result.errors) + list(result.warnings)

        if config.scenario is not None:
            if config.scenario.time_step > 0.5:
                warnings.append("Time step > 0.5s may cause tracking issues")
            if len(config.scenario.initial_state) != STATE_DIM:
                warnings.append(
                    f"Scenario initial_state must have {STATE_DIM} entries"
                )

        return warnings

    def save_config(self, config: FilterConfig, filename: Union[str, Path]) -> Path:
        """Save filter configuration to a YAML file"""

        filepath = Path(filename)
        if filepath.suffix not in ('.yaml', '.yml'):
            filepath = filepath.with_name(filepath.name + '.yaml')
        if not filepath.is_absolute() and filepath.parent == Path('.'):
            filepath = self.config_dir / filepath

        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved config to {filepath}")
        return filepath


def load_filter_config(path: Optional[Union[str, Path]] = None) -> FilterConfig:
    """Load a configuration file, or return defaults when no path is given"""
    if path is None:
        return FilterConfig()
    return ConfigLoader().load_config(path)
