"""
Measurement log reading and writing

Each line of a measurement log holds one record, fields separated by tabs or
spaces:

    L  x    y    timestamp  [px_gt py_gt vx_gt vy_gt ...]
    R  rho  phi  rho_dot    timestamp  [px_gt py_gt vx_gt vy_gt ...]

Timestamps are integer microseconds. Ground truth columns are optional; when
present the first four are used for accuracy scoring. Blank lines and lines
starting with '#' are ignored.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, TextIO, Union

import numpy as np

from .tracking.measurement import MeasurementPackage, SensorType
from .validators import validate_timestamps

logger = logging.getLogger(__name__)

GROUND_TRUTH_FIELDS = 4


class MeasurementParseError(ValueError):
    """Raised when a measurement log line cannot be parsed"""
    def __init__(self, message: str, line_number: Optional[int] = None, line: str = ""):
        self.line_number = line_number
        self.line = line
        location = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{location}{message}")


def parse_measurement_line(line: str, line_number: Optional[int] = None) -> MeasurementPackage:
    """
    Parse one log line into a measurement package

    Args:
        line: Log line
        line_number: Line number for error messages

    Returns:
        MeasurementPackage
    """
    fields = line.split()
    if not fields:
        raise MeasurementParseError("empty line", line_number, line)

    try:
        sensor_type = SensorType(fields[0].upper())
    except ValueError:
        raise MeasurementParseError(
            f"unknown sensor type '{fields[0]}'", line_number, line
        ) from None

    n_values = sensor_type.measurement_dim
    if len(fields) < n_values + 2:
        raise MeasurementParseError(
            f"{sensor_type.name} record needs {n_values} values and a timestamp, "
            f"got {len(fields) - 1} fields",
            line_number, line
        )

    try:
        values = [float(v) for v in fields[1:n_values + 1]]
        timestamp = int(fields[n_values + 1])
        extra = [float(v) for v in fields[n_values + 2:]]
    except ValueError as e:
        raise MeasurementParseError(str(e), line_number, line) from e

    ground_truth = None
    if extra:
        if len(extra) < GROUND_TRUTH_FIELDS:
            raise MeasurementParseError(
                f"ground truth needs {GROUND_TRUTH_FIELDS} values, got {len(extra)}",
                line_number, line
            )
        ground_truth = np.array(extra)

    try:
        return MeasurementPackage(sensor_type, timestamp, np.array(values), ground_truth)
    except ValueError as e:
        raise MeasurementParseError(str(e), line_number, line) from e


def iter_measurements(stream: Iterable[str]) -> Iterator[MeasurementPackage]:
    """Yield measurement packages from an iterable of log lines."""
    for line_number, line in enumerate(stream, start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        yield parse_measurement_line(stripped, line_number)


def load_measurements(path: Union[str, Path], check_order: bool = True) -> List[MeasurementPackage]:
    """
    Load every measurement from a log file

    Args:
        path: Log file path
        check_order: Log a warning when timestamps decrease

    Returns:
        Measurement packages in file order
    """
    path = Path(path)
    with open(path, 'r') as f:
        measurements = list(iter_measurements(f))

    logger.info(f"Loaded {len(measurements)} measurements from {path}")

    if check_order:
        result = validate_timestamps([m.timestamp for m in measurements])
        for message in result.errors:
            logger.warning(f"{path}: {message}")

    return measurements


def format_measurement_line(measurement: MeasurementPackage) -> str:
    """Format a measurement package as a tab-separated log line."""
    fields = [measurement.sensor_type.value]
    fields.extend(f"{v:.6e}" for v in measurement.raw_measurements)
    fields.append(str(measurement.timestamp))
    if measurement.ground_truth is not None:
        fields.extend(f"{v:.6e}" for v in measurement.ground_truth)
    return "\t".join(fields)


def write_measurements(stream: TextIO, measurements: Iterable[MeasurementPackage]) -> int:
    """Write measurement lines to an open text stream; returns the line count."""
    count = 0
    for measurement in measurements:
        stream.write(format_measurement_line(measurement) + "\n")
        count += 1
    return count


def save_measurements(path: Union[str, Path], measurements: Iterable[MeasurementPackage]) -> Path:
    """Save measurement packages to a log file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        count = write_measurements(f, measurements)
    logger.info(f"Saved {count} measurements to {path}")
    return path
