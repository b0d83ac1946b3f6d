#!/usr/bin/env python3
"""
Configurable scenario runner for the lidar/radar fusion filter

Examples:
    python run_scenario.py --config default --plot
    python run_scenario.py --config configs/radar_only.yaml --input data/measurements.txt --output estimates.txt
"""

import sys

from sensor_fusion.runner import main


if __name__ == "__main__":
    sys.exit(main())
