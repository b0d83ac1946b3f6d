"""
Test suite for the fusion tracking module.

Test Structure:
- test_kalman_filters.py: Sigma points, unscented transform, lidar/radar updates
  and the filter state machine
- test_motion_models.py: CTRV propagation and angle/coordinate utilities
- test_measurement.py: Measurement packages and sensor types
- test_metrics.py: RMSE and NIS consistency metrics

To run all tests:
    pytest sensor_fusion/tracking/tests/

To run with coverage:
    pytest sensor_fusion/tracking/tests/ --cov=sensor_fusion.tracking --cov-report=html
"""
