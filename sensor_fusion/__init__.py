"""
Sensor Fusion Tracking with an Unscented Kalman Filter

Estimates position, speed, heading and yaw rate of a single object from
asynchronous position (x, y) and range (range, bearing, range rate) sensor
measurements, using the CTRV motion model.

Key Components:
- Measurement and belief data structures
- Coordinate transformations and angle normalization
- Sigma point generation and the CTRV motion model
- Unscented Kalman filter with per-sensor updates and NIS
- RMSE and NIS consistency metrics
- Synthetic trajectory and measurement generation

Usage:
    from sensor_fusion import UnscentedKalmanFilter, Measurement, SensorType

    ukf = UnscentedKalmanFilter()
    ukf.process_measurement(Measurement(SensorType.POSITION, [5.0, 3.0], timestamp=0))
    ukf.process_measurement(Measurement(SensorType.RANGE, [5.9, 0.54, 0.1], timestamp=50000))

    belief = ukf.snapshot()
"""

from .config import UKFConfig
from .data_structures import (
    SensorType,
    Measurement,
    BeliefSnapshot,
    UpdateOutcome,
    GroundTruthSample,
    RMSEResult,
    ConsistencyResult,
)
from .exceptions import (
    FusionError,
    FilterDivergenceError,
    InvalidMeasurementError,
    OutOfOrderMeasurementError,
)
from .coordinate_transforms import (
    wrap_to_pi,
    polar_to_cartesian,
    cartesian_to_polar,
)
from .kalman_filter import UnscentedKalmanFilter
from .metrics import FusionMetrics, calculate_rmse, nis_consistency
from .simulation import simulate_ctrv_trajectory, generate_measurements

__version__ = "1.0.0"

__all__ = [
    # Configuration
    'UKFConfig',

    # Data structures
    'SensorType',
    'Measurement',
    'BeliefSnapshot',
    'UpdateOutcome',
    'GroundTruthSample',
    'RMSEResult',
    'ConsistencyResult',

    # Errors
    'FusionError',
    'FilterDivergenceError',
    'InvalidMeasurementError',
    'OutOfOrderMeasurementError',

    # Coordinate transforms
    'wrap_to_pi',
    'polar_to_cartesian',
    'cartesian_to_polar',

    # Core components
    'UnscentedKalmanFilter',
    'FusionMetrics',
    'calculate_rmse',
    'nis_consistency',
    'simulate_ctrv_trajectory',
    'generate_measurements',
]
