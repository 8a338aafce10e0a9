"""
Configuration for the CTRV unscented Kalman filter.

Process noise is tunable; the measurement noise defaults are the values
published by the sensor manufacturer and are not meant to be changed.
"""
from dataclasses import dataclass, replace

# State dimension: [px, py, v, yaw, yaw_rate]
N_X = 5

# Augmented dimension: state + [nu_a, nu_yawdd]
N_AUG = 7

N_SIGMA = 2 * N_AUG + 1

# Time gaps longer than this are integrated in sub-steps (seconds)
MAX_PREDICTION_DT = 0.1
PREDICTION_SUB_STEP = 0.05

# Below this yaw rate the straight-line motion branch is used
YAW_RATE_EPSILON = 0.001


@dataclass(frozen=True)
class UKFConfig:
    """
    Immutable filter parameters.

    Attributes:
        std_a: Process noise std of longitudinal acceleration (m/s^2)
        std_yawdd: Process noise std of yaw acceleration (rad/s^2)
        std_position_x: Position sensor noise std along x (m)
        std_position_y: Position sensor noise std along y (m)
        std_range: Range sensor noise std of range (m)
        std_bearing: Range sensor noise std of bearing (rad)
        std_range_rate: Range sensor noise std of range rate (m/s)
        use_position_sensor: Apply position sensor updates
        use_range_sensor: Apply range sensor updates
        spreading_lambda: Sigma point spreading parameter
        regularization_eps: Eigenvalue floor used when repairing a covariance
        min_range: Ranges below this are treated as the sensor origin (m)
    """
    std_a: float = 0.8
    std_yawdd: float = 0.6

    std_position_x: float = 0.15
    std_position_y: float = 0.15

    std_range: float = 0.3
    std_bearing: float = 0.03
    std_range_rate: float = 0.3

    use_position_sensor: bool = True
    use_range_sensor: bool = True

    spreading_lambda: float = 0.0
    regularization_eps: float = 1e-9
    min_range: float = 1e-6

    def __post_init__(self):
        for name in ('std_a', 'std_yawdd', 'std_position_x', 'std_position_y',
                     'std_range', 'std_bearing', 'std_range_rate'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

        if self.spreading_lambda + N_AUG <= 0:
            raise ValueError(
                f"spreading_lambda + n_aug must be positive, got {self.spreading_lambda + N_AUG}")

        if self.regularization_eps <= 0:
            raise ValueError("regularization_eps must be positive")

    def with_process_noise(self, std_a: float, std_yawdd: float) -> 'UKFConfig':
        """Return a copy with different process noise."""
        return replace(self, std_a=std_a, std_yawdd=std_yawdd)
