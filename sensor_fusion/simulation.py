"""
Synthetic CTRV trajectories and noisy sensor measurements.

Ground truth is generated with the same discretized CTRV process the filter
assumes, so a correctly tuned filter is statistically consistent on this data.
"""
from typing import List, Optional, Sequence

import numpy as np

from sensor_fusion.config import UKFConfig
from sensor_fusion.coordinate_transforms import cartesian_to_polar, wrap_to_pi
from sensor_fusion.data_structures import GroundTruthSample, Measurement, SensorType
from sensor_fusion.motion_model import ctrv_step


def simulate_ctrv_trajectory(initial_state: Sequence[float],
                             num_steps: int,
                             dt: float = 0.05,
                             std_a: float = 0.8,
                             std_yawdd: float = 0.6,
                             rng: Optional[np.random.Generator] = None,
                             start_time_us: int = 0) -> List[GroundTruthSample]:
    """
    Generate a ground truth trajectory.

    Args:
        initial_state: Initial state [px, py, v, yaw, yaw_rate]
        num_steps: Number of samples to generate (including the initial one)
        dt: Time between samples in seconds
        std_a: Std of the longitudinal acceleration drawn per step
        std_yawdd: Std of the yaw acceleration drawn per step
        rng: Random generator (a fresh default_rng() if None)
        start_time_us: Timestamp of the initial sample in microseconds

    Returns:
        List of GroundTruthSample
    """
    rng = rng if rng is not None else np.random.default_rng()
    dt_us = int(round(dt * 1e6))

    state = np.asarray(initial_state, dtype=float)
    samples = [GroundTruthSample(timestamp=start_time_us, state=state.copy())]

    for step in range(1, num_steps):
        nu_a = rng.normal(0.0, std_a)
        nu_yawdd = rng.normal(0.0, std_yawdd)
        state = ctrv_step(state, dt, nu_a, nu_yawdd)
        samples.append(GroundTruthSample(timestamp=start_time_us + step * dt_us,
                                         state=state.copy()))

    return samples


def measure(truth: GroundTruthSample, sensor_type: SensorType, config: UKFConfig,
            rng: np.random.Generator) -> Measurement:
    """
    Draw one noisy measurement of a ground truth sample.

    Args:
        truth: Ground truth sample
        sensor_type: Sensor producing the measurement
        config: Filter configuration holding the sensor noise stds
        rng: Random generator

    Returns:
        Measurement
    """
    px, py, v, yaw = truth.state[0], truth.state[1], truth.state[2], truth.state[3]

    if sensor_type is SensorType.POSITION:
        values = np.array([
            px + rng.normal(0.0, config.std_position_x),
            py + rng.normal(0.0, config.std_position_y)
        ])
    else:
        rho, phi = cartesian_to_polar(px, py)
        rho_dot = (px * np.cos(yaw) * v + py * np.sin(yaw) * v) / rho
        values = np.array([
            rho + rng.normal(0.0, config.std_range),
            wrap_to_pi(phi + rng.normal(0.0, config.std_bearing)),
            rho_dot + rng.normal(0.0, config.std_range_rate)
        ])

    return Measurement(sensor_type=sensor_type, raw_values=values, timestamp=truth.timestamp)


def generate_measurements(ground_truth: Sequence[GroundTruthSample],
                          config: Optional[UKFConfig] = None,
                          rng: Optional[np.random.Generator] = None,
                          sensor_pattern: Sequence[SensorType] = (SensorType.POSITION,
                                                                  SensorType.RANGE)
                          ) -> List[Measurement]:
    """
    Generate one measurement per ground truth sample, cycling through sensor_pattern.

    Args:
        ground_truth: Ground truth trajectory
        config: Configuration with measurement noise stds (defaults to UKFConfig())
        rng: Random generator (a fresh default_rng() if None)
        sensor_pattern: Sensor types used in turn

    Returns:
        List of Measurement aligned with ground_truth
    """
    config = config if config is not None else UKFConfig()
    rng = rng if rng is not None else np.random.default_rng()

    return [
        measure(truth, sensor_pattern[i % len(sensor_pattern)], config, rng)
        for i, truth in enumerate(ground_truth)
    ]
