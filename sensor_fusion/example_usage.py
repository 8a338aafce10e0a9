"""
Example usage of the sensor fusion filter.
Simulates a turning target, fuses alternating position and range measurements
and reports accuracy and consistency.
"""
import argparse
import logging
from typing import List, Tuple

import matplotlib.pyplot as plt
import numpy as np

from sensor_fusion.config import UKFConfig
from sensor_fusion.data_structures import (
    BeliefSnapshot, GroundTruthSample, Measurement, SensorType, UpdateOutcome
)
from sensor_fusion.kalman_filter import UnscentedKalmanFilter
from sensor_fusion.metrics import FusionMetrics
from sensor_fusion.simulation import simulate_ctrv_trajectory, generate_measurements


def run_tracking_example(num_steps: int = 500,
                         seed: int = 0,
                         config: UKFConfig = None
                         ) -> Tuple[FusionMetrics, List[BeliefSnapshot], List[GroundTruthSample],
                                    List[Measurement]]:
    """
    Run the filter over a simulated trajectory.

    Args:
        num_steps: Number of measurements to simulate
        seed: Random seed
        config: Filter configuration (defaults to UKFConfig())

    Returns:
        Tuple of (metrics, snapshots, ground_truth, measurements)
    """
    config = config if config is not None else UKFConfig()
    rng = np.random.default_rng(seed)

    print("Generating synthetic sensor data...")
    ground_truth = simulate_ctrv_trajectory(
        initial_state=[5.0, 3.0, 4.0, 0.5, 0.2],
        num_steps=num_steps,
        dt=0.05,
        std_a=config.std_a,
        std_yawdd=config.std_yawdd,
        rng=rng
    )
    measurements = generate_measurements(ground_truth, config, rng)

    ukf = UnscentedKalmanFilter(config)
    metrics = FusionMetrics()
    snapshots = []

    print("Running filter...")
    for step, (measurement, truth) in enumerate(zip(measurements, ground_truth)):
        outcome = ukf.process_measurement(measurement)
        snapshot = ukf.snapshot()
        snapshots.append(snapshot)

        # NIS is only meaningful for an update that was actually applied
        applied = outcome is UpdateOutcome.APPLIED
        is_range = measurement.sensor_type is SensorType.RANGE
        metrics.record(
            snapshot,
            truth,
            nis_position=snapshot.nis_position if applied and not is_range else None,
            nis_range=snapshot.nis_range if applied and is_range else None
        )

        if step % 100 == 0:
            px, py = snapshot.position
            print(f"Processed measurement {step}, estimate: ({px:.2f}, {py:.2f})")

    return metrics, snapshots, ground_truth, measurements


def plot_tracking_results(snapshots: List[BeliefSnapshot],
                          ground_truth: List[GroundTruthSample],
                          measurements: List[Measurement]):
    """
    Plot estimated against true trajectory.

    Args:
        snapshots: Filter outputs
        ground_truth: True trajectory
        measurements: Position sensor measurements are drawn as points
    """
    plt.figure(figsize=(12, 8))

    positions = [m.raw_values for m in measurements if m.sensor_type is SensorType.POSITION]
    if positions:
        positions = np.array(positions)
        plt.scatter(positions[:, 0], positions[:, 1], c='lightblue', alpha=0.4, s=10,
                    label='Position measurements')

    truth = np.array([gt.state[:2] for gt in ground_truth])
    estimates = np.array([s.state[:2] for s in snapshots])
    plt.plot(truth[:, 0], truth[:, 1], 'k-', label='Ground truth')
    plt.plot(estimates[:, 0], estimates[:, 1], 'r--', label='UKF estimate')

    plt.xlabel('X Position (meters)')
    plt.ylabel('Y Position (meters)')
    plt.title('Sensor Fusion Tracking Results')
    plt.legend(loc='upper left')
    plt.grid(True, alpha=0.3)
    plt.axis('equal')
    plt.tight_layout()
    plt.show()


def main():
    parser = argparse.ArgumentParser(description="Run the sensor fusion example")
    parser.add_argument('--steps', type=int, default=500, help='number of measurements')
    parser.add_argument('--seed', type=int, default=0, help='random seed')
    parser.add_argument('--plot', action='store_true', help='show trajectory plot')
    args = parser.parse_args()

    logging.basicConfig(format="%(levelname)s: %(message)s", level=logging.INFO)

    print("Starting Sensor Fusion Example")
    print("=" * 50)

    metrics, snapshots, ground_truth, measurements = run_tracking_example(args.steps, args.seed)
    metrics.print_metrics()

    if args.plot:
        plot_tracking_results(snapshots, ground_truth, measurements)


if __name__ == "__main__":
    main()
