"""
Evaluation metrics for the sensor fusion filter.
Accuracy against ground truth (RMSE) and statistical consistency (NIS vs chi-square).
"""
from typing import List, Optional, Sequence, Union

import numpy as np
from scipy.stats import chi2

from sensor_fusion.data_structures import (
    BeliefSnapshot, GroundTruthSample, RMSEResult, ConsistencyResult
)

Estimate = Union[BeliefSnapshot, np.ndarray]


def _to_cartesian(state: np.ndarray) -> np.ndarray:
    """Map [px, py, v, yaw, ...] to [px, py, vx, vy]."""
    px, py, v, yaw = state[0], state[1], state[2], state[3]
    return np.array([px, py, v * np.cos(yaw), v * np.sin(yaw)])


def calculate_rmse(estimations: Sequence[Estimate],
                   ground_truth: Sequence[Union[GroundTruthSample, np.ndarray]]) -> RMSEResult:
    """
    Compute root mean squared error of position and Cartesian velocity.

    Args:
        estimations: Belief snapshots or state vectors [px, py, v, yaw, yaw_rate]
        ground_truth: Ground truth samples or state vectors, aligned with estimations

    Returns:
        RMSEResult with per-component errors

    Raises:
        ValueError: If inputs are empty or of different length
    """
    if len(estimations) == 0 or len(estimations) != len(ground_truth):
        raise ValueError(
            f"Invalid estimation or ground truth data: {len(estimations)} estimations, "
            f"{len(ground_truth)} ground truth samples")

    errors = np.zeros((len(estimations), 4))
    for i, (est, gt) in enumerate(zip(estimations, ground_truth)):
        est_state = est.state if isinstance(est, BeliefSnapshot) else np.asarray(est)
        gt_state = gt.state if isinstance(gt, GroundTruthSample) else np.asarray(gt)
        errors[i] = _to_cartesian(est_state) - _to_cartesian(gt_state)

    rmse = np.sqrt(np.mean(errors ** 2, axis=0))

    return RMSEResult(
        px=float(rmse[0]),
        py=float(rmse[1]),
        vx=float(rmse[2]),
        vy=float(rmse[3]),
        num_samples=len(estimations)
    )


def nis_consistency(nis_values: Sequence[float], dof: int,
                    confidence: float = 0.95) -> ConsistencyResult:
    """
    Compare NIS values against the chi-square distribution with dof degrees of freedom.

    For a consistent filter roughly (1 - confidence) of the values exceed the
    chi-square quantile. NaN entries are ignored.

    Args:
        nis_values: NIS values of one sensor type
        dof: Measurement dimension of that sensor
        confidence: Quantile of the chi-square threshold

    Returns:
        ConsistencyResult
    """
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")

    values = np.asarray(nis_values, dtype=float)
    values = values[np.isfinite(values)]

    threshold = float(chi2.ppf(confidence, dof))
    num_samples = int(values.size)
    num_exceeding = int(np.sum(values > threshold))

    return ConsistencyResult(
        dof=dof,
        confidence=confidence,
        threshold=threshold,
        num_samples=num_samples,
        num_exceeding=num_exceeding,
        exceedance_fraction=num_exceeding / num_samples if num_samples else float('nan'),
        expected_fraction=1.0 - confidence,
        mean_nis=float(np.mean(values)) if num_samples else float('nan')
    )


class FusionMetrics:
    """
    Collects estimates, ground truth and NIS values over a run.
    """

    def __init__(self, confidence: float = 0.95):
        """
        Initialize metrics collector.

        Args:
            confidence: Chi-square confidence level for NIS consistency
        """
        self.confidence = confidence
        self.estimations: List[BeliefSnapshot] = []
        self.ground_truth: List[GroundTruthSample] = []
        self.nis_position: List[float] = []
        self.nis_range: List[float] = []

    def record(self, snapshot: BeliefSnapshot, truth: Optional[GroundTruthSample] = None,
               nis_position: Optional[float] = None, nis_range: Optional[float] = None):
        """Record one filter output, its ground truth and any NIS produced by the step."""
        if truth is not None:
            self.estimations.append(snapshot)
            self.ground_truth.append(truth)
        if nis_position is not None:
            self.nis_position.append(nis_position)
        if nis_range is not None:
            self.nis_range.append(nis_range)

    def rmse(self) -> RMSEResult:
        return calculate_rmse(self.estimations, self.ground_truth)

    def position_consistency(self) -> ConsistencyResult:
        return nis_consistency(self.nis_position, dof=2, confidence=self.confidence)

    def range_consistency(self) -> ConsistencyResult:
        return nis_consistency(self.nis_range, dof=3, confidence=self.confidence)

    def reset(self):
        self.estimations.clear()
        self.ground_truth.clear()
        self.nis_position.clear()
        self.nis_range.clear()

    def print_metrics(self):
        """Print evaluation metrics in a readable format."""
        print("\nAccuracy:")
        if self.estimations:
            result = self.rmse()
            print(f"  RMSE px: {result.px:.4f} m")
            print(f"  RMSE py: {result.py:.4f} m")
            print(f"  RMSE vx: {result.vx:.4f} m/s")
            print(f"  RMSE vy: {result.vy:.4f} m/s")
            print(f"  Samples: {result.num_samples}")
        else:
            print("  No ground truth recorded")

        for name, result in (("Position sensor", self.position_consistency()),
                             ("Range sensor", self.range_consistency())):
            print(f"\n{name} NIS:")
            print(f"  Updates: {result.num_samples}")
            print(f"  Mean NIS: {result.mean_nis:.3f} (expected {result.dof})")
            print(f"  Above chi2 {result.confidence:.0%} ({result.threshold:.3f}): "
                  f"{result.exceedance_fraction:.3f} (expected {result.expected_fraction:.3f})")
