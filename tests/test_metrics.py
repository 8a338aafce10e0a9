import math

import numpy as np
import pytest

from sensor_fusion.data_structures import BeliefSnapshot, GroundTruthSample
from sensor_fusion.metrics import FusionMetrics, calculate_rmse, nis_consistency


def make_snapshot(state):
    return BeliefSnapshot(state=np.asarray(state, dtype=float), covariance=np.eye(5),
                          nis_position=math.nan, nis_range=math.nan, timestamp=0,
                          is_initialized=True)


def test_rmse_known_values():
    estimations = [np.array([1.0, 1.0, 1.0, 0.0, 0.0]),
                   np.array([2.0, 2.0, 1.0, 0.0, 0.0])]
    ground_truth = [np.array([1.0, 2.0, 1.0, 0.0, 0.0]),
                    np.array([2.0, 0.0, 2.0, 0.0, 0.0])]

    result = calculate_rmse(estimations, ground_truth)

    assert result.px == pytest.approx(0.0)
    assert result.py == pytest.approx(np.sqrt((1.0 + 4.0) / 2))
    assert result.vx == pytest.approx(np.sqrt(0.5))
    assert result.vy == pytest.approx(0.0)
    assert result.num_samples == 2


def test_rmse_uses_cartesian_velocity():
    """Speed and heading are compared as (vx, vy)"""
    estimations = [make_snapshot([0.0, 0.0, 1.0, np.pi / 2, 0.0])]
    ground_truth = [GroundTruthSample(timestamp=0, state=np.array([0.0, 0.0, 1.0, 0.0, 0.0]))]

    result = calculate_rmse(estimations, ground_truth)

    np.testing.assert_allclose(result.as_array(), [0.0, 0.0, 1.0, 1.0], atol=1e-12)


def test_rmse_invalid_input():
    with pytest.raises(ValueError):
        calculate_rmse([], [])
    with pytest.raises(ValueError):
        calculate_rmse([np.zeros(5)], [np.zeros(5), np.zeros(5)])


def test_nis_consistency_threshold():
    result = nis_consistency([0.5, 1.0, 7.0, 10.0], dof=2)

    assert result.threshold == pytest.approx(5.991, abs=1e-3)
    assert result.num_samples == 4
    assert result.num_exceeding == 2
    assert result.exceedance_fraction == pytest.approx(0.5)
    assert result.expected_fraction == pytest.approx(0.05)
    assert result.mean_nis == pytest.approx(4.625)


def test_nis_consistency_ignores_nan():
    result = nis_consistency([math.nan, 1.0, 8.0], dof=3)

    assert result.threshold == pytest.approx(7.815, abs=1e-3)
    assert result.num_samples == 2
    assert result.num_exceeding == 1


def test_nis_consistency_empty_and_invalid():
    result = nis_consistency([], dof=2)
    assert result.num_samples == 0
    assert math.isnan(result.exceedance_fraction)

    with pytest.raises(ValueError):
        nis_consistency([1.0], dof=2, confidence=1.5)


def test_fusion_metrics_collects_and_prints(capsys):
    metrics = FusionMetrics()
    truth = GroundTruthSample(timestamp=0, state=np.array([1.0, 1.0, 0.0, 0.0, 0.0]))

    metrics.record(make_snapshot([1.0, 1.0, 0.0, 0.0, 0.0]), truth, nis_position=1.0)
    metrics.record(make_snapshot([1.0, 2.0, 0.0, 0.0, 0.0]), truth, nis_range=9.0)
    metrics.record(make_snapshot([5.0, 5.0, 0.0, 0.0, 0.0]))

    assert metrics.rmse().num_samples == 2
    assert metrics.position_consistency().num_samples == 1
    assert metrics.range_consistency().num_exceeding == 1

    metrics.print_metrics()
    output = capsys.readouterr().out
    assert "RMSE px" in output
    assert "Range sensor NIS" in output

    metrics.reset()
    assert not metrics.estimations
    assert not metrics.nis_range
