import numpy as np

from sensor_fusion.measurement_models import (
    range_measurement, range_residual, is_range_degenerate
)


def test_range_model_values():
    points = np.array([[3.0, 4.0, 2.0, 0.0, 0.0]])

    z = range_measurement(points)

    np.testing.assert_allclose(z, [[5.0, np.arctan2(4.0, 3.0), 2.0 * 3.0 / 5.0]])


def test_points_at_origin_stay_finite():
    """Sigma points at the sensor origin take the reference bearing and zero range rate"""
    points = np.array([[0.0, 0.0, 3.0, 1.0, 0.0],
                       [1.0, 0.0, 3.0, 0.0, 0.0]])

    z = range_measurement(points, min_range=1e-6, reference_bearing=0.4)

    assert np.all(np.isfinite(z))
    np.testing.assert_allclose(z[0], [0.0, 0.4, 0.0])
    np.testing.assert_allclose(z[1], [1.0, 0.0, 3.0])


def test_degenerate_only_for_measured_range_at_origin():
    assert is_range_degenerate(np.array([0.0, 0.3, 0.0]), 1e-6)
    assert not is_range_degenerate(np.array([1.0, 0.3, 0.0]), 1e-6)


def test_residual_wraps_bearing():
    diff = range_residual(np.array([1.0, np.pi - 0.1, 0.0]), np.array([1.0, -np.pi + 0.1, 0.0]))

    np.testing.assert_allclose(diff, [0.0, -0.2, 0.0], atol=1e-12)
