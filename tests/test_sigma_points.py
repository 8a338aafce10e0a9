import logging

import numpy as np
import pytest

from sensor_fusion.config import N_AUG, N_SIGMA
from sensor_fusion.exceptions import FilterDivergenceError
from sensor_fusion.sigma_points import (
    compute_weights, augment, matrix_square_root, generate_sigma_points,
    weighted_mean, weighted_covariance, state_differences
)


def random_covariance(n, seed=0, scale=1.0):
    rng = np.random.default_rng(seed)
    M = rng.normal(size=(n, n))
    return scale * (M @ M.T / n + 0.1 * np.eye(n))


@pytest.mark.parametrize("spreading_lambda", [0.0, 3.0 - N_AUG, 1.5])
def test_weights_sum_to_one(spreading_lambda):
    weights = compute_weights(spreading_lambda)

    assert weights.shape == (N_SIGMA,)
    assert np.sum(weights) == pytest.approx(1.0)
    assert weights[0] == pytest.approx(spreading_lambda / (spreading_lambda + N_AUG))
    np.testing.assert_allclose(weights[1:], 0.5 / (spreading_lambda + N_AUG))


def test_weights_are_read_only():
    weights = compute_weights(0.0)
    with pytest.raises(ValueError):
        weights[0] = 1.0


def test_augment():
    x = np.arange(5, dtype=float)
    P = random_covariance(5)

    x_aug, P_aug = augment(x, P, std_a=0.8, std_yawdd=0.6)

    np.testing.assert_array_equal(x_aug, [0, 1, 2, 3, 4, 0, 0])
    np.testing.assert_array_equal(P_aug[:5, :5], P)
    assert P_aug[5, 5] == pytest.approx(0.64)
    assert P_aug[6, 6] == pytest.approx(0.36)
    assert np.all(P_aug[5:, :5] == 0.0)
    assert P_aug[5, 6] == 0.0


def test_matrix_square_root_cholesky():
    P = random_covariance(7, seed=1)
    A = matrix_square_root(P)

    np.testing.assert_allclose(A, np.tril(A))
    np.testing.assert_allclose(A @ A.T, P, atol=1e-12)


def test_matrix_square_root_repairs_indefinite(caplog):
    P = np.diag([1.0, 2.0, -1e-3])

    with caplog.at_level(logging.WARNING, logger="sensor_fusion.sigma_points"):
        A = matrix_square_root(P, eps=1e-9)

    assert "not positive definite" in caplog.text
    assert np.all(np.isfinite(A))
    np.testing.assert_allclose(A @ A.T, np.diag([1.0, 2.0, 1e-9]), atol=1e-12)


def test_matrix_square_root_rejects_nan():
    P = np.eye(3)
    P[1, 1] = np.nan
    with pytest.raises(FilterDivergenceError):
        matrix_square_root(P)


@pytest.mark.parametrize("spreading_lambda", [0.0, 3.0 - N_AUG])
def test_sigma_points_recover_mean_and_covariance(spreading_lambda):
    """Symmetric sigma points reproduce the Gaussian they were drawn from"""
    rng = np.random.default_rng(2)
    mean = rng.normal(size=N_AUG)
    cov = random_covariance(N_AUG, seed=3)
    weights = compute_weights(spreading_lambda)

    points = generate_sigma_points(mean, matrix_square_root(cov), spreading_lambda)

    assert points.shape == (N_SIGMA, N_AUG)
    np.testing.assert_array_equal(points[0], mean)
    np.testing.assert_allclose(points[1:N_AUG + 1] + points[N_AUG + 1:], np.tile(2 * mean, (N_AUG, 1)))

    recovered_mean = weighted_mean(points, weights)
    np.testing.assert_allclose(recovered_mean, mean, atol=1e-12)

    recovered_cov = weighted_covariance(points - recovered_mean, weights)
    np.testing.assert_allclose(recovered_cov, cov, atol=1e-12)


def test_state_differences_wrap_yaw():
    points = np.zeros((3, 5))
    points[:, 3] = [np.pi - 0.1, -np.pi + 0.1, 0.3]
    mean = np.zeros(5)
    mean[3] = -np.pi + 0.05

    diff = state_differences(points, mean)

    np.testing.assert_allclose(diff[:, 3], [-0.15, 0.05, 0.25 - np.pi], atol=1e-12)
    # Input is not modified
    assert points[0, 3] == pytest.approx(np.pi - 0.1)
