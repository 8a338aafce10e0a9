"""
Sigma point generation and weighted reconstruction for the unscented transform.

Sigma points are stored row-wise: an array of shape (n_sigma, dim).
"""
import logging
from typing import Tuple

import numpy as np
from numpy.linalg import LinAlgError
from scipy.linalg import cholesky

from sensor_fusion.config import N_X, N_AUG
from sensor_fusion.coordinate_transforms import wrap_to_pi
from sensor_fusion.exceptions import FilterDivergenceError

logger = logging.getLogger(__name__)

YAW_INDEX = 3


def compute_weights(spreading_lambda: float, n_aug: int = N_AUG) -> np.ndarray:
    """
    Compute the sigma point weights.

    Args:
        spreading_lambda: Spreading parameter lambda
        n_aug: Augmented state dimension

    Returns:
        Read-only weights vector of length 2*n_aug+1, summing to 1
    """
    t = spreading_lambda + n_aug
    weights = np.full(2 * n_aug + 1, 0.5 / t)
    weights[0] = spreading_lambda / t
    weights.setflags(write=False)
    return weights


def augment(x: np.ndarray, P: np.ndarray,
            std_a: float, std_yawdd: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the augmented mean and covariance.

    Args:
        x: State mean (5,)
        P: State covariance (5, 5)
        std_a: Longitudinal acceleration noise std
        std_yawdd: Yaw acceleration noise std

    Returns:
        Tuple of (x_aug (7,), P_aug (7, 7))
    """
    x_aug = np.zeros(N_AUG)
    x_aug[:N_X] = x

    P_aug = np.zeros((N_AUG, N_AUG))
    P_aug[:N_X, :N_X] = P
    P_aug[N_X, N_X] = std_a ** 2
    P_aug[N_X + 1, N_X + 1] = std_yawdd ** 2

    return x_aug, P_aug


def matrix_square_root(cov: np.ndarray, eps: float = 1e-9) -> np.ndarray:
    """
    Lower Cholesky factor of a covariance matrix.

    A covariance that is not positive definite is symmetrized, its eigenvalues
    are floored at eps and a square root is rebuilt from the eigen decomposition.

    Args:
        cov: Symmetric covariance matrix
        eps: Eigenvalue floor for the repair

    Returns:
        Matrix A with A @ A.T == cov (up to the repair)

    Raises:
        FilterDivergenceError: If cov contains non-finite values
    """
    if not np.all(np.isfinite(cov)):
        raise FilterDivergenceError("Covariance contains non-finite values")

    try:
        return cholesky(cov, lower=True)
    except LinAlgError:
        logger.warning("Covariance not positive definite, clipping eigenvalues to %.1e", eps)

    sym = 0.5 * (cov + cov.T)
    eigenvals, eigenvecs = np.linalg.eigh(sym)
    eigenvals = np.maximum(eigenvals, eps)
    return eigenvecs @ np.diag(np.sqrt(eigenvals))


def generate_sigma_points(mean: np.ndarray, sqrt_cov: np.ndarray,
                          spreading_lambda: float) -> np.ndarray:
    """
    Generate 2n+1 sigma points around a mean.

    Args:
        mean: Mean vector (n,)
        sqrt_cov: Square root of the covariance (n, n), columns are spread directions
        spreading_lambda: Spreading parameter lambda

    Returns:
        Sigma points (2n+1, n): [mean, mean + c*A[:, i], mean - c*A[:, i]]
    """
    n = mean.shape[0]
    scaled = np.sqrt(spreading_lambda + n) * sqrt_cov

    return np.concatenate([
        mean[None, :],
        mean[None, :] + scaled.T,
        mean[None, :] - scaled.T
    ], axis=0)


def weighted_mean(points: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted sum of sigma points."""
    return weights @ points


def weighted_cross_covariance(diff_a: np.ndarray, diff_b: np.ndarray,
                              weights: np.ndarray) -> np.ndarray:
    """
    Weighted sum of outer products diff_a[i] diff_b[i]^T.

    Args:
        diff_a: Deviations (n_sigma, dim_a)
        diff_b: Deviations (n_sigma, dim_b)
        weights: Sigma point weights (n_sigma,)

    Returns:
        Matrix (dim_a, dim_b)
    """
    return (weights[:, None] * diff_a).T @ diff_b


def weighted_covariance(diff: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted covariance of deviations (n_sigma, dim)."""
    return weighted_cross_covariance(diff, diff, weights)


def state_differences(points: np.ndarray, mean: np.ndarray) -> np.ndarray:
    """Sigma point deviations from the state mean with yaw wrapped into (-pi, pi]."""
    diff = points - mean[None, :]
    diff[:, YAW_INDEX] = wrap_to_pi(diff[:, YAW_INDEX])
    return diff
