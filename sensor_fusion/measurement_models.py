"""
Measurement models mapping predicted state sigma points into sensor space.
"""
import numpy as np

from sensor_fusion.coordinate_transforms import wrap_to_pi

BEARING_INDEX = 1


def position_measurement(points: np.ndarray) -> np.ndarray:
    """
    Position sensor model: h(x) = [px, py].

    Args:
        points: State sigma points (n_sigma, 5)

    Returns:
        Measurement sigma points (n_sigma, 2)
    """
    return points[:, :2].copy()


def predicted_ranges(points: np.ndarray) -> np.ndarray:
    """Range of every state sigma point from the sensor origin."""
    return np.sqrt(points[:, 0] ** 2 + points[:, 1] ** 2)


def is_range_degenerate(z: np.ndarray, min_range: float) -> bool:
    """True if a measured range is too close to the sensor origin to be used."""
    return bool(z[0] < min_range)


def range_measurement(points: np.ndarray, min_range: float = 1e-6,
                      reference_bearing: float = 0.0) -> np.ndarray:
    """
    Range sensor model: h(x) = [range, bearing, range_rate].

    Bearing and range rate are undefined at the sensor origin. Sigma points
    closer than min_range map to reference_bearing and zero range rate.

    Args:
        points: State sigma points (n_sigma, 5)
        min_range: Ranges below this are treated as the origin
        reference_bearing: Bearing assigned to sigma points at the origin

    Returns:
        Measurement sigma points (n_sigma, 3)
    """
    px = points[:, 0]
    py = points[:, 1]
    v = points[:, 2]
    yaw = points[:, 3]

    rho = predicted_ranges(points)
    at_origin = rho < min_range
    safe_rho = np.where(at_origin, 1.0, rho)

    phi = np.where(at_origin, reference_bearing, np.arctan2(py, px))
    rho_dot = np.where(
        at_origin,
        0.0,
        (px * np.cos(yaw) * v + py * np.sin(yaw) * v) / safe_rho
    )

    return np.stack([rho, phi, rho_dot], axis=1)


def position_residual(z_a: np.ndarray, z_b: np.ndarray) -> np.ndarray:
    """Difference of position measurements (broadcasts over rows)."""
    return z_a - z_b


def range_residual(z_a: np.ndarray, z_b: np.ndarray) -> np.ndarray:
    """Difference of range measurements with bearing wrapped into (-pi, pi]."""
    diff = np.array(z_a - z_b, dtype=float)
    diff[..., BEARING_INDEX] = wrap_to_pi(diff[..., BEARING_INDEX])
    return diff
