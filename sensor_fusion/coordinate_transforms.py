"""
Coordinate transformation functions for sensor data.
"""
import numpy as np
from typing import Tuple, Union

ArrayLike = Union[float, np.ndarray]


def wrap_to_pi(angle: ArrayLike) -> ArrayLike:
    """
    Normalize an angle (or array of angles) into (-pi, pi].

    Args:
        angle: Angle in radians, any real value

    Returns:
        Equivalent angle in (-pi, pi], same shape as input
    """
    wrapped = angle - 2.0 * np.pi * np.ceil((angle - np.pi) / (2.0 * np.pi))
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def polar_to_cartesian(range_m: float, bearing_rad: float) -> Tuple[float, float]:
    """
    Convert polar coordinates to Cartesian coordinates.

    Args:
        range_m: Range distance in meters
        bearing_rad: Bearing angle in radians (0 = +x axis, counter-clockwise positive)

    Returns:
        Tuple of (x, y) coordinates in meters
    """
    x = range_m * np.cos(bearing_rad)
    y = range_m * np.sin(bearing_rad)
    return (float(x), float(y))


def cartesian_to_polar(x: float, y: float) -> Tuple[float, float]:
    """
    Convert Cartesian coordinates to polar coordinates.

    Args:
        x: x coordinate in meters
        y: y coordinate in meters

    Returns:
        Tuple of (range_m, bearing_rad)
    """
    range_m = np.sqrt(x ** 2 + y ** 2)
    bearing_rad = np.arctan2(y, x)
    return (float(range_m), float(bearing_rad))
