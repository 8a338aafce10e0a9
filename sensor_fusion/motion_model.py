"""
CTRV (constant turn rate and velocity magnitude) motion model.

State: [px, py, v, yaw, yaw_rate]
Augmented state: [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
"""
import numpy as np

from sensor_fusion.config import N_X, YAW_RATE_EPSILON


def ctrv_propagate(points: np.ndarray, dt: float) -> np.ndarray:
    """
    Propagate augmented sigma points through the CTRV model.

    Args:
        points: Augmented sigma points (n_sigma, 7)
        dt: Time step in seconds

    Returns:
        Predicted state sigma points (n_sigma, 5)
    """
    points = np.atleast_2d(points)
    px = points[:, 0]
    py = points[:, 1]
    v = points[:, 2]
    yaw = points[:, 3]
    yawd = points[:, 4]
    nu_a = points[:, 5]
    nu_yawdd = points[:, 6]

    turning = np.abs(yawd) > YAW_RATE_EPSILON
    # Avoid division by zero in the straight branch
    safe_yawd = np.where(turning, yawd, 1.0)
    yaw_end = yaw + yawd * dt

    px_p = np.where(
        turning,
        px + v / safe_yawd * (np.sin(yaw_end) - np.sin(yaw)),
        px + v * dt * np.cos(yaw)
    )
    py_p = np.where(
        turning,
        py + v / safe_yawd * (np.cos(yaw) - np.cos(yaw_end)),
        py + v * dt * np.sin(yaw)
    )

    v_p = v.copy()
    yaw_p = yaw_end
    yawd_p = yawd.copy()

    # Process noise
    half_dt2 = 0.5 * dt * dt
    px_p = px_p + half_dt2 * nu_a * np.cos(yaw)
    py_p = py_p + half_dt2 * nu_a * np.sin(yaw)
    v_p = v_p + nu_a * dt
    yaw_p = yaw_p + half_dt2 * nu_yawdd
    yawd_p = yawd_p + nu_yawdd * dt

    return np.stack([px_p, py_p, v_p, yaw_p, yawd_p], axis=1)


def ctrv_step(state: np.ndarray, dt: float,
              nu_a: float = 0.0, nu_yawdd: float = 0.0) -> np.ndarray:
    """
    Advance a single state through the CTRV model.

    Args:
        state: State [px, py, v, yaw, yaw_rate]
        dt: Time step in seconds
        nu_a: Longitudinal acceleration applied over the step
        nu_yawdd: Yaw acceleration applied over the step

    Returns:
        Next state (5,)
    """
    augmented = np.empty(N_X + 2)
    augmented[:N_X] = state
    augmented[N_X] = nu_a
    augmented[N_X + 1] = nu_yawdd
    return ctrv_propagate(augmented[None, :], dt)[0]
