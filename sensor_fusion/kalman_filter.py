# kalman_filter.py

"""
Unscented Kalman filter fusing position and range sensor measurements.
Tracks a single object with the CTRV motion model.
"""
import logging
import math
from typing import Callable, Optional, Tuple

import numpy as np
from numpy.linalg import LinAlgError

from sensor_fusion.config import (
    UKFConfig, N_X, MAX_PREDICTION_DT, PREDICTION_SUB_STEP
)
from sensor_fusion.data_structures import (
    Measurement, SensorType, BeliefSnapshot, UpdateOutcome
)
from sensor_fusion.exceptions import (
    FusionError, FilterDivergenceError, OutOfOrderMeasurementError
)
from sensor_fusion.coordinate_transforms import polar_to_cartesian
from sensor_fusion.measurement_models import (
    position_measurement, range_measurement, is_range_degenerate,
    position_residual, range_residual
)
from sensor_fusion.motion_model import ctrv_propagate
from sensor_fusion.sigma_points import (
    compute_weights, augment, matrix_square_root, generate_sigma_points,
    weighted_mean, weighted_covariance, weighted_cross_covariance, state_differences
)

logger = logging.getLogger(__name__)

Residual = Callable[[np.ndarray, np.ndarray], np.ndarray]


class UnscentedKalmanFilter:
    """
    Unscented Kalman filter for one object observed by two sensor types.

    State vector: [px, py, v, yaw, yaw_rate]
    Position sensor measurement: [px, py]
    Range sensor measurement: [range, bearing, range_rate]

    Calls on one instance must be serialized by the caller.
    """

    def __init__(self, config: Optional[UKFConfig] = None):
        """
        Initialize the filter with an uninitialized belief.

        Args:
            config: Filter parameters (defaults to UKFConfig())
        """
        self.config = config if config is not None else UKFConfig()

        self.weights = compute_weights(self.config.spreading_lambda)

        # Measurement noise covariance matrices
        self.R_position = np.diag([
            self.config.std_position_x ** 2,
            self.config.std_position_y ** 2
        ])
        self.R_range = np.diag([
            self.config.std_range ** 2,
            self.config.std_bearing ** 2,
            self.config.std_range_rate ** 2
        ])

        self.reset()

    def reset(self):
        """Reset the belief to the uninitialized state."""
        self._x = np.zeros(N_X)
        self._P = np.eye(N_X)
        self._time_us = 0
        self._is_initialized = False
        self._sigma_pred: Optional[np.ndarray] = None
        self._nis_position = math.nan
        self._nis_range = math.nan

    @property
    def x(self) -> np.ndarray:
        """Current state mean (copy)."""
        return self._x.copy()

    @property
    def P(self) -> np.ndarray:
        """Current state covariance (copy)."""
        return self._P.copy()

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def time_us(self) -> int:
        return self._time_us

    @property
    def nis_position(self) -> float:
        return self._nis_position

    @property
    def nis_range(self) -> float:
        return self._nis_range

    def snapshot(self) -> BeliefSnapshot:
        """Copy of the current belief."""
        return BeliefSnapshot(
            state=self._x.copy(),
            covariance=self._P.copy(),
            nis_position=self._nis_position,
            nis_range=self._nis_range,
            timestamp=self._time_us,
            is_initialized=self._is_initialized
        )

    def process_measurement(self, measurement: Measurement) -> UpdateOutcome:
        """
        Ingest one measurement: bootstrap, or predict to its timestamp and update.

        Args:
            measurement: Measurement with timestamp >= current filter time

        Returns:
            What the filter did with the measurement

        Raises:
            OutOfOrderMeasurementError: If the measurement is older than the filter time
            FilterDivergenceError: If prediction produces a non-finite belief
        """
        if not self._is_initialized:
            return self._initialize(measurement)

        if not measurement.is_recognized:
            logger.warning("Ignoring measurement with unrecognized sensor type %r",
                           measurement.sensor_type)
            return UpdateOutcome.IGNORED

        if measurement.timestamp < self._time_us:
            raise OutOfOrderMeasurementError(measurement.timestamp, self._time_us)

        delta_t = (measurement.timestamp - self._time_us) / 1000000.0
        sigma_pred = self._predict_elapsed(delta_t, measurement.timestamp)

        if measurement.sensor_type is SensorType.RANGE:
            if not self.config.use_range_sensor:
                return UpdateOutcome.SKIPPED_DISABLED
            return self.update_range(measurement.raw_values, sigma_pred)

        if not self.config.use_position_sensor:
            return UpdateOutcome.SKIPPED_DISABLED
        return self.update_position(measurement.raw_values, sigma_pred)

    def _initialize(self, measurement: Measurement) -> UpdateOutcome:
        """Set the belief directly from the first usable measurement."""
        if measurement.sensor_type is SensorType.RANGE:
            rho, phi = measurement.raw_values[0], measurement.raw_values[1]
            px, py = polar_to_cartesian(rho, phi)
        elif measurement.sensor_type is SensorType.POSITION:
            px, py = measurement.raw_values[0], measurement.raw_values[1]
        else:
            logger.debug("Discarding bootstrap measurement of type %r", measurement.sensor_type)
            return UpdateOutcome.IGNORED

        # Zero initial speed, yaw and yaw rate
        self._x = np.array([px, py, 0.0, 0.0, 0.0])
        self._P = np.eye(N_X)
        self._time_us = measurement.timestamp
        self._is_initialized = True

        logger.debug("Initialized from %s measurement at t=%dus: %s",
                     measurement.sensor_type.value, self._time_us, self._x)
        return UpdateOutcome.INITIALIZED

    def _predict_elapsed(self, delta_t: float, timestamp: int) -> np.ndarray:
        """
        Predict across delta_t in capped sub-steps and commit the result.

        Returns:
            Predicted sigma points of the final sub-step
        """
        x, P = self._x, self._P
        num_sub_steps = 0

        while delta_t > MAX_PREDICTION_DT:
            x, P, _ = self._prediction_step(x, P, PREDICTION_SUB_STEP)
            delta_t -= PREDICTION_SUB_STEP
            num_sub_steps += 1

        x, P, sigma_pred = self._prediction_step(x, P, delta_t)

        if num_sub_steps:
            logger.debug("Split prediction into %d sub-steps plus %.4fs remainder",
                         num_sub_steps, delta_t)

        self._x, self._P = x, P
        self._sigma_pred = sigma_pred
        self._time_us = timestamp
        return sigma_pred.copy()

    def predict(self, delta_t: float) -> np.ndarray:
        """
        Advance the belief by delta_t seconds in a single step.

        The filter time is not changed; process_measurement owns the clock.

        Args:
            delta_t: Time step in seconds (>= 0)

        Returns:
            Predicted state sigma points (15, 5) for the following update
        """
        if not self._is_initialized:
            raise FusionError("Cannot predict before the filter is initialized")
        if delta_t < 0:
            raise ValueError(f"delta_t must be non-negative, got {delta_t}")

        self._x, self._P, self._sigma_pred = self._prediction_step(self._x, self._P, delta_t)
        return self._sigma_pred.copy()

    def _prediction_step(self, x: np.ndarray, P: np.ndarray,
                         delta_t: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        One unscented prediction step.

        Args:
            x: State mean
            P: State covariance
            delta_t: Time step in seconds

        Returns:
            Tuple of (predicted_mean, predicted_covariance, predicted_sigma_points)
        """
        # Augmented mean and covariance with process noise
        x_aug, P_aug = augment(x, P, self.config.std_a, self.config.std_yawdd)

        A_aug = matrix_square_root(P_aug, self.config.regularization_eps)
        sigma_aug = generate_sigma_points(x_aug, A_aug, self.config.spreading_lambda)

        sigma_pred = ctrv_propagate(sigma_aug, delta_t)

        # Predicted mean: x = sum(w_i * X_i)
        x_pred = weighted_mean(sigma_pred, self.weights)

        # Predicted covariance: P = sum(w_i * (X_i - x)(X_i - x)^T), yaw wrapped
        x_diff = state_differences(sigma_pred, x_pred)
        P_pred = weighted_covariance(x_diff, self.weights)
        P_pred = 0.5 * (P_pred + P_pred.T)

        if not (np.all(np.isfinite(x_pred)) and np.all(np.isfinite(P_pred))):
            raise FilterDivergenceError(f"Prediction over {delta_t}s produced a non-finite belief")

        return x_pred, P_pred, sigma_pred

    def update_position(self, z: np.ndarray,
                        sigma_pred: Optional[np.ndarray] = None) -> UpdateOutcome:
        """
        Update the belief with a position sensor measurement.

        Args:
            z: Measurement [px, py]
            sigma_pred: Predicted sigma points from the preceding predict call

        Returns:
            APPLIED, or REJECTED_SINGULAR if the innovation covariance is singular
        """
        sigma_pred = self._resolve_sigma_points(sigma_pred)
        z_sig = position_measurement(sigma_pred)

        nis = self._unscented_update(np.asarray(z, dtype=float), sigma_pred, z_sig,
                                     self.R_position, position_residual)
        if nis is None:
            return UpdateOutcome.REJECTED_SINGULAR

        self._nis_position = nis
        return UpdateOutcome.APPLIED

    def update_range(self, z: np.ndarray,
                     sigma_pred: Optional[np.ndarray] = None) -> UpdateOutcome:
        """
        Update the belief with a range sensor measurement.

        Args:
            z: Measurement [range, bearing, range_rate]
            sigma_pred: Predicted sigma points from the preceding predict call

        Returns:
            APPLIED, REJECTED_DEGENERATE if the measured range is at the sensor
            origin, or REJECTED_SINGULAR if the innovation covariance is singular
        """
        sigma_pred = self._resolve_sigma_points(sigma_pred)
        z = np.asarray(z, dtype=float)

        if is_range_degenerate(z, self.config.min_range):
            logger.warning("Skipping range update: measured range at sensor origin")
            return UpdateOutcome.REJECTED_DEGENERATE

        # Sigma points at the origin carry no bearing information
        z_sig = range_measurement(sigma_pred, self.config.min_range,
                                  reference_bearing=z[1])

        nis = self._unscented_update(z, sigma_pred, z_sig,
                                     self.R_range, range_residual)
        if nis is None:
            return UpdateOutcome.REJECTED_SINGULAR

        self._nis_range = nis
        return UpdateOutcome.APPLIED

    def _resolve_sigma_points(self, sigma_pred: Optional[np.ndarray]) -> np.ndarray:
        if sigma_pred is not None:
            return np.asarray(sigma_pred, dtype=float)
        if self._sigma_pred is None:
            raise FusionError("Update requires predicted sigma points, call predict first")
        return self._sigma_pred

    def _unscented_update(self, z: np.ndarray, sigma_pred: np.ndarray, z_sig: np.ndarray,
                          R: np.ndarray, residual: Residual) -> Optional[float]:
        """
        Shared unscented measurement update.

        Args:
            z: Actual measurement
            sigma_pred: Predicted state sigma points (n_sigma, 5)
            z_sig: Sigma points mapped into measurement space (n_sigma, n_z)
            R: Measurement noise covariance
            residual: Measurement difference function (handles angle wrap)

        Returns:
            NIS of the applied update, or None if the update was rejected
        """
        # Predicted measurement
        z_pred = weighted_mean(z_sig, self.weights)

        # Innovation covariance: S = sum(w_i * dZ_i dZ_i^T) + R
        z_diff = residual(z_sig, z_pred[None, :])
        S = weighted_covariance(z_diff, self.weights) + R

        # Cross covariance: Tc = sum(w_i * dX_i dZ_i^T)
        x_diff = state_differences(sigma_pred, self._x)
        Tc = weighted_cross_covariance(x_diff, z_diff, self.weights)

        innovation = residual(z, z_pred)

        try:
            S_inv = np.linalg.inv(S)
        except LinAlgError:
            logger.warning("Rejecting update: singular innovation covariance")
            return None

        if not np.all(np.isfinite(S_inv)):
            logger.warning("Rejecting update: non-finite innovation covariance inverse")
            return None

        nis = float(innovation @ S_inv @ innovation)

        # Kalman gain: K = Tc * S^-1
        kalman_gain = Tc @ S_inv

        x_new = self._x + kalman_gain @ innovation
        P_new = self._P - kalman_gain @ S @ kalman_gain.T
        P_new = 0.5 * (P_new + P_new.T)

        if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(P_new))):
            logger.warning("Rejecting update: non-finite posterior")
            return None

        self._x, self._P = x_new, P_new
        # Sigma points describe the prior and are consumed by this update
        self._sigma_pred = None
        return nis
