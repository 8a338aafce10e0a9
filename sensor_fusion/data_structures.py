"""
Data structures for the sensor fusion filter.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from sensor_fusion.exceptions import InvalidMeasurementError

logger = logging.getLogger(__name__)


class SensorType(Enum):
    """Supported sensor types."""
    POSITION = "position"  # Cartesian x, y
    RANGE = "range"        # range, bearing, range rate


MEASUREMENT_SIZES = {
    SensorType.POSITION: 2,
    SensorType.RANGE: 3,
}


class UpdateOutcome(Enum):
    """Result of feeding one measurement into the filter."""
    INITIALIZED = "initialized"
    APPLIED = "applied"
    SKIPPED_DISABLED = "skipped_disabled"
    IGNORED = "ignored"
    REJECTED_DEGENERATE = "rejected_degenerate"
    REJECTED_SINGULAR = "rejected_singular"


@dataclass
class Measurement:
    """
    A single sensor reading.

    Attributes:
        sensor_type: Sensor that produced the reading, as a SensorType, its value
            or its member name. Anything else is kept as given and treated as
            unrecognized.
        raw_values: [x, y] for POSITION, [range, bearing, range_rate] for RANGE
        timestamp: Timestamp in microseconds
    """
    sensor_type: Union[SensorType, str]
    raw_values: np.ndarray
    timestamp: int

    def __post_init__(self):
        """Normalize the sensor type and validate the raw values."""
        if not isinstance(self.sensor_type, SensorType):
            # Accept both values ("range") and member names ("RANGE")
            key = self.sensor_type.lower() if isinstance(self.sensor_type, str) else self.sensor_type
            try:
                self.sensor_type = SensorType(key)
            except ValueError:
                logger.debug("Unrecognized sensor type %r", self.sensor_type)

        self.raw_values = np.asarray(self.raw_values, dtype=float).reshape(-1)
        self.timestamp = int(self.timestamp)

        expected = MEASUREMENT_SIZES.get(self.sensor_type)
        if expected is None:
            return

        if self.raw_values.size != expected:
            raise InvalidMeasurementError(
                f"{self.sensor_type.value} measurement needs {expected} values, "
                f"got {self.raw_values.size}")

        if not np.all(np.isfinite(self.raw_values)):
            raise InvalidMeasurementError(f"Non-finite measurement values: {self.raw_values}")

    @property
    def is_recognized(self) -> bool:
        return isinstance(self.sensor_type, SensorType)


@dataclass(frozen=True)
class BeliefSnapshot:
    """
    Copy of the filter belief after an ingest call.

    Attributes:
        state: State mean [px, py, v, yaw, yaw_rate]
        covariance: 5x5 state covariance
        nis_position: Last position sensor NIS (NaN until first update)
        nis_range: Last range sensor NIS (NaN until first update)
        timestamp: Filter time in microseconds
        is_initialized: Whether the belief has been bootstrapped
    """
    state: np.ndarray
    covariance: np.ndarray
    nis_position: float
    nis_range: float
    timestamp: int
    is_initialized: bool

    @property
    def position(self):
        """Get current position estimate."""
        return (float(self.state[0]), float(self.state[1]))

    @property
    def velocity(self):
        """Get current Cartesian velocity estimate."""
        v, yaw = self.state[2], self.state[3]
        return (float(v * np.cos(yaw)), float(v * np.sin(yaw)))


@dataclass
class GroundTruthSample:
    """
    True target state at a timestamp.

    Attributes:
        timestamp: Timestamp in microseconds
        state: True state [px, py, v, yaw, yaw_rate]
    """
    timestamp: int
    state: np.ndarray

    @property
    def position(self):
        return (float(self.state[0]), float(self.state[1]))

    @property
    def velocity(self):
        v, yaw = self.state[2], self.state[3]
        return (float(v * np.cos(yaw)), float(v * np.sin(yaw)))


@dataclass
class RMSEResult:
    """
    Root mean squared error of estimated against true trajectories.

    Attributes:
        px: RMSE of x position
        py: RMSE of y position
        vx: RMSE of x velocity
        vy: RMSE of y velocity
        num_samples: Number of compared samples
    """
    px: float
    py: float
    vx: float
    vy: float
    num_samples: int

    def as_array(self) -> np.ndarray:
        return np.array([self.px, self.py, self.vx, self.vy])


@dataclass
class ConsistencyResult:
    """
    NIS consistency check against the chi-square distribution.

    Attributes:
        dof: Measurement dimension
        confidence: Chi-square confidence level
        threshold: Chi-square quantile for dof and confidence
        num_samples: Number of NIS values evaluated
        num_exceeding: NIS values above threshold
        exceedance_fraction: num_exceeding / num_samples
        expected_fraction: 1 - confidence
        mean_nis: Mean NIS (expected value equals dof)
    """
    dof: int
    confidence: float
    threshold: float
    num_samples: int
    num_exceeding: int
    exceedance_fraction: float
    expected_fraction: float
    mean_nis: float
