"""
Errors raised by the sensor fusion filter.
"""


class FusionError(Exception):
    """Base class for sensor fusion errors."""


class FilterDivergenceError(FusionError):
    """The belief became non-finite or its covariance could not be repaired."""


class InvalidMeasurementError(FusionError, ValueError):
    """A measurement record is malformed."""


class OutOfOrderMeasurementError(FusionError, ValueError):
    """A measurement is older than the current filter time."""

    def __init__(self, timestamp: int, filter_time: int):
        self.timestamp = timestamp
        self.filter_time = filter_time
        super().__init__(
            f"Measurement at t={timestamp}us is older than filter time t={filter_time}us")
