import dataclasses

import pytest

from sensor_fusion import UKFConfig, UnscentedKalmanFilter


def test_with_process_noise_returns_tuned_copy():
    base = UKFConfig(use_range_sensor=False)

    tuned = base.with_process_noise(std_a=2.0, std_yawdd=0.3)

    assert tuned is not base
    assert (tuned.std_a, tuned.std_yawdd) == (2.0, 0.3)
    assert (base.std_a, base.std_yawdd) == (0.8, 0.6)
    assert tuned.use_range_sensor is False
    assert tuned.std_range == base.std_range


def test_tuned_noise_reaches_the_filter():
    ukf = UnscentedKalmanFilter(UKFConfig().with_process_noise(std_a=3.0, std_yawdd=0.1))

    assert ukf.config.std_a == 3.0
    assert ukf.config.std_yawdd == 0.1


def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        UKFConfig().std_a = 1.0


@pytest.mark.parametrize("kwargs", [
    {"std_a": 0.0},
    {"std_bearing": -0.1},
    {"spreading_lambda": -7.0},
    {"regularization_eps": 0.0},
])
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        UKFConfig(**kwargs)
