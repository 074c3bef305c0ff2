import pytest

from time_capsule.config import TimeCapsuleConfig
from time_capsule.core.retry import RetryPolicy
from time_capsule.models.storage import FetchCause


def test_default_backoff_schedule() -> None:
    policy = RetryPolicy()

    assert policy.max_attempts == 2
    assert policy.attempt_timeout == 20.0
    assert [policy.backoff(i) for i in range(3)] == [1.0, 3.0, 5.0]


@pytest.mark.parametrize(
    ("cause", "retryable"),
    [
        (FetchCause.NOT_FOUND, False),
        (FetchCause.ACCESS_POLICY, False),
        (FetchCause.PROPAGATION, True),
        (FetchCause.NETWORK, True),
        (FetchCause.TIMEOUT, True),
    ],
)
def test_default_retryable_causes(cause: FetchCause, retryable: bool) -> None:
    assert RetryPolicy().is_retryable(cause) is retryable


def test_custom_retryable_predicate() -> None:
    policy = RetryPolicy(is_retryable=lambda cause: True)

    assert policy.is_retryable(FetchCause.NOT_FOUND)


def test_from_config_maps_gateway_settings() -> None:
    config = TimeCapsuleConfig(
        gateway_max_attempts=3, retry_base_delay=0.5, retry_delay_step=0.25, gateway_timeout=5
    )

    policy = RetryPolicy.from_config(config)

    assert policy.max_attempts == 3
    assert policy.attempt_timeout == 5
    assert policy.backoff(2) == 1.0


@pytest.mark.parametrize(
    "kwargs",
    [{"max_attempts": 0}, {"base_delay": -1}, {"delay_step": -0.1}, {"attempt_timeout": 0}],
)
def test_invalid_policy_raises(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
