"""Retry policy shared by network calls."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Self

from time_capsule.config import TimeCapsuleConfig
from time_capsule.models.storage import FetchCause

_NON_RETRYABLE = frozenset({FetchCause.NOT_FOUND, FetchCause.ACCESS_POLICY})


def _default_is_retryable(cause: FetchCause) -> bool:
    return cause not in _NON_RETRYABLE


@dataclass(frozen=True, kw_only=True)
class RetryPolicy:
    """
    Bounded retry schedule for one endpoint.

    Attributes:
        max_attempts: Attempts per endpoint, timed-out attempts included.
        base_delay: Delay before the first retry, and between endpoints.
        delay_step: Extra delay added for each further retry.
        attempt_timeout: Upper bound on a single attempt in seconds.
        is_retryable: Whether a failure cause is worth another attempt on the
            same endpoint.
    """

    max_attempts: int = 2
    base_delay: float = 1.0
    delay_step: float = 2.0
    attempt_timeout: float = 20.0
    is_retryable: Callable[[FetchCause], bool] = field(default=_default_is_retryable)

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            msg = "max_attempts must be positive"
            raise ValueError(msg)
        if self.base_delay < 0 or self.delay_step < 0:
            msg = "delays must be non-negative"
            raise ValueError(msg)
        if self.attempt_timeout <= 0:
            msg = "attempt_timeout must be positive"
            raise ValueError(msg)

    def backoff(self, retry_index: int) -> float:
        """
        Delay to wait before an attempt.

        Args:
            retry_index: 0 for the first attempt on an endpoint (used as the
                between-endpoints delay), 1 for its first retry, and so on.
        """
        return self.base_delay + self.delay_step * retry_index

    @classmethod
    def from_config(cls, config: TimeCapsuleConfig) -> Self:
        return cls(
            max_attempts=config.gateway_max_attempts,
            base_delay=config.retry_base_delay,
            delay_step=config.retry_delay_step,
            attempt_timeout=config.gateway_timeout,
        )
