"""
Retry policies for export requests

Status classification and the delay schedules used by both retry layers:
the per-book request retry inside a task and the round-level retry of the
batch orchestrator.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception, stop_after_attempt

from weread_export.constants import RETRYABLE_STATUS_CODES, SERVER_ERROR_THRESHOLD

logger = logging.getLogger(__name__)


class RetryDecision(Enum):
    """Whether a failed request is worth repeating."""

    PERMANENT = "permanent"
    RETRYABLE = "retryable"


def classify_status(status: int | None) -> RetryDecision:
    """Classify an HTTP status code: 429 and 5xx are transient, anything else is permanent."""
    if status is None:
        return RetryDecision.PERMANENT
    if status in RETRYABLE_STATUS_CODES or status >= SERVER_ERROR_THRESHOLD:
        return RetryDecision.RETRYABLE
    return RetryDecision.PERMANENT


@dataclass(frozen=True)
class RetryPolicy:
    """Ordered retry delays in milliseconds.

    One initial attempt plus one retry per delay entry. Retry ``i`` waits
    ``delays_ms[min(i, len - 1)]``; a zero entry retries without pausing.
    """

    delays_ms: tuple[int, ...] = ()

    def __post_init__(self):
        if any(delay < 0 for delay in self.delays_ms):
            raise ValueError(f"Retry delays must be non-negative, got {list(self.delays_ms)}")

    @classmethod
    def from_delays(cls, delays: "Sequence[int] | RetryPolicy") -> "RetryPolicy":
        if isinstance(delays, RetryPolicy):
            return delays
        return cls(tuple(int(delay) for delay in delays))

    @property
    def max_retries(self) -> int:
        return len(self.delays_ms)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def wait_ms(self, retry_index: int) -> int:
        """Delay before retry number ``retry_index`` (0-based)."""
        if not self.delays_ms:
            return 0
        return self.delays_ms[min(max(retry_index, 0), len(self.delays_ms) - 1)]

    def head(self, count: int) -> "RetryPolicy":
        """Policy limited to the first ``count`` delays."""
        return RetryPolicy(self.delays_ms[:count])


def build_async_retrying(
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool],
    log: logging.Logger | None = None,
) -> AsyncRetrying:
    """Create a tenacity controller that follows ``policy``.

    The last error is re-raised unchanged once the policy is exhausted or
    ``should_retry`` rejects it.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=lambda retry_state: policy.wait_ms(retry_state.attempt_number - 1) / 1000,
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep_log(log or logger, logging.WARNING),
        reraise=True,
    )
