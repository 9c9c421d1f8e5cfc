"""Retry strategies for mirror writes."""

import time
from typing import Callable, Protocol, TypeVar

from loguru import logger
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_fixed

T = TypeVar("T")


class RetryPolicy(Protocol):
    """Runs an operation, deciding whether and how often to try again."""

    def run(self, operation: Callable[[], T], description: str) -> T: ...


class NoRetry:
    """Single attempt; the caller logs and drops on failure."""

    def run(self, operation: Callable[[], T], description: str) -> T:
        return operation()


class FixedRetry:
    """Retry a failed operation a fixed number of extra times.

    Args:
        attempts: Extra attempts after the first failure
        delay: Seconds to wait between attempts
        sleep: Injected for tests
    """

    def __init__(
        self,
        attempts: int,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if attempts < 0:
            raise ValueError(f"attempts must be >= 0, got {attempts}")
        self.attempts = attempts
        self.delay = delay
        self._sleep = sleep

    def run(self, operation: Callable[[], T], description: str) -> T:
        total = self.attempts + 1

        def log_failure(state: RetryCallState) -> None:
            logger.warning(
                f"{description} failed (attempt {state.attempt_number}/{total}): "
                f"{state.outcome.exception()}"
            )

        # reraise surfaces the last error itself rather than a RetryError
        for attempt in Retrying(
            stop=stop_after_attempt(total),
            wait=wait_fixed(self.delay),
            sleep=self._sleep,
            before_sleep=log_failure,
            reraise=True,
        ):
            with attempt:
                return operation()
        raise RuntimeError("Retry loop exited without a result")  # pragma: no cover


def policy_from_config(apply_retries: int, retry_delay_seconds: float) -> RetryPolicy:
    """Pick the retry strategy configured under [sync]."""
    if apply_retries <= 0:
        return NoRetry()
    return FixedRetry(apply_retries, retry_delay_seconds)
