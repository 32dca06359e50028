"""
Module: delivery/retry.py
Description: Retry rules for webhook processing and status forwarding.

Two layers of retry exist. RetryPolicy is the durable, coarse-grained
schedule the WebhookQueue applies between whole processing attempts
(minutes apart, surviving restarts). transient_http_retry is a short
in-attempt tenacity retry for flaky downstream HTTP calls.
"""

import logging
from typing import Sequence

import httpx
from tenacity import (
    after_log,
    before_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from courier_webhooks.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_INTERVALS = (60.0, 300.0, 1800.0)


class RetryPolicy:
    """
    Bounded retry schedule for webhook processing attempts.

    Attributes:
        max_attempts: Total processing attempts before a record fails
        intervals: Delay in seconds before the retry that follows attempt
            n, at index n-1; attempts beyond the schedule reuse the last
            interval

    Example:
        >>> policy = RetryPolicy(3, [60, 300, 1800])
        >>> policy.delay_for_attempt(1)
        60
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        intervals: Sequence[float] = DEFAULT_RETRY_INTERVALS
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not intervals:
            raise ValueError("intervals must not be empty")

        self.max_attempts = max_attempts
        self.intervals = tuple(intervals)

    def should_retry(self, attempts_made: int) -> bool:
        """Whether another attempt is allowed after attempts_made."""
        return attempts_made < self.max_attempts

    def delay_for_attempt(self, attempts_made: int) -> float:
        """Seconds to wait before the attempt after attempts_made."""
        index = min(max(attempts_made, 1) - 1, len(self.intervals) - 1)
        return self.intervals[index]


def transient_http_retry(max_attempts: int = 3):
    """
    Tenacity decorator retrying transient httpx failures.

    Timeouts, network errors and HTTP error statuses are retried with
    exponential backoff; the last exception is re-raised.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.HTTPStatusError
        )),
        before=before_log(logger, logging.DEBUG),
        after=after_log(logger, logging.INFO),
        reraise=True
    )
