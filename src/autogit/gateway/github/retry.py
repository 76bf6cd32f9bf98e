"""Retry helper for remote API calls with configurable delays."""

import logging
from collections.abc import Callable
from typing import TypeVar

from autogit.gateway.time.abc import Time

logger = logging.getLogger(__name__)

# Default delays between attempts for transient errors
RETRY_DELAYS = [0.5, 1.0]

T = TypeVar("T")


class ShouldRetry(Exception):
    """Raised by a callback to request another attempt.

    Any other exception escapes immediately as a permanent failure.
    """


def with_retry(
    time: Time,
    operation_name: str,
    fn: Callable[[], T],
    retry_delays: list[float] | None = None,
) -> T:
    """Call ``fn`` until it returns, sleeping between ShouldRetry attempts.

    Args:
        time: Time abstraction for sleep operations
        operation_name: Description for logging
        fn: Callable that returns a value or raises ShouldRetry
        retry_delays: Sleep before each retry; len + 1 attempts total

    Returns:
        Result of the first successful call

    Raises:
        ShouldRetry: If every attempt asked for a retry
    """
    delays = retry_delays if retry_delays is not None else RETRY_DELAYS

    for attempt in range(len(delays) + 1):
        try:
            result = fn()
            if attempt > 0:
                logger.info("Success on retry %d: %s", attempt, operation_name)
            return result
        except ShouldRetry as e:
            if attempt == len(delays):
                logger.warning(
                    "Failed after %d attempts: %s: %s", len(delays) + 1, operation_name, e
                )
                raise

            delay = delays[attempt]
            logger.warning("Retry %d after %ss: %s: %s", attempt + 1, delay, operation_name, e)
            time.sleep(delay)

    msg = "Retry logic error"
    raise AssertionError(msg)
