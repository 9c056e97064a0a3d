"""
Retry-with-backoff policy for remote model calls.

Only transient overload failures (HTTP 503 or an "overloaded" message) are
retried. Retry i waits base * 2**(i-1) seconds plus uniform jitter, so the
default policy sleeps about 1s and then 2s before giving up after the third
attempt. Any other error fails fast on the first attempt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]

OVERLOAD_STATUS_CODES = frozenset({503})
OVERLOAD_MARKERS = ("overloaded", "503")


def is_overload_error(error: BaseException) -> bool:
    """
    Check if an error looks like transient overload of the remote model.

    Matches a numeric status of 503 (``status_code`` or ``status``
    attribute) or a message mentioning "overloaded" or "503".
    """
    for attr in ("status_code", "status"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and status in OVERLOAD_STATUS_CODES:
            return True

    message = str(error).lower()
    return any(marker in message for marker in OVERLOAD_MARKERS)


@dataclass
class BackoffPolicy:
    """
    Bounded retry with jittered exponential backoff.

    Attributes:
        max_attempts: Total attempts including the first call.
        base_delay: Delay before the first retry, doubled for each further retry.
        jitter: Upper bound of the uniform random delay added to each retry.
        sleep: Awaitable sleep used between attempts. Tests inject a recorder.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    jitter: float = 1.0
    sleep: SleepFunc = field(default=asyncio.sleep)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2, min=0)
            + wait_random(0, self.jitter),
            retry=retry_if_exception(is_overload_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run an async operation under the policy.

        Attempts are strictly sequential. The last error is re-raised when it
        is not retryable or when attempts are exhausted.
        """
        async for attempt in self._retrying():
            with attempt:
                return await operation()
        # AsyncRetrying either returns from inside the loop or raises.
        raise RuntimeError("Retry loop exited without a result")


def create_backoff_policy(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    jitter: float = 1.0,
    sleep: Optional[SleepFunc] = None,
) -> BackoffPolicy:
    """Factory function to create a backoff policy."""
    return BackoffPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        jitter=jitter,
        sleep=sleep or asyncio.sleep,
    )
