"""
NoteSync - Retrying Request Executor
=====================================

What:  Runs one async network operation, retrying only on rate limiting.
How:   tenacity `AsyncRetrying`:
         - retry only RateLimitedError (every other error propagates at once)
         - stop after `retry_max_attempts` attempts in total (default 3)
         - wait_exponential: retry i (zero-indexed) waits 2^i * base
           (default base 1s → waits of 1s, 2s)
         - reraise=True: after the last attempt the original RateLimitedError
           reaches the caller unchanged, not a tenacity RetryError
Who:   ResourceStore wraps every list/create/update/delete call in it.

The executor knows nothing about resources or HTTP; it only looks at the
exception type produced by ApiClient's classification.

Timeline with the defaults, backend rate-limiting twice:
    attempt 1 ─429─▶ wait 1s ─▶ attempt 2 ─429─▶ wait 2s ─▶ attempt 3 ─200─▶ result
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from notesync.config import settings
from notesync.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryingRequestExecutor:
    """
    Bounded exponential-backoff retry on RateLimitedError.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay:   Wait before the first retry, in seconds; doubles per retry

    Testing:
        Inject `sleep` to record the backoff delays instead of waiting.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
        self.base_delay = base_delay if base_delay is not None else settings.retry_base_delay
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "request",
    ) -> T:
        """
        Run `operation`, retrying while it raises RateLimitedError.

        Args:
            operation:   Zero-argument coroutine function performing one call
            description: Label used in the backoff log lines

        Returns:
            Whatever the first successful attempt returns.

        Raises:
            RateLimitedError: still rate-limited after the last attempt
            Any other exception from `operation`, on its first occurrence
        """
        retryer = AsyncRetrying(
            retry=retry_if_exception_type(RateLimitedError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            before_sleep=self._log_backoff(description),
            sleep=self._sleep,
            reraise=True,
        )
        # The operation is awaited here, so plain lambdas returning a
        # coroutine work the same as coroutine functions
        async for attempt in retryer:
            with attempt:
                return await operation()

    def _log_backoff(self, description: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "Rate limited on %s, waiting %.2fs before retry %d/%d",
                description,
                wait,
                retry_state.attempt_number,
                self.max_attempts - 1,
            )

        return before_sleep
