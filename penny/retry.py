"""
Bounded exponential backoff

Shared by every collaborator call that can fail transiently (query engine,
email service). Built on tenacity; the sleep function and clock are
injectable so tests can run without real delays.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .core.errors import ConfigError, DeadlineExceeded, RetriesExhaustedError, TransientIOError


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Retry parameters

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the second attempt (seconds)
        multiplier: Growth factor between consecutive delays
        max_delay: Cap on a single delay (seconds)
        jitter: Upper bound of the random amount added to each delay (seconds)
    """
    max_attempts: int = 5
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 20.0
    jitter: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigError("retry.max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ConfigError("retry delays must not be negative")
        if self.multiplier < 1:
            raise ConfigError("retry.multiplier must be at least 1")

    def delay(self, attempt: int) -> float:
        """Delay after the given failed attempt, jitter excluded"""
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 1))


class Deadline:
    """
    Absolute point in time an invocation must finish by

    Args:
        expires_at: Expiry, in the clock's time base
        clock: Monotonic time source
    """

    def __init__(self, expires_at: float, clock: Clock = time.monotonic):
        self.expires_at = expires_at
        self.clock = clock

    @classmethod
    def after(cls, seconds: float, clock: Clock = time.monotonic) -> "Deadline":
        return cls(clock() + seconds, clock)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    def expired(self) -> bool:
        return self.clock() >= self.expires_at

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.1f}s)"


class Retrier:
    """
    Runs coroutine functions under a BackoffPolicy

    Only exceptions in `retry_on` are retried. Anything else propagates on
    the first occurrence. When attempts run out, RetriesExhaustedError is
    raised with the last transient error chained.
    """

    def __init__(self, policy: BackoffPolicy, sleep: Sleep = asyncio.sleep,
                 retry_on: Tuple[Type[BaseException], ...] = (TransientIOError,)):
        self.policy = policy
        self.sleep = sleep
        self.retry_on = retry_on

    async def call(self, operation: str, fn: Callable[..., Awaitable[Any]], *args,
                   deadline: Optional[Deadline] = None, **kwargs) -> Any:
        """
        Call `fn(*args, **kwargs)`, retrying transient failures

        Args:
            operation: Name used in logs and errors
            fn: Coroutine function to call
            deadline: Optional deadline; a backoff that would overrun it
                raises DeadlineExceeded instead of sleeping

        Returns:
            Whatever `fn` returns
        """
        async def sleep(seconds: float):
            if deadline is not None and seconds >= deadline.remaining():
                raise DeadlineExceeded(
                    f"{operation}: no time left to retry "
                    f"(backoff {seconds:.1f}s, {deadline.remaining():.1f}s remaining)"
                )
            await self.sleep(seconds)

        def log_retry(retry_state):
            error = retry_state.outcome.exception()
            logger.warning("[Retry] %s attempt %d/%d failed: %s; retrying in %.2fs",
                           operation, retry_state.attempt_number, self.policy.max_attempts,
                           error, retry_state.next_action.sleep)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.policy.base_delay,
                max=self.policy.max_delay,
                exp_base=self.policy.multiplier,
                jitter=self.policy.jitter,
            ),
            retry=retry_if_exception_type(self.retry_on),
            sleep=sleep,
            before_sleep=log_retry,
        )

        try:
            return await retrying(fn, *args, **kwargs)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise RetriesExhaustedError(operation, e.last_attempt.attempt_number, last_error) from last_error
