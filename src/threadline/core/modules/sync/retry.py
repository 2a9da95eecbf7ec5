"""Bounded retry with exponential backoff.

The policy is plain data (attempt cap, wall-clock cap, one backoff schedule per
recoverable failure class) and `retry_call` is the only loop that interprets it.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from threadline.config import Config
from threadline.core.modules.sync.models import RetryReason, TerminationReason
from threadline.errors import RecordExistsError, RetryExhaustedError, TransientStoreError, VersionConflictError


class Clock(ABC):
    """Monotonic time source in seconds plus a matching sleep."""

    @abstractmethod
    def now(self) -> float: ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None: ...


class SystemClock(Clock):
    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


def calculate_backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number `attempt` (zero based): base * 2^attempt, capped."""
    return min(base * 2**attempt, cap)


@dataclass(frozen=True)
class BackoffSchedule:
    base: float  # seconds
    cap: float  # seconds

    def delay(self, attempt: int) -> float:
        return calculate_backoff_delay(attempt, self.base, self.cap)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 75
    max_duration: float = 300.0  # seconds
    conflict: BackoffSchedule = field(default_factory=lambda: BackoffSchedule(base=0.1, cap=5.0))
    network: BackoffSchedule = field(default_factory=lambda: BackoffSchedule(base=0.5, cap=10.0))

    @classmethod
    def from_config(cls, config: Config) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            max_duration=config.max_duration_ms / 1000,
            conflict=BackoffSchedule(config.conflict_backoff_base_ms / 1000, config.conflict_backoff_max_ms / 1000),
            network=BackoffSchedule(config.network_backoff_base_ms / 1000, config.network_backoff_max_ms / 1000),
        )

    def schedule_for(self, reason: RetryReason) -> BackoffSchedule:
        if reason == RetryReason.VERSION_CONFLICT:
            return self.conflict
        return self.network


def classify_error(error: BaseException) -> RetryReason | None:
    """Map an exception to a recoverable failure class, or None if it is not recoverable."""
    # A lost first-comment race behaves like a conflict: re-read and merge
    if isinstance(error, VersionConflictError | RecordExistsError):
        return RetryReason.VERSION_CONFLICT
    if isinstance(error, TransientStoreError | ConnectionError | TimeoutError):
        return RetryReason.NETWORK_ERROR
    return None


@dataclass(frozen=True)
class RetryAttempt:
    """Passed to the `on_retry` hook before each backoff wait."""

    attempt: int  # failed attempts so far, starting at 1
    reason: RetryReason
    delay: float
    error: BaseException


async def retry_call[T](
    action: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    clock: Clock,
    on_retry: Callable[[RetryAttempt], None] | None = None,
    classify: Callable[[BaseException], RetryReason | None] = classify_error,
) -> T:
    """Run `action` until it returns.

    Non-recoverable errors propagate unchanged. Recoverable ones are retried
    after a backoff until `max_attempts` failures or `max_duration` seconds,
    whichever comes first, then RetryExhaustedError is raised.
    """
    started = clock.now()
    attempt = 0
    while True:
        try:
            return await action()
        except Exception as e:
            reason = classify(e)
            if reason is None:
                raise

            delay = policy.schedule_for(reason).delay(attempt)
            attempt += 1
            if attempt >= policy.max_attempts:
                raise RetryExhaustedError(TerminationReason.MAX_ATTEMPTS, attempt, e) from e
            if clock.now() - started >= policy.max_duration:
                raise RetryExhaustedError(TerminationReason.TIMEOUT, attempt, e) from e

            if on_retry is not None:
                on_retry(RetryAttempt(attempt=attempt, reason=reason, delay=delay, error=e))
            await clock.sleep(delay)
