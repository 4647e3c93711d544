"""Backoff policies for submission retries and status polling.

Two independent policies drive the waiting in a query lifecycle:

- the poll interval, used while an execution is still running
- the transient-error delay, used after throttling or network failures

Each is built from a ``DelayStrategy`` (constant, linear, exponential or a
caller-supplied function of the attempt number) and an optional attempt
budget. A budget of ``None`` means retry forever; that is the default for
both policies.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar, Union

from athena_express.exceptions import (
    QueryCancelledError,
    RetryLimitExceededError,
    TransientEngineError,
)
from athena_express.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DelayFunction = Callable[[int], float]


class DelayStrategy(ABC):
    """Computes the wait before the next attempt.

    Attempts are numbered from 1: ``next_delay(1)`` is the wait after the
    first failed or non-terminal attempt.
    """

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Return the delay in seconds before attempt ``attempt + 1``."""
        pass


DelayValue = Union[int, float, DelayFunction, DelayStrategy]


@dataclass(frozen=True)
class ConstantDelay(DelayStrategy):
    """Same delay for every attempt."""

    seconds: float

    def next_delay(self, attempt: int) -> float:
        return self.seconds


@dataclass(frozen=True)
class LinearDelay(DelayStrategy):
    """``initial + step * (attempt - 1)``, capped at ``maximum``."""

    initial: float
    step: float
    maximum: float | None = None

    def next_delay(self, attempt: int) -> float:
        delay = self.initial + self.step * max(attempt - 1, 0)
        if self.maximum is not None:
            delay = min(delay, self.maximum)
        return delay


@dataclass(frozen=True)
class ExponentialDelay(DelayStrategy):
    """``initial * factor ** (attempt - 1)``, capped at ``maximum``.

    ``ExponentialDelay(0.2, factor=1.5)`` grows the poll interval by half
    on every consecutive non-terminal poll.
    """

    initial: float
    factor: float = 2.0
    maximum: float | None = None

    def next_delay(self, attempt: int) -> float:
        delay = self.initial * self.factor ** max(attempt - 1, 0)
        if self.maximum is not None:
            delay = min(delay, self.maximum)
        return delay


class CallableDelay(DelayStrategy):
    """Wraps a caller-supplied ``f(attempt) -> seconds``."""

    def __init__(self, func: DelayFunction) -> None:
        self.func = func

    def next_delay(self, attempt: int) -> float:
        delay = float(self.func(attempt))
        if delay < 0:
            raise ValueError(f"Delay function returned a negative delay: {delay}")
        return delay

    def __repr__(self) -> str:
        return f"CallableDelay({self.func!r})"


def as_delay_strategy(value: DelayValue) -> DelayStrategy:
    """Turn a number, a callable or a strategy into a ``DelayStrategy``.

    Raises:
        ValueError: If a numeric delay is negative
        TypeError: If the value is of an unsupported type
    """
    if isinstance(value, DelayStrategy):
        return value
    if isinstance(value, bool):
        raise TypeError("Delay must be a number or a callable, not bool")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Delay must be >= 0, got {value}")
        return ConstantDelay(float(value))
    if callable(value):
        return CallableDelay(value)
    raise TypeError(f"Delay must be a number or a callable, got {type(value).__name__}")


@dataclass(frozen=True)
class RetryPolicy:
    """A delay strategy plus an optional attempt budget."""

    delay: DelayStrategy
    max_attempts: int | None = None

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def build(cls, delay: DelayValue, max_attempts: int | None = None) -> "RetryPolicy":
        return cls(delay=as_delay_strategy(delay), max_attempts=max_attempts)

    def allows(self, attempt: int) -> bool:
        """Whether another attempt may follow attempt number ``attempt``."""
        return self.max_attempts is None or attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.delay.next_delay(attempt)


@dataclass
class RetryState:
    """Attempt counter and current delay for one retry loop.

    Scoped to a single submission or a single polling loop.
    """

    policy: RetryPolicy
    attempt_count: int = 0
    current_delay: float = 0.0

    def record_attempt(self) -> float:
        """Count one more failed/non-terminal attempt and return the wait."""
        self.attempt_count += 1
        self.current_delay = self.policy.delay_for(self.attempt_count)
        return self.current_delay

    @property
    def exhausted(self) -> bool:
        return not self.policy.allows(self.attempt_count)

    def reset(self) -> None:
        self.attempt_count = 0
        self.current_delay = 0.0


async def pause(
    seconds: float,
    cancel_event: asyncio.Event | None = None,
    execution_id: str | None = None,
) -> None:
    """Suspend the calling task for ``seconds``.

    Raises:
        QueryCancelledError: If ``cancel_event`` is set before or during the wait
    """
    if cancel_event is None:
        await asyncio.sleep(seconds)
        return

    if cancel_event.is_set():
        raise QueryCancelledError(execution_id)

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return

    raise QueryCancelledError(execution_id)


async def retry_transient(
    operation: str,
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    cancel_event: asyncio.Event | None = None,
    execution_id: str | None = None,
) -> T:
    """
    Await ``call()`` until it stops raising TransientEngineError.

    Args:
        operation: Remote operation name, for logs and errors
        call: Zero-argument coroutine factory performing one attempt
        policy: Transient-error policy
        cancel_event: Optional event that abandons retry waits when set
        execution_id: Execution handle, for logs and errors

    Returns:
        Whatever ``call()`` returns on the first successful attempt

    Raises:
        RetryLimitExceededError: If a bounded budget is exhausted
        QueryCancelledError: If ``cancel_event`` fires during a wait
    """
    retry = RetryState(policy)

    while True:
        try:
            return await call()
        except TransientEngineError as e:
            delay = retry.record_attempt()
            if retry.exhausted:
                raise RetryLimitExceededError(operation, retry.attempt_count, e) from e

            logger.warning(
                "Transient engine error, retrying",
                operation=operation,
                execution_id=execution_id,
                code=e.code,
                attempt=retry.attempt_count,
                delay_seconds=delay,
            )
            await pause(delay, cancel_event, execution_id)
