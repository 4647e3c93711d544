"""Retry and backoff policies."""

from athena_express.retry.backoff import (
    CallableDelay,
    ConstantDelay,
    DelayStrategy,
    ExponentialDelay,
    LinearDelay,
    RetryPolicy,
    RetryState,
    as_delay_strategy,
    pause,
    retry_transient,
)

__all__ = [
    "CallableDelay",
    "ConstantDelay",
    "DelayStrategy",
    "ExponentialDelay",
    "LinearDelay",
    "RetryPolicy",
    "RetryState",
    "as_delay_strategy",
    "pause",
    "retry_transient",
]
