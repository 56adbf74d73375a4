"""Resilience primitives: backoff, failure classification, retry."""

from yfclient.resilience.backoff import BackoffPolicy, add_jitter, next_delay
from yfclient.resilience.classifier import (
    get_retry_after_ms,
    is_invalid_token,
    is_proxy_error,
    is_rate_limited,
    is_retryable,
    is_transient,
    retry_after_ms,
)
from yfclient.resilience.retry import RetryPolicy, run_with_retry

__all__ = [
    "BackoffPolicy",
    "RetryPolicy",
    "add_jitter",
    "get_retry_after_ms",
    "is_invalid_token",
    "is_proxy_error",
    "is_rate_limited",
    "is_retryable",
    "is_transient",
    "next_delay",
    "retry_after_ms",
    "run_with_retry",
]
