"""Exponential backoff delay calculation.

Pure functions: given an attempt index and a policy, return how long to wait
before the next attempt. A server-supplied hint (e.g. Retry-After) replaces
the exponential base for that one wait but is still capped and jittered.
"""

from __future__ import annotations

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffPolicy:
    """Delay schedule, all durations in milliseconds."""

    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    factor: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.3  # 0.3 = +/-30%


def add_jitter(
    delay_ms: float,
    jitter_factor: float = 0.3,
    rng: random.Random | None = None,
) -> int:
    """Perturb *delay_ms* by up to +/- ``jitter_factor`` of its value, floored at zero."""
    rng = rng or random
    jittered = delay_ms * (1 + jitter_factor * rng.uniform(-1, 1))
    return max(0, round(jittered))


def next_delay(
    attempt_index: int,
    policy: BackoffPolicy,
    error_override_ms: float | None = None,
    *,
    rng: random.Random | None = None,
) -> int:
    """Return the wait in milliseconds before retrying after attempt *attempt_index*.

    ``attempt_index`` is zero-based: the wait after the first failure uses
    index 0 and equals ``initial_delay_ms`` (before jitter).
    """
    if error_override_ms is not None and error_override_ms > 0:
        base = min(error_override_ms, policy.max_delay_ms)
    else:
        base = _exponential(attempt_index, policy)

    if policy.jitter:
        return add_jitter(base, policy.jitter_factor, rng)
    return max(0, round(base))


def _exponential(attempt_index: int, policy: BackoffPolicy) -> float:
    if policy.initial_delay_ms <= 0:
        return 0
    try:
        growth = policy.factor**attempt_index
    except OverflowError:
        return policy.max_delay_ms
    return min(policy.initial_delay_ms * growth, policy.max_delay_ms)
