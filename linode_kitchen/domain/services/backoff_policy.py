"""
Backoff Policy

Architectural Intent:
- Explicit retry configuration value, passed into each orchestrator call
- Computes sleep durations; performs no sleeping itself

Delay rules:
- Exponential: base ** attempt seconds, attempt 0 being the first retry
  (1, 2, 4, 8, ... with the default base), clamped to ceiling when set
- Rate limited: the provider's Retry-After hint plus uniform jitter in
  [2, 20] seconds is added, so callers throttled at the same instant spread out
"""

from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Optional
from linode_kitchen.domain.value_objects.failure import Failure, FailureKind


@dataclass(frozen=True)
class RetryPolicy:
    max_tries: int = 5
    base: float = 2.0
    ceiling: Optional[float] = None
    jitter: tuple[int, int] = (2, 20)

    def __post_init__(self) -> None:
        if self.max_tries < 1:
            raise ValueError(f"max_tries must be >= 1, got {self.max_tries}")
        if self.base < 1:
            raise ValueError(f"base must be >= 1, got {self.base}")
        low, high = self.jitter
        if low < 0 or high < low:
            raise ValueError(f"Invalid jitter range: {self.jitter}")

    def next_delay(
        self,
        attempt: int,
        failure: Optional[Failure] = None,
        rng: Optional[random.Random] = None,
    ) -> float:
        delay = float(self.base ** max(attempt, 0))
        if self.ceiling is not None:
            delay = min(delay, self.ceiling)
        if failure is not None and failure.kind is FailureKind.RATE_LIMITED:
            rng = rng or random.Random()
            delay += failure.retry_after + rng.randint(*self.jitter)
        return delay
