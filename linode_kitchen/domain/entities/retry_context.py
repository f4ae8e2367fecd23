"""
Retry Context Entity

Architectural Intent:
- Ephemeral bookkeeping for one orchestrator call
- Owned exclusively by that call; never shared between concurrent creates
- ProvisioningStatus names the create state machine for progress logging
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional
from linode_kitchen.domain.value_objects.failure import Failure


class ProvisioningStatus(Enum):
    IDLE = auto()
    RESOLVING_SPEC = auto()
    GENERATING_LABEL = auto()
    SUBMITTING = auto()
    RETRYING = auto()
    SUBMITTED = auto()
    POLLING = auto()
    READY = auto()
    FAILED = auto()


@dataclass
class RetryContext:
    max_tries: int
    attempt: int = 0
    last_failure: Optional[Failure] = None
    backoff_elapsed: float = 0.0

    def __post_init__(self) -> None:
        if self.max_tries < 1:
            raise ValueError(f"max_tries must be >= 1, got {self.max_tries}")

    def begin_attempt(self) -> int:
        self.attempt += 1
        return self.attempt

    def record_failure(self, failure: Failure) -> None:
        self.last_failure = failure

    def record_backoff(self, seconds: float) -> None:
        self.backoff_elapsed += seconds

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_tries

    @property
    def retry_index(self) -> int:
        """Zero-based index of the retry about to happen (0 after the first failure)."""
        return max(self.attempt - 1, 0)
