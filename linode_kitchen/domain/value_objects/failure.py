"""
Failure Value Object

Architectural Intent:
- Tagged result of classifying a provider error
- Orchestrators switch on FailureKind instead of catching exception subclasses
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class FailureKind(Enum):
    TRANSIENT = auto()
    RATE_LIMITED = auto()
    LABEL_CONFLICT = auto()
    USER_ERROR = auto()
    NOT_FOUND = auto()
    UNKNOWN = auto()


RETRYABLE_KINDS = frozenset(
    {FailureKind.TRANSIENT, FailureKind.RATE_LIMITED, FailureKind.LABEL_CONFLICT}
)


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str = ""
    retry_after: int = 0
    # one mapping per entry of a 400 body's "errors" list; None when undecodable
    errors: Optional[tuple[dict[str, str], ...]] = None
    cause: Optional[BaseException] = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.name}: {self.message}"
        return self.kind.name
