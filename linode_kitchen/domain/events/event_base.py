"""
Domain Events Module

Architectural Intent:
- Base class for domain events following DDD principles
- Events are immutable and capture significant domain occurrences
- Events are dispatched via the event bus to telemetry and other listeners
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.__class__.__name__
        return data
