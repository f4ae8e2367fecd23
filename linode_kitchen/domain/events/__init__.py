"""
Domain Events Package

Architectural Intent:
- Contains domain events raised by the instance lifecycle
- Events are the primary mechanism for feeding telemetry
"""

from linode_kitchen.domain.events.event_base import DomainEvent
from linode_kitchen.domain.events.instance_events import (
    InstanceCreatedEvent,
    InstanceCreationFailedEvent,
    InstanceDestroyedEvent,
)

__all__ = [
    "DomainEvent",
    "InstanceCreatedEvent",
    "InstanceCreationFailedEvent",
    "InstanceDestroyedEvent",
]
