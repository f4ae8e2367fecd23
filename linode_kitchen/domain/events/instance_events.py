"""
Instance Lifecycle Events

Published by the create and destroy use cases once an action settles.
"""

from dataclasses import dataclass
from linode_kitchen.domain.events.event_base import DomainEvent


@dataclass(frozen=True)
class InstanceCreatedEvent(DomainEvent):
    instance_id: int = 0
    label: str = ""
    attempts: int = 0
    backoff_seconds: float = 0.0
    adopted: bool = False


@dataclass(frozen=True)
class InstanceCreationFailedEvent(DomainEvent):
    attempts: int = 0
    failure_kind: str = ""
    error_message: str = ""


@dataclass(frozen=True)
class InstanceDestroyedEvent(DomainEvent):
    instance_id: int = 0
    label: str = ""
    already_gone: bool = False
