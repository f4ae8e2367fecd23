"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from linode_kitchen.domain.ports.cloud_api_port import CloudApiPort
from linode_kitchen.domain.ports.transport_port import TransportPort
from linode_kitchen.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "CloudApiPort",
    "TransportPort",
    "EventBusPort",
]
