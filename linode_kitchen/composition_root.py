"""
Composition Root

Architectural Intent:
- Dependency injection composition root for linode-kitchen
- Single place where all adapters and use cases are wired together
- No adapter instantiation should occur outside this module

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Factory function creates and wires all dependencies
- Telemetry handlers are subscribed here; the exporter is initialized lazily
  by the host since that step is async
"""

from dataclasses import dataclass
from typing import Optional

import requests

from linode_kitchen.application.use_cases.create_instance import CreateInstance
from linode_kitchen.application.use_cases.destroy_instance import DestroyInstance
from linode_kitchen.domain.events.instance_events import (
    InstanceCreatedEvent,
    InstanceCreationFailedEvent,
    InstanceDestroyedEvent,
)
from linode_kitchen.domain.exceptions import UserError
from linode_kitchen.infrastructure.adapters.fabric_adapter import FabricTransport
from linode_kitchen.infrastructure.adapters.linode_api_adapter import LinodeApiAdapter
from linode_kitchen.infrastructure.config import LinodeKitchenConfig
from linode_kitchen.infrastructure.event_bus import EventBus
from linode_kitchen.infrastructure.telemetry.otel_exporter import OTELConfig, OTELExporter


@dataclass
class LinodeKitchenContainer:
    """DI container holding all wired dependencies."""

    api_adapter: LinodeApiAdapter
    transport: FabricTransport
    event_bus: EventBus
    exporter: OTELExporter
    create_instance: CreateInstance
    destroy_instance: DestroyInstance


def create_container(
    config: LinodeKitchenConfig,
    session: Optional[requests.Session] = None,
) -> LinodeKitchenContainer:
    """Create and wire all dependencies."""
    api_adapter = LinodeApiAdapter(
        token=config.api.token,
        base_url=config.api.base_url,
        timeout=config.api.timeout,
        page_size=config.api.page_size,
        session=session,
    )
    transport = FabricTransport(
        username=config.ssh.username,
        port=config.ssh.port,
        connect_timeout=config.ssh.connect_timeout,
        ready_tries=config.ssh.ready_tries,
        ready_interval=config.ssh.ready_interval,
    )
    event_bus = EventBus()

    try:
        exporter = OTELExporter(
            OTELConfig(
                endpoint=config.telemetry.endpoint,
                insecure=config.telemetry.insecure,
            )
        )
    except ValueError as exc:
        raise UserError(f"Invalid telemetry configuration: {exc}") from exc
    event_bus.subscribe(InstanceCreatedEvent, exporter.record_instance_created)
    event_bus.subscribe(InstanceCreationFailedEvent, exporter.record_creation_failed)
    event_bus.subscribe(InstanceDestroyedEvent, exporter.record_instance_destroyed)

    create_instance = CreateInstance(
        api_adapter,
        transport,
        event_bus,
        poll_interval=config.api.poll_interval,
        poll_tries=config.api.poll_tries,
    )
    destroy_instance = DestroyInstance(api_adapter, event_bus)

    return LinodeKitchenContainer(
        api_adapter=api_adapter,
        transport=transport,
        event_bus=event_bus,
        exporter=exporter,
        create_instance=create_instance,
        destroy_instance=destroy_instance,
    )
