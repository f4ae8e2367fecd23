"""
linode-kitchen Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for provisioning metrics
- Fed by domain events published on the in-memory event bus
"""

from linode_kitchen.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
]
