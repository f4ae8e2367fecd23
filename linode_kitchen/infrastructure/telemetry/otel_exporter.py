"""
OpenTelemetry Exporter for linode-kitchen

Architectural Intent:
- Exports provisioning metrics to OTLP-compatible backends
- Without an endpoint, metrics stay in a local buffer so they can still be
  inspected (and tested) without a collector
- Event handlers take domain events directly and are subscribed on the event
  bus by the composition root

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
- Validation in __post_init__ prevents accidental plaintext export
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import logging
from datetime import datetime, UTC

from linode_kitchen.domain.events.instance_events import (
    InstanceCreatedEvent,
    InstanceCreationFailedEvent,
    InstanceDestroyedEvent,
)

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = "linode.create.attempts"
CREATE_BACKOFF = "linode.create.backoff_seconds"
INSTANCE_CREATED = "linode.instance.created"
INSTANCE_DESTROYED = "linode.instance.destroyed"
CREATE_FAILED = "linode.create.failed"


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "linode-kitchen"
    environment: str = "development"
    export_interval: int = 5
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for provisioning metrics.

    Counters are used for event counts and a histogram for backoff time, so
    the backend can aggregate across many kitchen runs.
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._provider: Any = None
        self._instruments: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def buffered_metrics(self) -> list[dict[str, Any]]:
        return list(self._metrics_buffer)

    async def initialize(self) -> None:
        """Initialize OpenTelemetry SDK and exporters."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry import metrics
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            resource = Resource(
                attributes={
                    SERVICE_NAME: self.config.service_name,
                    "environment": self.config.environment,
                }
            )
            metric_reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(
                    endpoint=self.config.endpoint, insecure=self.config.insecure
                ),
                export_interval_millis=self.config.export_interval * 1000,
            )
            self._provider = MeterProvider(
                resource=resource, metric_readers=[metric_reader]
            )
            metrics.set_meter_provider(self._provider)
            self._meter = metrics.get_meter(__name__)
            self._initialized = True

        except ImportError:
            logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
            self._initialized = False
        except Exception as e:
            logger.error("Failed to initialize OTEL: %s", e)
            self._initialized = False

    def _get_instrument(self, name: str, unit: str = "") -> Any:
        if name not in self._instruments and self._meter:
            if name == CREATE_BACKOFF:
                self._instruments[name] = self._meter.create_histogram(name, unit=unit)
            else:
                self._instruments[name] = self._meter.create_counter(name, unit=unit)
        return self._instruments.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            instrument = self._get_instrument(name, unit)
            if instrument is None:
                return
            if name == CREATE_BACKOFF:
                instrument.record(value, attributes=attributes or {})
            else:
                instrument.add(value, attributes=attributes or {})

    async def record_instance_created(self, event: InstanceCreatedEvent) -> None:
        attributes = {"adopted": str(event.adopted)}
        self.record_metric(INSTANCE_CREATED, 1.0, attributes=attributes)
        self.record_metric(CREATE_ATTEMPTS, float(event.attempts), attributes=attributes)
        self.record_metric(CREATE_BACKOFF, event.backoff_seconds, unit="s")

    async def record_creation_failed(self, event: InstanceCreationFailedEvent) -> None:
        attributes = {"failure_kind": event.failure_kind}
        self.record_metric(CREATE_FAILED, 1.0, attributes=attributes)
        self.record_metric(CREATE_ATTEMPTS, float(event.attempts), attributes=attributes)

    async def record_instance_destroyed(self, event: InstanceDestroyedEvent) -> None:
        self.record_metric(
            INSTANCE_DESTROYED,
            1.0,
            attributes={"already_gone": str(event.already_gone)},
        )

    async def export(self) -> None:
        """Flush buffered metrics via OTLP."""
        if not self._initialized:
            return

        self._provider.force_flush()
        exported_count = len(self._metrics_buffer)
        self._metrics_buffer.clear()

        if exported_count:
            logger.debug("Flushed %d buffered metrics", exported_count)
