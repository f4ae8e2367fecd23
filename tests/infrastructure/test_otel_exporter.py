"""Tests for OTELExporter."""

import pytest
from unittest.mock import MagicMock
from linode_kitchen.domain.events.instance_events import (
    InstanceCreatedEvent,
    InstanceCreationFailedEvent,
    InstanceDestroyedEvent,
)
from linode_kitchen.infrastructure.telemetry import OTELConfig, OTELExporter


def _names(exporter):
    return [m["name"] for m in exporter.buffered_metrics]


class TestOTELConfig:
    def test_default_empty_endpoint(self):
        assert OTELConfig().endpoint == ""

    def test_localhost_http_allowed(self):
        assert OTELConfig(endpoint="http://localhost:4317").endpoint == "http://localhost:4317"

    def test_remote_https_allowed(self):
        OTELConfig(endpoint="https://otel.example.com:4317")

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            OTELConfig(endpoint="http://otel.example.com:4317")

    def test_remote_http_with_insecure(self):
        assert OTELConfig(endpoint="http://otel.example.com:4317", insecure=True).insecure


class TestOTELExporter:
    def test_record_metric_buffers(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test.metric", 42.0)
        assert exporter.buffered_metrics[0]["name"] == "test.metric"
        assert exporter.buffered_metrics[0]["value"] == 42.0

    @pytest.mark.asyncio
    async def test_created_event(self):
        exporter = OTELExporter(OTELConfig())
        await exporter.record_instance_created(
            InstanceCreatedEvent(instance_id=1, attempts=3, backoff_seconds=3.0)
        )
        assert _names(exporter) == [
            "linode.instance.created",
            "linode.create.attempts",
            "linode.create.backoff_seconds",
        ]
        assert exporter.buffered_metrics[1]["value"] == 3.0

    @pytest.mark.asyncio
    async def test_failed_event(self):
        exporter = OTELExporter(OTELConfig())
        await exporter.record_creation_failed(
            InstanceCreationFailedEvent(attempts=5, failure_kind="TRANSIENT")
        )
        assert _names(exporter) == ["linode.create.failed", "linode.create.attempts"]
        assert exporter.buffered_metrics[0]["attributes"] == {"failure_kind": "TRANSIENT"}

    @pytest.mark.asyncio
    async def test_destroyed_event(self):
        exporter = OTELExporter(OTELConfig())
        await exporter.record_instance_destroyed(InstanceDestroyedEvent(instance_id=1))
        assert _names(exporter) == ["linode.instance.destroyed"]

    def test_initialized_uses_instruments(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True
        exporter._meter = MagicMock()
        exporter.record_metric("linode.instance.created", 1.0)
        exporter.record_metric("linode.create.backoff_seconds", 2.5, unit="s")
        exporter._meter.create_counter.return_value.add.assert_called_once_with(1.0, attributes={})
        exporter._meter.create_histogram.return_value.record.assert_called_once_with(2.5, attributes={})

    @pytest.mark.asyncio
    async def test_export_noop_when_not_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_metric("test", 1.0)
        await exporter.export()
        assert len(exporter.buffered_metrics) == 1

    @pytest.mark.asyncio
    async def test_export_flushes_when_initialized(self):
        exporter = OTELExporter(OTELConfig())
        exporter._initialized = True
        exporter._provider = MagicMock()
        exporter.record_metric("test", 1.0)
        await exporter.export()
        exporter._provider.force_flush.assert_called_once()
        assert exporter.buffered_metrics == []

    @pytest.mark.asyncio
    async def test_initialize_without_endpoint(self):
        exporter = OTELExporter(OTELConfig())
        await exporter.initialize()
        assert exporter.initialized is False
