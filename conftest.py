"""Global test configuration.

Shared fixtures for the use-case and driver tests: a mocked cloud API, a
mocked SSH transport and a sleep recorder so retries never wait.
"""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from linode_kitchen.domain.value_objects.provision_spec import ProvisionSpec

CATALOGS = {
    "regions": [{"id": "us-east", "label": "Newark, NJ"}],
    "types": [{"id": "g6-nanode-1", "label": "Nanode 1GB"}],
    "images": [{"id": "linode/debian12", "label": "Debian 12"}],
    "kernels": [{"id": "linode/grub2", "label": "GRUB 2"}],
}


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def make_spec(**overrides):
    values = dict(
        region="us-east",
        instance_type="g6-nanode-1",
        image="linode/debian12",
        label_prefix="kitchen-job-default",
        hostname="default-debian",
        root_password="s3cret-pass",
    )
    values.update(overrides)
    return ProvisionSpec(**values)


def running_body(instance_id=42, label="kitchen-job-default_123", address="192.0.2.10"):
    return {"id": instance_id, "label": label, "ipv4": [address], "status": "running"}


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def api():
    mock = MagicMock()
    mock.list_instances = AsyncMock(return_value=[])
    mock.list_catalog = AsyncMock(side_effect=lambda kind: CATALOGS[kind])
    mock.create_instance = AsyncMock(
        side_effect=lambda payload: running_body(label=payload["label"])
    )
    mock.get_instance = AsyncMock(return_value=running_body())
    mock.delete_instance = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def transport():
    mock = MagicMock()
    mock.wait_until_ready = AsyncMock(return_value=None)
    mock.execute = AsyncMock(return_value=True)
    return mock
