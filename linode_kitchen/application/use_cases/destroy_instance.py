"""
Destroy Instance Use Case

Architectural Intent:
- Idempotent teardown of the instance named in the host state
- A missing id means there is nothing to do and the provider is never called
- "Already gone" (404 on lookup or delete) counts as success
- All five handle keys are cleared together, never a subset
"""

import asyncio
import logging
import random
from typing import Any, MutableMapping, Optional
from linode_kitchen.application.orchestration.retrying import RetryingExecutor, Sleep
from linode_kitchen.domain.events.instance_events import InstanceDestroyedEvent
from linode_kitchen.domain.exceptions import ActionFailed, ApiCallFailed
from linode_kitchen.domain.ports.cloud_api_port import CloudApiPort
from linode_kitchen.domain.ports.event_bus_port import EventBusPort
from linode_kitchen.domain.services.backoff_policy import RetryPolicy
from linode_kitchen.domain.value_objects.failure import FailureKind
from linode_kitchen.domain.value_objects.instance_handle import InstanceHandle, clear_handle

logger = logging.getLogger(__name__)


class DestroyInstance:
    def __init__(
        self,
        api: CloudApiPort,
        event_bus: Optional[EventBusPort] = None,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._api = api
        self._event_bus = event_bus
        self._sleep = sleep
        self._rng = rng

    async def execute(
        self, state: MutableMapping[str, Any], policy: Optional[RetryPolicy] = None
    ) -> None:
        handle = InstanceHandle.from_state(state)
        if handle is None:
            return

        executor = RetryingExecutor(policy or RetryPolicy(), self._sleep, self._rng)
        already_gone = False
        try:
            await executor.call(
                lambda: self._api.get_instance(handle.id), f"look up linode {handle.id}"
            )
            await executor.call(
                lambda: self._api.delete_instance(handle.id), f"delete linode {handle.id}"
            )
            logger.info("Linode %s destroyed.", handle)
        except ApiCallFailed as exc:
            if exc.failure.kind is not FailureKind.NOT_FOUND:
                logger.error("Failed to destroy server %s: %s", handle, exc.failure)
                raise ActionFailed(f"Failed to destroy server {handle}: {exc.failure}") from exc
            already_gone = True
            logger.info("Linode %s not found.", handle)

        clear_handle(state)
        if self._event_bus is not None:
            await self._event_bus.publish(
                [
                    InstanceDestroyedEvent(
                        instance_id=handle.id, label=handle.label, already_gone=already_gone
                    )
                ]
            )
