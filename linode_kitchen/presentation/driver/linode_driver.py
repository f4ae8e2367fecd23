"""
Linode Driver

Architectural Intent:
- The surface a test-kitchen style host calls: create(state) and
  destroy(state) for one host instance
- Applies host defaults to the configuration, then delegates to the use cases
  wired in the composition root
- Callers only ever see success, UserError or ActionFailed
"""

import logging
from typing import Any, MutableMapping, Optional
from linode_kitchen.composition_root import LinodeKitchenContainer
from linode_kitchen.domain.services.backoff_policy import RetryPolicy
from linode_kitchen.domain.value_objects.host_instance import HostInstance
from linode_kitchen.domain.value_objects.instance_handle import ID_KEY, InstanceHandle
from linode_kitchen.infrastructure.config import LinodeKitchenConfig
from linode_kitchen.infrastructure.defaults import build_provision_spec

logger = logging.getLogger(__name__)


class LinodeDriver:
    def __init__(
        self,
        config: LinodeKitchenConfig,
        instance: HostInstance,
        container: LinodeKitchenContainer,
        kitchen_root: Optional[str] = None,
    ) -> None:
        self.config = config
        self.instance = instance
        self.container = container
        self.kitchen_root = kitchen_root

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_tries=self.config.api.retries)

    async def create(self, state: MutableMapping[str, Any]) -> InstanceHandle:
        """Provision the instance, or return the one already recorded in state."""
        if state.get(ID_KEY) is not None:
            handle = InstanceHandle.from_state(state)
            logger.info("Linode %s already exists for %s, nothing to create.", handle, self.instance)
            return handle
        spec = build_provision_spec(
            self.config, self.instance, kitchen_root=self.kitchen_root
        )
        logger.debug("Creating %s with label prefix %s", self.instance, spec.label_prefix)
        return await self.container.create_instance.execute(
            state,
            spec,
            policy=self.retry_policy,
            bourne_shell=self.instance.bourne_shell,
        )

    async def destroy(self, state: MutableMapping[str, Any]) -> None:
        await self.container.destroy_instance.execute(state, policy=self.retry_policy)
