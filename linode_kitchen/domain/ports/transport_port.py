"""
Transport Port

Architectural Intent:
- Port interface for reaching a created instance over its control channel
- The core never speaks SSH itself; it only asks for readiness and for a
  command string to be executed
- Implemented by FabricTransport
"""

from abc import ABC, abstractmethod
from linode_kitchen.domain.value_objects.instance_handle import InstanceHandle


class TransportPort(ABC):
    """
    Port interface for executing commands on a created instance.
    """

    @abstractmethod
    async def wait_until_ready(self, handle: InstanceHandle) -> None:
        """
        Blocks until the instance accepts connections.
        Raises ConnectionError when it never becomes reachable.
        """
        pass

    @abstractmethod
    async def execute(self, handle: InstanceHandle, command: str) -> bool:
        """
        Executes a shell command on the instance.
        Returns True if the command exited successfully.
        """
        pass
