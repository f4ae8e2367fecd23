"""
Fabric Adapter

Architectural Intent:
- Infrastructure adapter implementing TransportPort via Fabric/SSH
- Authenticates with the handle's private key, or its root password when the
  instance was created without a key pair
- Blocking Fabric calls run in the default executor

Security:
- SSH connections use connect_timeout; agent and key lookup are disabled for
  password handles so only the generated root password is offered
"""

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable
from fabric import Connection
from linode_kitchen.domain.ports.transport_port import TransportPort
from linode_kitchen.domain.value_objects.instance_handle import InstanceHandle

logger = logging.getLogger(__name__)


class FabricTransport(TransportPort):
    """Adapter implementing TransportPort via Fabric/SSH."""

    def __init__(
        self,
        username: str = "root",
        port: int = 22,
        connect_timeout: int = 30,
        ready_tries: int = 30,
        ready_interval: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.username = username
        self.port = port
        self.connect_timeout = connect_timeout
        self.ready_tries = ready_tries
        self.ready_interval = ready_interval
        self._sleep = sleep

    def _get_connection(self, handle: InstanceHandle) -> Connection:
        if handle.uses_key_auth:
            connect_kwargs = {"key_filename": [handle.ssh_key]}
        else:
            connect_kwargs = {
                "password": handle.password,
                "allow_agent": False,
                "look_for_keys": False,
            }
        return Connection(
            host=handle.hostname,
            user=self.username,
            port=self.port,
            connect_timeout=self.connect_timeout,
            connect_kwargs=connect_kwargs,
        )

    @staticmethod
    def _probe(conn: Connection) -> None:
        conn.open()
        conn.close()

    async def wait_until_ready(self, handle: InstanceHandle) -> None:
        if not handle.hostname:
            raise ConnectionError(f"Linode {handle} has no public address")

        loop = asyncio.get_running_loop()
        for attempt in range(1, self.ready_tries + 1):
            conn = self._get_connection(handle)
            try:
                await loop.run_in_executor(None, partial(self._probe, conn))
                logger.debug("SSH to %s is up (attempt %d)", handle.hostname, attempt)
                return
            except Exception as e:
                logger.info(
                    "Waiting for SSH service on %s:%s, retrying in %s seconds (%s)",
                    handle.hostname,
                    self.port,
                    self.ready_interval,
                    e,
                )
            await self._sleep(self.ready_interval)
        raise ConnectionError(
            f"SSH on {handle.hostname}:{self.port} not reachable after {self.ready_tries} tries"
        )

    async def execute(self, handle: InstanceHandle, command: str) -> bool:
        loop = asyncio.get_running_loop()
        conn = self._get_connection(handle)
        try:
            result = await loop.run_in_executor(
                None, partial(conn.run, command, hide=True, warn=True)
            )
        except Exception as e:
            logger.error("Execution failed on %s: %s", handle.hostname, e)
            return False
        finally:
            conn.close()

        if result.failed:
            logger.error("Command failed on %s: %s", handle.hostname, result.stderr)
        return result.ok
